"""
Data Models Package

This package contains all Pydantic models used in D/C Ledger.
All data flowing through the system must conform to these schemas.
"""

from dc_ledger.models.ledger import (
    BalanceStatus,
    Direction,
    GrandTotals,
    LedgerOverview,
    NewPerson,
    NewTransaction,
    Person,
    PersonBalance,
    PersonStats,
    Transaction,
    ValidationIssue,
    utc_now,
)
from dc_ledger.models.user import (
    AuthSession,
    PublicUser,
    User,
)

__all__ = [
    # Ledger models
    "BalanceStatus",
    "Direction",
    "GrandTotals",
    "LedgerOverview",
    "NewPerson",
    "NewTransaction",
    "Person",
    "PersonBalance",
    "PersonStats",
    "Transaction",
    "ValidationIssue",
    "utc_now",
    # Account models
    "AuthSession",
    "PublicUser",
    "User",
]
