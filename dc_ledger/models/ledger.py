"""
Core Data Models for D/C Ledger

These models define the strict schemas for all data flowing through the ledger.
They are designed to:
1. Enforce type safety at runtime
2. Provide clear validation error messages
3. Be serializable for storage and logging

DESIGN DECISION: Stored entities (Person, Transaction) are frozen.
Transactions are never edited or reversed - the only way to change a
balance is to add another transaction.

DESIGN DECISION: Money is Decimal, never float. Balances are sums of
many small amounts and must come out exact regardless of ordering.
"""

from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Optional
from uuid import UUID

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    computed_field,
)


ZERO = Decimal("0")


def utc_now() -> datetime:
    """Timezone-aware current time, used for all generated timestamps."""
    return datetime.now(timezone.utc)


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class Direction(str, Enum):
    """
    Direction of a transaction, from the owner's point of view.

    CREDIT: the person owes the owner more.
    DEBIT: the owner owes the person more (or has paid them).
    """
    CREDIT = "credit"
    DEBIT = "debit"


class BalanceStatus(str, Enum):
    """Human-facing reading of a person's net balance."""
    OWES_YOU = "owes_you"
    YOU_OWE = "you_owe"
    SETTLED = "settled"


# =============================================================================
# PEOPLE
# =============================================================================

class NewPerson(BaseModel):
    """Request to add a counterparty. Storage assigns id and timestamp."""
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(
        ...,
        min_length=1,
        max_length=500,
        description="Display name"
    )


class Person(BaseModel):
    """
    A counterparty tracked by one owner.

    CRITICAL: A person is never shared between owners.
    """
    model_config = ConfigDict(str_strip_whitespace=True, frozen=True)

    id: UUID = Field(
        ...,
        description="Unique person ID"
    )
    owner_id: UUID = Field(
        ...,
        description="Account that may see and change this person"
    )
    name: str = Field(
        ...,
        min_length=1,
        max_length=500,
        description="Display name"
    )
    created_at: datetime = Field(
        default_factory=utc_now,
        description="When the person was added"
    )


# =============================================================================
# TRANSACTIONS
# =============================================================================

class NewTransaction(BaseModel):
    """
    Request to record a transaction against a person.

    Produced either by boundary validation of user input or by the
    engine when building a settlement. Carries no owner - the service
    attaches the authenticated owner when it stores the draft.
    """
    model_config = ConfigDict(str_strip_whitespace=True, frozen=True)

    person_id: UUID
    amount: Decimal = Field(
        ...,
        gt=0,
        decimal_places=2,
        description="Positive magnitude of the movement"
    )
    direction: Direction
    description: str = Field(
        ...,
        min_length=1,
        max_length=1000,
    )
    occurred_at: Optional[datetime] = Field(
        default=None,
        description="When the movement happened; storage uses now if omitted"
    )


class Transaction(BaseModel):
    """
    A single dated, directional money movement against a person.

    Immutable once created.
    """
    model_config = ConfigDict(str_strip_whitespace=True, frozen=True)

    id: UUID = Field(
        ...,
        description="Unique transaction ID"
    )
    owner_id: UUID
    person_id: UUID
    amount: Decimal = Field(
        ...,
        gt=0,
        decimal_places=2,
    )
    direction: Direction
    description: str = Field(
        ...,
        min_length=1,
        max_length=1000,
    )
    occurred_at: datetime = Field(
        default_factory=utc_now,
        description="When the movement happened"
    )
    created_at: datetime = Field(
        default_factory=utc_now,
        description="When the transaction was recorded"
    )

    @property
    def signed_amount(self) -> Decimal:
        """Amount with credit positive and debit negative."""
        return self.amount if self.direction == Direction.CREDIT else -self.amount


# =============================================================================
# DERIVED FIGURES (never persisted)
# =============================================================================

class PersonStats(BaseModel):
    """Totals for one person, recomputed from transactions on every query."""
    model_config = ConfigDict(frozen=True)

    person_id: UUID
    total_credit: Decimal = ZERO
    total_debit: Decimal = ZERO

    @computed_field
    @property
    def net(self) -> Decimal:
        """Credit minus debit. Positive means the person owes the owner."""
        return self.total_credit - self.total_debit

    @property
    def status(self) -> BalanceStatus:
        if self.net > 0:
            return BalanceStatus.OWES_YOU
        if self.net < 0:
            return BalanceStatus.YOU_OWE
        return BalanceStatus.SETTLED


class GrandTotals(BaseModel):
    """Totals across every person of one owner."""
    model_config = ConfigDict(frozen=True)

    total_credit: Decimal = ZERO
    total_debit: Decimal = ZERO

    @computed_field
    @property
    def net(self) -> Decimal:
        return self.total_credit - self.total_debit


class PersonBalance(BaseModel):
    """A person together with their current stats."""
    model_config = ConfigDict(frozen=True)

    person: Person
    stats: PersonStats


class LedgerOverview(BaseModel):
    """Everything the main screen needs, computed from a single read."""
    model_config = ConfigDict(frozen=True)

    balances: list[PersonBalance] = Field(default_factory=list)
    totals: GrandTotals = Field(default_factory=GrandTotals)


# =============================================================================
# VALIDATION MODELS
# =============================================================================

class ValidationIssue(BaseModel):
    """A single problem found in user input."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'invalid_value', 'too_long')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
