"""
Storage Services Package

Provides abstract interfaces and concrete implementations for data storage.
Google Sheets is the hosted backend; the in-memory backend is used for
tests and when Sheets is not configured.
"""

from dc_ledger.services.storage.interface import (
    DuplicateError,
    LedgerStorageInterface,
    StorageConnectionError,
    StorageError,
    UserStorageInterface,
)
from dc_ledger.services.storage.memory import (
    InMemoryLedgerStorage,
    InMemoryUserStorage,
)
from dc_ledger.services.storage.google_sheets import (
    GoogleSheetsClient,
    GoogleSheetsLedgerStorage,
    GoogleSheetsUserStorage,
    sheets_summary,
)

__all__ = [
    # Interfaces
    "LedgerStorageInterface",
    "UserStorageInterface",
    # Exceptions
    "DuplicateError",
    "StorageConnectionError",
    "StorageError",
    # In-memory implementation
    "InMemoryLedgerStorage",
    "InMemoryUserStorage",
    # Google Sheets implementation
    "GoogleSheetsClient",
    "GoogleSheetsLedgerStorage",
    "GoogleSheetsUserStorage",
    "sheets_summary",
]
