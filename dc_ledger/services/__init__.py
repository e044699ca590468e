"""Services package."""

from dc_ledger.services.identity import (
    IdentityProvider,
    LocalIdentityService,
)
from dc_ledger.services.storage import (
    DuplicateError,
    GoogleSheetsClient,
    GoogleSheetsLedgerStorage,
    GoogleSheetsUserStorage,
    InMemoryLedgerStorage,
    InMemoryUserStorage,
    LedgerStorageInterface,
    StorageConnectionError,
    StorageError,
    UserStorageInterface,
)

__all__ = [
    # Identity services
    "IdentityProvider",
    "LocalIdentityService",
    # Storage services
    "DuplicateError",
    "GoogleSheetsClient",
    "GoogleSheetsLedgerStorage",
    "GoogleSheetsUserStorage",
    "InMemoryLedgerStorage",
    "InMemoryUserStorage",
    "LedgerStorageInterface",
    "StorageConnectionError",
    "StorageError",
    "UserStorageInterface",
]
