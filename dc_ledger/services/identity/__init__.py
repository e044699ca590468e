"""Identity services package."""

from dc_ledger.services.identity.interface import IdentityProvider
from dc_ledger.services.identity.local import (
    LocalIdentityService,
    hash_password,
    verify_password,
)

__all__ = [
    "IdentityProvider",
    "LocalIdentityService",
    "hash_password",
    "verify_password",
]
