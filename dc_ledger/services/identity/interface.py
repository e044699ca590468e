"""
Abstract Identity Interface

The ledger never authenticates anyone itself. It is handed an owner id
by an identity provider and trusts it completely from then on; its only
job afterwards is to scope every read and write to that owner.
"""

from abc import ABC, abstractmethod
from uuid import UUID

from dc_ledger.models.user import AuthSession


class IdentityProvider(ABC):
    """Turns credentials into an owner identity and back."""

    @abstractmethod
    async def register(self, name: str, email: str, password: str) -> AuthSession:
        """
        Create an account and sign it in.

        Raises:
            ValidationError: Missing fields or password too short
            ConflictError: Email already registered
        """
        pass

    @abstractmethod
    async def login(self, email: str, password: str) -> AuthSession:
        """
        Sign an existing account in.

        Raises:
            AuthenticationError: Unknown email or wrong password
        """
        pass

    @abstractmethod
    def verify_token(self, token: str) -> UUID:
        """
        Check a token and return the owner id it was issued for.

        Raises:
            AuthenticationError: Missing, malformed, tampered or expired token
        """
        pass
