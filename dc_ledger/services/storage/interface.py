"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for storage operations.
This allows us to:
1. Swap Google Sheets for a real database later
2. Use in-memory storage for testing
3. Keep the ledger service decoupled from storage implementation

The interface is intentionally simple - we're not building a full ORM.
Just the operations the ledger needs.

CRITICAL: Every method takes the owner id. Implementations must never
return or touch another owner's rows. An entity of another owner is
reported exactly like a missing one.
"""

from abc import ABC, abstractmethod
from typing import Optional
from uuid import UUID

from dc_ledger.errors import UpstreamError
from dc_ledger.models.ledger import (
    NewPerson,
    NewTransaction,
    Person,
    Transaction,
)
from dc_ledger.models.user import User


class LedgerStorageInterface(ABC):
    """
    Abstract interface for people and transaction storage.

    Any storage implementation (Google Sheets, PostgreSQL, etc.)
    must implement these methods.
    """

    @abstractmethod
    async def insert_person(self, owner_id: UUID, draft: NewPerson) -> Person:
        """
        Store a new person, assigning its id and creation timestamp.

        Raises:
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    async def get_person(self, owner_id: UUID, person_id: UUID) -> Optional[Person]:
        """
        Retrieve one person of this owner.

        Returns:
            The person, or None if it doesn't exist for this owner
        """
        pass

    @abstractmethod
    async def list_people(self, owner_id: UUID) -> list[Person]:
        """
        List all people of this owner, newest first.
        """
        pass

    @abstractmethod
    async def insert_transaction(
        self,
        owner_id: UUID,
        draft: NewTransaction,
    ) -> Transaction:
        """
        Store a new transaction, assigning its id and timestamps.

        occurred_at defaults to the creation time when the draft has none.
        The caller has already checked that the person belongs to the owner.

        Raises:
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    async def list_transactions(
        self,
        owner_id: UUID,
        person_id: Optional[UUID] = None,
    ) -> list[Transaction]:
        """
        List transactions of this owner, most recent first.

        Args:
            owner_id: Owner whose transactions to return
            person_id: Only return transactions against this person
        """
        pass

    @abstractmethod
    async def delete_transactions(self, owner_id: UUID, person_id: UUID) -> int:
        """
        Delete every transaction of this owner against a person.

        Returns:
            Number of transactions deleted
        """
        pass

    @abstractmethod
    async def delete_person(self, owner_id: UUID, person_id: UUID) -> Optional[int]:
        """
        Delete a person and all of the owner's transactions against them.

        CRITICAL: This is one unit of work. Either the person and all their
        transactions are gone afterwards, or nothing changed.

        Returns:
            Number of transactions deleted alongside the person,
            or None if the person doesn't exist for this owner
        """
        pass


class UserStorageInterface(ABC):
    """Abstract interface for account storage used by the identity service."""

    @abstractmethod
    async def insert_user(self, user: User) -> User:
        """
        Store a new account.

        Raises:
            DuplicateError: If the email is already registered
        """
        pass

    @abstractmethod
    async def get_user_by_email(self, email: str) -> Optional[User]:
        """Look an account up by its (lower-cased) email."""
        pass

    @abstractmethod
    async def get_user_by_id(self, user_id: UUID) -> Optional[User]:
        pass


class StorageError(UpstreamError):
    """Base exception for storage operations."""
    pass


class DuplicateError(StorageError):
    """Attempted to insert a duplicate entity."""
    pass


class StorageConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass
