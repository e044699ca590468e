"""
In-Memory Storage Implementation

Used by the test suite and as the fallback backend when Google Sheets
is not configured. Data lives for the lifetime of the process.

Mutations run under an asyncio.Lock so the cascade delete is observed
as a single step by every other coroutine.
"""

import asyncio
from typing import Optional
from uuid import UUID, uuid4

from dc_ledger.models.ledger import (
    NewPerson,
    NewTransaction,
    Person,
    Transaction,
    utc_now,
)
from dc_ledger.models.user import User
from dc_ledger.services.storage.interface import (
    DuplicateError,
    LedgerStorageInterface,
    UserStorageInterface,
)


class InMemoryLedgerStorage(LedgerStorageInterface):
    """People and transactions kept in insertion-ordered dicts."""

    def __init__(self):
        self._people: dict[UUID, Person] = {}
        self._transactions: dict[UUID, Transaction] = {}
        self._lock = asyncio.Lock()

    async def insert_person(self, owner_id: UUID, draft: NewPerson) -> Person:
        person = Person(
            id=uuid4(),
            owner_id=owner_id,
            name=draft.name,
            created_at=utc_now(),
        )
        async with self._lock:
            self._people[person.id] = person
        return person

    async def get_person(self, owner_id: UUID, person_id: UUID) -> Optional[Person]:
        person = self._people.get(person_id)
        if person is None or person.owner_id != owner_id:
            return None
        return person

    async def list_people(self, owner_id: UUID) -> list[Person]:
        people = [p for p in self._people.values() if p.owner_id == owner_id]
        # Stable sort keeps insertion order for equal timestamps; reverse
        # the list first so newer inserts win ties.
        people.reverse()
        people.sort(key=lambda p: p.created_at, reverse=True)
        return people

    async def insert_transaction(
        self,
        owner_id: UUID,
        draft: NewTransaction,
    ) -> Transaction:
        now = utc_now()
        tx = Transaction(
            id=uuid4(),
            owner_id=owner_id,
            person_id=draft.person_id,
            amount=draft.amount,
            direction=draft.direction,
            description=draft.description,
            occurred_at=draft.occurred_at or now,
            created_at=now,
        )
        async with self._lock:
            self._transactions[tx.id] = tx
        return tx

    async def list_transactions(
        self,
        owner_id: UUID,
        person_id: Optional[UUID] = None,
    ) -> list[Transaction]:
        transactions = [
            tx for tx in self._transactions.values()
            if tx.owner_id == owner_id
            and (person_id is None or tx.person_id == person_id)
        ]
        transactions.reverse()
        transactions.sort(key=lambda tx: tx.occurred_at, reverse=True)
        return transactions

    async def delete_transactions(self, owner_id: UUID, person_id: UUID) -> int:
        async with self._lock:
            return self._drop_transactions(owner_id, person_id)

    async def delete_person(self, owner_id: UUID, person_id: UUID) -> Optional[int]:
        async with self._lock:
            person = self._people.get(person_id)
            if person is None or person.owner_id != owner_id:
                return None
            del self._people[person_id]
            return self._drop_transactions(owner_id, person_id)

    def _drop_transactions(self, owner_id: UUID, person_id: UUID) -> int:
        doomed = [
            tx_id for tx_id, tx in self._transactions.items()
            if tx.owner_id == owner_id and tx.person_id == person_id
        ]
        for tx_id in doomed:
            del self._transactions[tx_id]
        return len(doomed)


class InMemoryUserStorage(UserStorageInterface):
    """Accounts keyed by id with a lower-cased email index."""

    def __init__(self):
        self._users: dict[UUID, User] = {}
        self._by_email: dict[str, UUID] = {}
        self._lock = asyncio.Lock()

    async def insert_user(self, user: User) -> User:
        email = user.email.lower()
        async with self._lock:
            if email in self._by_email:
                raise DuplicateError(f"Email already registered: {email}")
            self._users[user.id] = user
            self._by_email[email] = user.id
        return user

    async def get_user_by_email(self, email: str) -> Optional[User]:
        user_id = self._by_email.get(email.strip().lower())
        return self._users.get(user_id) if user_id else None

    async def get_user_by_id(self, user_id: UUID) -> Optional[User]:
        return self._users.get(user_id)
