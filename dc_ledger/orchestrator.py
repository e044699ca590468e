"""
Main Orchestrator for D/C Ledger

This module ties together storage, validation, the pure ledger engine
and the identity service, and defines every operation the presentation
layer can call:
1. People: list, add, delete (cascading to their transactions)
2. Transactions: list, add
3. Balances: per-person stats, grand totals, overview
4. Settlement: record the transaction that zeroes a balance

DESIGN DECISION: The orchestrator enforces the boundaries:
- Every call takes the owner id explicitly; nothing crosses owners
- Another owner's person is reported as not found, never as forbidden
- Raw input is validated before anything is stored
- Balances are recomputed from storage on every call, never cached

CONCURRENCY: Requests are independent. There is no locking across
requests, no versioning and no idempotency key; two identical
submissions create two transactions. Storage guarantees atomicity of a
single write and of the cascade delete, nothing more.
"""

from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional, Union
from uuid import UUID

from dc_ledger.config import LedgerSettings, Settings, get_settings
from dc_ledger.engine import (
    build_settlement,
    compute_all_stats,
    compute_stats,
    totals_from_stats,
)
from dc_ledger.errors import NotFoundError, UpstreamError, ValidationError
from dc_ledger.logs import LedgerLogger, configure_logging
from dc_ledger.models.ledger import (
    GrandTotals,
    LedgerOverview,
    Person,
    PersonBalance,
    PersonStats,
    Transaction,
)
from dc_ledger.services.identity import IdentityProvider, LocalIdentityService
from dc_ledger.services.storage import (
    GoogleSheetsClient,
    GoogleSheetsLedgerStorage,
    GoogleSheetsUserStorage,
    InMemoryLedgerStorage,
    InMemoryUserStorage,
    LedgerStorageInterface,
    UserStorageInterface,
)
from dc_ledger.validation import LedgerInputValidator


PersonRef = Union[UUID, str]


class LedgerService:
    """
    Owner-scoped ledger operations.

    Holds no ledger state of its own: every figure is derived from what
    storage returns for the owner at the time of the call.
    """

    def __init__(
        self,
        storage: LedgerStorageInterface,
        settings: Optional[LedgerSettings] = None,
        validator: Optional[LedgerInputValidator] = None,
        logger: Optional[LedgerLogger] = None,
    ):
        self._storage = storage
        self._settings = settings or LedgerSettings()
        self._validator = validator or LedgerInputValidator(self._settings)
        self._logger = logger or LedgerLogger()

    @contextmanager
    def _upstream(self, operation: str, owner_id: UUID):
        """Log collaborator failures, then let them propagate."""
        try:
            yield
        except UpstreamError as e:
            self._logger.upstream_failed(operation, str(e), owner_id=owner_id)
            raise

    def _person_id(self, owner_id: UUID, person_id: PersonRef) -> UUID:
        """Parse a person reference; an unparseable id simply doesn't exist."""
        if isinstance(person_id, UUID):
            return person_id
        try:
            return UUID(str(person_id))
        except ValueError:
            self._logger.not_found(owner_id, "person", person_id)
            raise NotFoundError(f"Person not found: {person_id}")

    async def _require_person(self, owner_id: UUID, person_id: PersonRef) -> Person:
        parsed = self._person_id(owner_id, person_id)
        with self._upstream("get_person", owner_id):
            person = await self._storage.get_person(owner_id, parsed)
        if person is None:
            self._logger.not_found(owner_id, "person", parsed)
            raise NotFoundError(f"Person not found: {parsed}")
        return person

    # =========================================================================
    # PEOPLE
    # =========================================================================

    async def list_people(self, owner_id: UUID) -> list[Person]:
        """All people of the owner, newest first."""
        with self._upstream("list_people", owner_id):
            return await self._storage.list_people(owner_id)

    async def add_person(self, owner_id: UUID, name: Any) -> Person:
        """
        Add a counterparty.

        Raises:
            ValidationError: If the name is empty or too long
        """
        try:
            draft = self._validator.validate_person(name)
        except ValidationError as e:
            self._logger.validation_failed("add_person", [i.model_dump() for i in e.issues])
            raise

        with self._upstream("add_person", owner_id):
            person = await self._storage.insert_person(owner_id, draft)

        self._logger.person_added(owner_id, person.id)
        return person

    async def delete_person(self, owner_id: UUID, person_id: PersonRef) -> int:
        """
        Delete a person together with all of the owner's transactions
        against them.

        Returns:
            Number of transactions removed

        Raises:
            NotFoundError: If the person doesn't exist for this owner.
                           Nothing is deleted in that case.
        """
        parsed = self._person_id(owner_id, person_id)
        with self._upstream("delete_person", owner_id):
            removed = await self._storage.delete_person(owner_id, parsed)

        if removed is None:
            self._logger.not_found(owner_id, "person", parsed)
            raise NotFoundError(f"Person not found: {parsed}")

        self._logger.person_deleted(owner_id, parsed, removed)
        return removed

    # =========================================================================
    # TRANSACTIONS
    # =========================================================================

    async def list_transactions(
        self,
        owner_id: UUID,
        person_id: Optional[PersonRef] = None,
    ) -> list[Transaction]:
        """
        The owner's transactions, most recent first.

        Args:
            owner_id: Authenticated owner
            person_id: Only this person's transactions (must belong to owner)
        """
        parsed = None
        if person_id is not None:
            parsed = (await self._require_person(owner_id, person_id)).id

        with self._upstream("list_transactions", owner_id):
            return await self._storage.list_transactions(owner_id, person_id=parsed)

    async def add_transaction(
        self,
        owner_id: UUID,
        person_id: Any,
        amount: Any,
        direction: Any,
        description: Optional[str] = None,
        occurred_at: Optional[datetime] = None,
    ) -> Transaction:
        """
        Record a credit or debit against a person.

        Raises:
            ValidationError: Missing person, bad amount or bad direction
            NotFoundError: Person doesn't exist for this owner
        """
        try:
            draft = self._validator.validate_transaction(
                person_id=person_id,
                amount=amount,
                direction=direction,
                description=description,
                occurred_at=occurred_at,
            )
        except ValidationError as e:
            self._logger.validation_failed("add_transaction", [i.model_dump() for i in e.issues])
            raise

        await self._require_person(owner_id, draft.person_id)

        with self._upstream("add_transaction", owner_id):
            tx = await self._storage.insert_transaction(owner_id, draft)

        self._logger.transaction_added(
            owner_id=owner_id,
            transaction_id=tx.id,
            person_id=tx.person_id,
            direction=tx.direction.value,
            amount=str(tx.amount),
        )
        return tx

    # =========================================================================
    # BALANCES
    # =========================================================================

    async def get_stats(self, owner_id: UUID, person_id: PersonRef) -> PersonStats:
        """
        Credit, debit and net for one person.

        Raises:
            NotFoundError: Person doesn't exist for this owner
        """
        person = await self._require_person(owner_id, person_id)
        with self._upstream("get_stats", owner_id):
            transactions = await self._storage.list_transactions(
                owner_id, person_id=person.id
            )
        return compute_stats(transactions, person.id)

    async def get_grand_totals(self, owner_id: UUID) -> GrandTotals:
        """Credit and debit totals across all of the owner's people."""
        return (await self.get_overview(owner_id)).totals

    async def get_overview(self, owner_id: UUID) -> LedgerOverview:
        """
        Every person with their stats, plus grand totals.

        Reads each collection once and derives everything in one pass.
        """
        with self._upstream("get_overview", owner_id):
            people = await self._storage.list_people(owner_id)
            transactions = await self._storage.list_transactions(owner_id)

        stats = compute_all_stats(people, transactions)
        return LedgerOverview(
            balances=[
                PersonBalance(person=person, stats=stats[person.id])
                for person in people
            ],
            totals=totals_from_stats(stats.values()),
        )

    # =========================================================================
    # SETTLEMENT
    # =========================================================================

    async def settle(self, owner_id: UUID, person_id: PersonRef) -> Optional[Transaction]:
        """
        Zero a person's balance by recording one offsetting transaction.

        Returns:
            The settlement transaction, or None if the balance is already zero

        Raises:
            NotFoundError: Person doesn't exist for this owner
        """
        stats = await self.get_stats(owner_id, person_id)

        draft = build_settlement(stats.person_id, stats.net)
        if draft is None:
            self._logger.settlement_skipped(owner_id, stats.person_id)
            return None

        with self._upstream("settle", owner_id):
            tx = await self._storage.insert_transaction(owner_id, draft)

        self._logger.settlement_recorded(
            owner_id=owner_id,
            person_id=tx.person_id,
            transaction_id=tx.id,
            direction=tx.direction.value,
            amount=str(tx.amount),
        )
        return tx


@dataclass
class LedgerContext:
    """
    Everything the application needs, built once at startup.

    Lives from process start to shutdown. Nothing in the ledger reads
    configuration or connections from module globals; it is all here.
    """

    settings: Settings
    ledger: LedgerService
    identity: IdentityProvider
    storage: LedgerStorageInterface
    user_storage: UserStorageInterface
    logger: LedgerLogger
    sheets_client: Optional[GoogleSheetsClient] = None

    @property
    def storage_backend(self) -> str:
        return "google_sheets" if self.sheets_client else "memory"


def create_ledger_context(
    settings: Optional[Settings] = None,
    use_storage: bool = True,
) -> LedgerContext:
    """
    Factory function to create all application components.

    Args:
        settings: Settings to use; loaded from the environment if None
        use_storage: Whether to try the configured hosted storage.
                     Set to False to force in-memory storage.

    Returns:
        The ledger context

    Raises:
        pydantic.ValidationError: If auth settings (the token secret) are missing
    """
    settings = settings or get_settings()
    app_settings = settings.app
    configure_logging(app_settings.log_level)
    logger = LedgerLogger()

    sheets_client = None
    storage: LedgerStorageInterface = InMemoryLedgerStorage()
    user_storage: UserStorageInterface = InMemoryUserStorage()

    if use_storage and app_settings.storage_backend == "google_sheets":
        try:
            client = GoogleSheetsClient(settings.google_sheets)
            client.get_spreadsheet()
            sheets_client = client
            storage = GoogleSheetsLedgerStorage(client)
            user_storage = GoogleSheetsUserStorage(client)
        except (UpstreamError, ValueError) as e:
            # Storage not configured - continue in memory
            logger.upstream_failed("connect_storage", str(e))

    identity = LocalIdentityService(user_storage, settings.auth, logger=logger)
    ledger = LedgerService(storage, settings=settings.ledger, logger=logger)

    return LedgerContext(
        settings=settings,
        ledger=ledger,
        identity=identity,
        storage=storage,
        user_storage=user_storage,
        logger=logger,
        sheets_client=sheets_client,
    )
