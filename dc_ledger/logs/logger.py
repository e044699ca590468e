"""
Operational Logger

DESIGN DECISION: Every mutation and every rejected request is logged
as a structured event, so a misbehaving ledger can be debugged from the
logs alone.

These are operational logs written through structlog to the process
log stream. Nothing here is persisted next to the ledger data, and the
ledger never reads it back.
"""

import logging
import sys
from typing import Optional
from uuid import UUID

import structlog


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


def configure_logging(level: str = "INFO") -> None:
    """
    Route stdlib logging (and therefore structlog) to stderr at `level`.

    Called once when the ledger context is created.
    """
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=getattr(logging, level.upper(), logging.INFO),
    )
    logging.getLogger("dc_ledger").setLevel(level.upper())


class LedgerLogger:
    """
    Central operational logging for the ledger.

    One method per event so event names and fields stay consistent.
    """

    def __init__(self, name: str = "dc_ledger"):
        self._logger = structlog.get_logger(name)

    # -------------------------------------------------------------------------
    # People
    # -------------------------------------------------------------------------

    def person_added(self, owner_id: UUID, person_id: UUID) -> None:
        self._logger.info(
            "person_added",
            owner_id=str(owner_id),
            person_id=str(person_id),
        )

    def person_deleted(
        self,
        owner_id: UUID,
        person_id: UUID,
        transactions_removed: int,
    ) -> None:
        """Log a cascade delete and how many transactions went with it."""
        self._logger.info(
            "person_deleted",
            owner_id=str(owner_id),
            person_id=str(person_id),
            transactions_removed=transactions_removed,
        )

    # -------------------------------------------------------------------------
    # Transactions and settlement
    # -------------------------------------------------------------------------

    def transaction_added(
        self,
        owner_id: UUID,
        transaction_id: UUID,
        person_id: UUID,
        direction: str,
        amount: str,
    ) -> None:
        self._logger.info(
            "transaction_added",
            owner_id=str(owner_id),
            transaction_id=str(transaction_id),
            person_id=str(person_id),
            direction=direction,
            amount=amount,
        )

    def settlement_recorded(
        self,
        owner_id: UUID,
        person_id: UUID,
        transaction_id: UUID,
        direction: str,
        amount: str,
    ) -> None:
        self._logger.info(
            "settlement_recorded",
            owner_id=str(owner_id),
            person_id=str(person_id),
            transaction_id=str(transaction_id),
            direction=direction,
            amount=amount,
        )

    def settlement_skipped(self, owner_id: UUID, person_id: UUID) -> None:
        """Balance was already zero; no transaction created."""
        self._logger.info(
            "settlement_skipped",
            owner_id=str(owner_id),
            person_id=str(person_id),
        )

    # -------------------------------------------------------------------------
    # Failures
    # -------------------------------------------------------------------------

    def not_found(self, owner_id: UUID, entity_type: str, entity_id: UUID) -> None:
        self._logger.warning(
            "entity_not_found",
            owner_id=str(owner_id),
            entity_type=entity_type,
            entity_id=str(entity_id),
        )

    def validation_failed(self, operation: str, issues: list[dict]) -> None:
        self._logger.warning(
            "validation_failed",
            operation=operation,
            issues=issues,
        )

    def upstream_failed(
        self,
        operation: str,
        error: str,
        owner_id: Optional[UUID] = None,
    ) -> None:
        self._logger.error(
            "upstream_failed",
            operation=operation,
            error=error,
            owner_id=str(owner_id) if owner_id else None,
        )

    # -------------------------------------------------------------------------
    # Accounts
    # -------------------------------------------------------------------------

    def user_registered(self, user_id: UUID) -> None:
        self._logger.info("user_registered", user_id=str(user_id))

    def registration_rejected(self, email: str, reason: str) -> None:
        self._logger.warning("registration_rejected", email=email, reason=reason)

    def user_logged_in(self, user_id: UUID) -> None:
        self._logger.info("user_logged_in", user_id=str(user_id))

    def login_failed(self, email: Optional[str]) -> None:
        self._logger.warning("login_failed", email=email)
