"""
Ledger Engine

DESIGN DECISION: Balance derivation is PURE.
Every function here is a deterministic function of its arguments:
- No I/O, no storage access
- No id or timestamp generation
- No configuration read from the environment

Balances are recomputed from the full transaction set on every call.
Nothing is cached and nothing derived is ever stored.

Callers are responsible for passing transactions that already belong
to a single owner.
"""

from decimal import Decimal
from typing import Iterable, Optional
from uuid import UUID

from dc_ledger.models.ledger import (
    ZERO,
    Direction,
    GrandTotals,
    NewTransaction,
    Person,
    PersonStats,
    Transaction,
)


SETTLEMENT_DESCRIPTION = "Full Settlement"


def compute_stats(
    transactions: Iterable[Transaction],
    person_id: UUID,
) -> PersonStats:
    """
    Compute credit, debit and net totals for one person.

    A person with no transactions gets all-zero stats.
    """
    total_credit = ZERO
    total_debit = ZERO

    for tx in transactions:
        if tx.person_id != person_id:
            continue
        if tx.direction == Direction.CREDIT:
            total_credit += tx.amount
        else:
            total_debit += tx.amount

    return PersonStats(
        person_id=person_id,
        total_credit=total_credit,
        total_debit=total_debit,
    )


def compute_all_stats(
    people: Iterable[Person],
    transactions: Iterable[Transaction],
) -> dict[UUID, PersonStats]:
    """
    Compute stats for every person in one pass over the transactions.

    Transactions whose person is not in `people` are ignored.

    Returns:
        Mapping of person id to stats, with an entry for every person
    """
    credits: dict[UUID, Decimal] = {}
    debits: dict[UUID, Decimal] = {}
    for person in people:
        credits[person.id] = ZERO
        debits[person.id] = ZERO

    for tx in transactions:
        if tx.person_id not in credits:
            continue
        if tx.direction == Direction.CREDIT:
            credits[tx.person_id] += tx.amount
        else:
            debits[tx.person_id] += tx.amount

    return {
        person_id: PersonStats(
            person_id=person_id,
            total_credit=credits[person_id],
            total_debit=debits[person_id],
        )
        for person_id in credits
    }


def compute_grand_totals(
    people: Iterable[Person],
    transactions: Iterable[Transaction],
) -> GrandTotals:
    """Sum per-person credit and debit totals across all people."""
    return totals_from_stats(compute_all_stats(people, transactions).values())


def totals_from_stats(stats: Iterable[PersonStats]) -> GrandTotals:
    total_credit = ZERO
    total_debit = ZERO
    for item in stats:
        total_credit += item.total_credit
        total_debit += item.total_debit
    return GrandTotals(total_credit=total_credit, total_debit=total_debit)


def build_settlement(
    person_id: UUID,
    net: Decimal,
) -> Optional[NewTransaction]:
    """
    Build the transaction that zeroes out a person's net balance.

    Net is credit minus debit, so clearing it takes a transaction of the
    opposite polarity:
    - net > 0 (person owes the owner): debit of net
    - net < 0 (owner owes the person): credit of abs(net)
    - net == 0: nothing to do, returns None

    Returns:
        The settlement draft, or None when the balance is already zero
    """
    if net == 0:
        return None

    direction = Direction.DEBIT if net > 0 else Direction.CREDIT
    return NewTransaction(
        person_id=person_id,
        amount=abs(net),
        direction=direction,
        description=SETTLEMENT_DESCRIPTION,
    )
