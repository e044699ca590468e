"""Ledger engine package."""

from dc_ledger.engine.ledger import (
    SETTLEMENT_DESCRIPTION,
    build_settlement,
    compute_all_stats,
    compute_grand_totals,
    compute_stats,
    totals_from_stats,
)

__all__ = [
    "SETTLEMENT_DESCRIPTION",
    "build_settlement",
    "compute_all_stats",
    "compute_grand_totals",
    "compute_stats",
    "totals_from_stats",
]
