"""Operational logging package."""

from dc_ledger.logs.logger import LedgerLogger, configure_logging

__all__ = ["LedgerLogger", "configure_logging"]
