"""Validation package."""

from dc_ledger.validation.validator import LedgerInputValidator

__all__ = ["LedgerInputValidator"]
