"""
D/C Ledger - Source Package

A personal credit/debit ledger: track what people owe you and what you
owe them, and settle balances with a single click.

DESIGN PRINCIPLES:
1. History is append-only - balances change only by adding transactions
2. Balances are derived, never stored
3. Every read and write is scoped to one owner
4. Fail early, fail visibly
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "D/C Ledger Team"
