"""
Error taxonomy for the ledger.

DESIGN DECISION: Callers get one specific error kind per failure mode.
NotFoundError is raised both when an entity does not exist and when it
belongs to another owner - the two cases are indistinguishable on purpose.
"""

from typing import Optional


class LedgerError(Exception):
    """Base exception for all ledger errors."""
    pass


class ValidationError(LedgerError):
    """
    Required input is missing or invalid.

    Carries the individual issues so the presentation layer can show
    every problem at once.
    """

    def __init__(self, message: str, issues: Optional[list] = None):
        super().__init__(message)
        self.issues = issues or []


class NotFoundError(LedgerError):
    """Entity does not exist for the requesting owner."""
    pass


class ConflictError(LedgerError):
    """A uniqueness constraint would be violated."""
    pass


class UpstreamError(LedgerError):
    """A persistence or identity collaborator failed."""
    pass


class AuthenticationError(LedgerError):
    """Credentials or token could not be verified."""
    pass
