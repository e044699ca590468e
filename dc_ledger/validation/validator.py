"""
Boundary Validation

DESIGN DECISION: Raw input from the presentation layer is turned into
typed drafts HERE, before it reaches the service or the engine.

Checks:
- Person name present and not too long
- Person id present and a valid UUID
- Amount present, numeric, finite, greater than zero, at most 2 decimals
- Direction is exactly one of credit / debit
- Description not too long
- Date, when given, is timezone-aware

IMPORTANT: Validation NEVER silently fixes values.
The only defaults applied are documented ones: whitespace is stripped
and a blank description becomes the configured placeholder.
All issues are collected and raised together.
"""

from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Optional
from uuid import UUID

from dc_ledger.config import LedgerSettings
from dc_ledger.errors import ValidationError
from dc_ledger.models.ledger import (
    Direction,
    NewPerson,
    NewTransaction,
    ValidationIssue,
)


CENT = Decimal("0.01")


class LedgerInputValidator:
    """Validates people and transaction input coming from the user."""

    def __init__(self, settings: Optional[LedgerSettings] = None):
        """
        Initialize validator.

        Args:
            settings: Ledger settings for length limits and the
                      description placeholder. Defaults are used if None.
        """
        self._settings = settings or LedgerSettings()

    def validate_person(self, name: Any) -> NewPerson:
        """
        Validate input for a new person.

        Raises:
            ValidationError: If the name is missing or too long
        """
        issues = []
        cleaned = name.strip() if isinstance(name, str) else ""

        if not cleaned:
            issues.append(ValidationIssue(
                field="name",
                issue_type="missing",
                message="Name is required",
            ))
        elif len(cleaned) > self._settings.max_name_length:
            issues.append(ValidationIssue(
                field="name",
                issue_type="too_long",
                message=f"Name must be at most {self._settings.max_name_length} characters",
            ))

        self._raise_for_issues("Invalid person", issues)
        return NewPerson(name=cleaned)

    def validate_transaction(
        self,
        person_id: Any,
        amount: Any,
        direction: Any,
        description: Optional[str] = None,
        occurred_at: Optional[datetime] = None,
    ) -> NewTransaction:
        """
        Validate input for a new transaction.

        Args:
            person_id: UUID or UUID string of the counterparty
            amount: Positive number (Decimal, int, float or numeric string)
            direction: Direction or "credit"/"debit" (any case)
            description: Optional free text
            occurred_at: Optional date of the movement

        Returns:
            A NewTransaction draft ready for the service

        Raises:
            ValidationError: With every issue found
        """
        issues = []

        parsed_person_id = self._parse_person_id(person_id, issues)
        parsed_amount = self._parse_amount(amount, issues)
        parsed_direction = self._parse_direction(direction, issues)

        cleaned_description = (description or "").strip()
        if not cleaned_description:
            cleaned_description = self._settings.default_description
        elif len(cleaned_description) > self._settings.max_description_length:
            issues.append(ValidationIssue(
                field="description",
                issue_type="too_long",
                message=(
                    "Description must be at most "
                    f"{self._settings.max_description_length} characters"
                ),
            ))

        self._check_occurred_at(occurred_at, issues)

        self._raise_for_issues("Invalid transaction", issues)

        return NewTransaction(
            person_id=parsed_person_id,
            amount=parsed_amount,
            direction=parsed_direction,
            description=cleaned_description,
            occurred_at=occurred_at,
        )

    def _check_occurred_at(self, value: Any, issues: list) -> None:
        if value is None:
            return
        if not isinstance(value, datetime):
            issues.append(ValidationIssue(
                field="occurred_at",
                issue_type="invalid_value",
                message="Date must be a datetime",
            ))
        elif value.tzinfo is None or value.utcoffset() is None:
            # Stored timestamps are all timezone-aware and sorted together
            issues.append(ValidationIssue(
                field="occurred_at",
                issue_type="invalid_value",
                message="Date must include a timezone",
            ))

    def _parse_person_id(self, value: Any, issues: list) -> Optional[UUID]:
        if value is None or value == "":
            issues.append(ValidationIssue(
                field="person_id",
                issue_type="missing",
                message="Person is required",
            ))
            return None
        if isinstance(value, UUID):
            return value
        try:
            return UUID(str(value))
        except ValueError:
            issues.append(ValidationIssue(
                field="person_id",
                issue_type="invalid_value",
                message=f"Not a valid person id: {value}",
            ))
            return None

    def _parse_amount(self, value: Any, issues: list) -> Optional[Decimal]:
        if value is None or (isinstance(value, str) and not value.strip()):
            issues.append(ValidationIssue(
                field="amount",
                issue_type="missing",
                message="Amount is required",
            ))
            return None

        # bool is an int subclass; True is not an amount
        if isinstance(value, bool):
            amount = None
        elif isinstance(value, Decimal):
            amount = value
        elif isinstance(value, (int, float, str)):
            try:
                amount = Decimal(str(value).strip())
            except InvalidOperation:
                amount = None
        else:
            amount = None

        if amount is None or not amount.is_finite():
            issues.append(ValidationIssue(
                field="amount",
                issue_type="invalid_value",
                message=f"Amount must be a number: {value}",
            ))
            return None

        if amount <= 0:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="invalid_value",
                message="Amount must be greater than zero",
            ))
            return None

        try:
            quantized = amount.quantize(CENT)
        except InvalidOperation:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="invalid_value",
                message=f"Amount is too large: {value}",
            ))
            return None

        if amount != quantized:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="invalid_value",
                message="Amount can have at most 2 decimal places",
            ))
            return None

        return quantized

    def _parse_direction(self, value: Any, issues: list) -> Optional[Direction]:
        if isinstance(value, Direction):
            return value
        if isinstance(value, str) and value.strip():
            try:
                return Direction(value.strip().lower())
            except ValueError:
                pass
            issues.append(ValidationIssue(
                field="direction",
                issue_type="invalid_value",
                message=f"Direction must be 'credit' or 'debit', got '{value}'",
            ))
            return None
        issues.append(ValidationIssue(
            field="direction",
            issue_type="missing",
            message="Direction is required",
        ))
        return None

    @staticmethod
    def _raise_for_issues(message: str, issues: list[ValidationIssue]) -> None:
        if issues:
            details = "; ".join(issue.message for issue in issues)
            raise ValidationError(f"{message}: {details}", issues=issues)
