"""
Two-Stage Entry Validation

DESIGN DECISION: Validation happens in two distinct stages:

STAGE 1 - SCHEMA VALIDATION:
- Type checking
- Required field presence
- Allowed categories, statuses and recurring periods
- Positive amounts, well-formed dates
- This stage BLOCKS: nothing is persisted or aggregated after a failure

STAGE 2 - SEMANTIC VALIDATION:
- Expense dates far in the future
- Absurd amounts
- This stage only WARNS: the entry is still accepted

IMPORTANT: A payload is never repaired. A negative amount or unknown
category is rejected with the offending field named.
"""

from datetime import date, timedelta
from decimal import Decimal
from typing import Any, Mapping, Optional, Union

import structlog
from pydantic import BaseModel, ValidationError

from finance_tracker.config import get_settings
from finance_tracker.config.settings import AppSettings
from finance_tracker.errors import EntryValidationFailed
from finance_tracker.models.entries import (
    Bill,
    BillInput,
    BillUpdate,
    Expense,
    ExpenseInput,
    ValidationIssue,
    ValidationResult,
    utcnow,
)
from finance_tracker.models.reports import ReportRequest


logger = structlog.get_logger(__name__)

Payload = Union[Mapping[str, Any], BaseModel]

_CHOICE_ERRORS = {"enum", "literal_error"}


def _issue_type(error_type: str) -> str:
    if error_type == "missing":
        return "missing"
    if error_type in _CHOICE_ERRORS:
        return "invalid_choice"
    if error_type.endswith("_parsing") or error_type.endswith("_type"):
        return "invalid_format"
    return "invalid_value"


def issues_from_error(error: ValidationError) -> list[ValidationIssue]:
    """Translate pydantic errors into ValidationIssues, one per error."""
    issues = []
    for item in error.errors():
        location = ".".join(str(part) for part in item["loc"])
        issues.append(ValidationIssue(
            field=location or "entry",
            issue_type=_issue_type(item["type"]),
            message=item["msg"],
            severity="error",
        ))
    return issues


class EntryValidator:
    """
    Validates expense, bill and report payloads.

    Every `build_*` method returns a domain model or raises
    EntryValidationFailed whose details are the ValidationResult.
    """

    def __init__(self, settings: Optional[AppSettings] = None):
        self._settings = settings or get_settings().app

    # =========================================================================
    # STAGES
    # =========================================================================

    def _validate_schema(self, model: type[BaseModel], payload: Payload, entity_type: str):
        """
        Stage 1: Schema validation.

        Returns the parsed payload or raises EntryValidationFailed.
        """
        try:
            return model.model_validate(payload)
        except ValidationError as e:
            self._fail(entity_type, issues_from_error(e))

    def _validate_semantic(
        self,
        amount: Optional[Decimal],
        entry_date: Optional[date] = None,
    ) -> list[ValidationIssue]:
        """
        Stage 2: Semantic validation.

        Checks:
        - Entry dates beyond the future tolerance (expenses only)
        - Absurd amounts
        """
        issues = []

        if entry_date is not None:
            max_future_date = date.today() + timedelta(
                days=self._settings.future_date_tolerance_days
            )
            if entry_date > max_future_date:
                issues.append(ValidationIssue(
                    field="spent_on",
                    issue_type="future_date",
                    message=f"Expense date ({entry_date}) is in the future",
                    severity="warning",
                ))

        max_amount = Decimal(str(self._settings.max_entry_amount))
        if amount is not None and amount > max_amount:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="suspicious_value",
                message=f"Amount ({amount:,.2f}) seems unusually high",
                severity="warning",
            ))

        return issues

    def _fail(self, entity_type: str, issues: list[ValidationIssue]):
        result = ValidationResult(entity_type=entity_type, schema_valid=False, issues=issues)
        logger.info(
            "validation_failed",
            entity_type=entity_type,
            fields=[issue.field for issue in issues],
        )
        raise EntryValidationFailed(
            f"Invalid {entity_type}: " + "; ".join(
                f"{issue.field}: {issue.message}" for issue in issues
            ),
            details=result.model_dump(mode="json"),
        )

    def _warn(self, entity_type: str, warnings: list[ValidationIssue]) -> None:
        for issue in warnings:
            logger.warning(
                "validation_warning",
                entity_type=entity_type,
                field=issue.field,
                issue_type=issue.issue_type,
                message=issue.message,
            )

    def _check_owner(self, owner_id: str, entity_type: str) -> None:
        if not owner_id or not owner_id.strip():
            self._fail(entity_type, [ValidationIssue(
                field="owner_id",
                issue_type="missing",
                message="Owner id is required",
                severity="error",
            )])

    # =========================================================================
    # PUBLIC API
    # =========================================================================

    def validate_expense(self, payload: Payload) -> ValidationResult:
        """Run both stages without raising. Useful for previews."""
        try:
            parsed = ExpenseInput.model_validate(payload)
        except ValidationError as e:
            return ValidationResult(
                entity_type="expense",
                schema_valid=False,
                issues=issues_from_error(e),
            )
        return ValidationResult(
            entity_type="expense",
            schema_valid=True,
            issues=self._validate_semantic(parsed.amount, parsed.spent_on),
        )

    def build_expense(self, owner_id: str, payload: Payload) -> Expense:
        self._check_owner(owner_id, "expense")
        parsed = self._validate_schema(ExpenseInput, payload, "expense")
        self._warn("expense", self._validate_semantic(parsed.amount, parsed.spent_on))
        return Expense(owner_id=owner_id, **parsed.model_dump())

    def replace_expense(self, existing: Expense, payload: Payload) -> Expense:
        """Edits replace every editable field of the expense."""
        parsed = self._validate_schema(ExpenseInput, payload, "expense")
        self._warn("expense", self._validate_semantic(parsed.amount, parsed.spent_on))
        return existing.model_copy(update={**parsed.model_dump(), "updated_at": utcnow()})

    def build_bill(self, owner_id: str, payload: Payload) -> Bill:
        self._check_owner(owner_id, "bill")
        parsed = self._validate_schema(BillInput, payload, "bill")
        self._warn("bill", self._validate_semantic(parsed.amount))
        return Bill(owner_id=owner_id, **parsed.model_dump())

    def apply_bill_update(self, existing: Bill, payload: Payload) -> Bill:
        """
        Apply only the fields that were sent.

        The merged bill is validated again as a whole, so an update cannot
        leave a recurring bill without a period.
        """
        update = self._validate_schema(BillUpdate, payload, "bill")
        changes = update.model_dump(exclude_unset=True)

        merged = existing.model_dump()
        merged.update(changes)
        merged["updated_at"] = utcnow()
        try:
            bill = Bill.model_validate(merged)
        except ValidationError as e:
            self._fail("bill", issues_from_error(e))

        self._warn("bill", self._validate_semantic(changes.get("amount")))
        return bill

    def validate_report_request(self, owner_id: str, params: Mapping[str, Any]) -> ReportRequest:
        """Parse report parameters, rejecting categories the entry type does not have."""
        self._check_owner(owner_id, "report")
        try:
            return ReportRequest.model_validate({**params, "owner_id": owner_id})
        except ValidationError as e:
            self._fail("report", issues_from_error(e))
