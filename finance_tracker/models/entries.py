"""
Core Ledger Models for Finance Tracker

These models define the strict schemas for every entry the system stores.
They are designed to:
1. Enforce type safety at runtime
2. Provide clear validation error messages
3. Be serializable for storage and logging
4. Share ONE definition of every enumeration across validation,
   storage and aggregation

DESIGN DECISION: We use Pydantic v2 models for both stored entries and the
payloads that create them. Payload models carry no identity or ownership;
the flows attach the owner id supplied by the identity provider.
"""

from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Annotated, Optional, Union
from uuid import UUID, uuid4

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class ExpenseCategory(str, Enum):
    """
    Supported expense categories.

    A fixed set, so category breakdowns group reliably.
    """
    FOOD = "food"
    TRANSPORTATION = "transportation"
    UTILITIES = "utilities"
    ENTERTAINMENT = "entertainment"
    HEALTHCARE = "healthcare"
    SHOPPING = "shopping"
    EDUCATION = "education"
    OTHER = "other"


class BillCategory(str, Enum):
    """Supported bill categories."""
    UTILITIES = "utilities"
    RENT = "rent"
    INSURANCE = "insurance"
    SUBSCRIPTIONS = "subscriptions"
    LOAN = "loan"
    OTHER = "other"


class BillStatus(str, Enum):
    """
    Bill payment status. Exactly one holds at a time.

    CRITICAL: PAID is only ever set by explicit user action.
    PENDING -> OVERDUE happens automatically once the due date has passed.
    OVERDUE -> PENDING only happens by explicit user action.
    """
    PENDING = "pending"
    PAID = "paid"
    OVERDUE = "overdue"

    @classmethod
    def _missing_(cls, value):
        # "upcoming" is the legacy name of the pending state
        if isinstance(value, str):
            normalized = value.strip().lower()
            if normalized == "upcoming":
                return cls.PENDING
            for member in cls:
                if member.value == normalized:
                    return member
        return None


class RecurringPeriod(str, Enum):
    """How often a recurring bill repeats."""
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    YEARLY = "yearly"


class EntryType(str, Enum):
    """Kind of ledger entry a report or export is about."""
    EXPENSE = "expense"
    BILL = "bill"

    @classmethod
    def _missing_(cls, value):
        if isinstance(value, str):
            normalized = value.strip().lower().rstrip("s")
            for member in cls:
                if member.value == normalized:
                    return member
        return None


class PeriodMode(str, Enum):
    """Aggregation window for reports."""
    MONTHLY = "monthly"
    YEARLY = "yearly"


class Trend(str, Enum):
    """Period-over-period trend classification."""
    UP = "up"
    DOWN = "down"
    STABLE = "stable"


CATEGORIES_BY_ENTRY_TYPE: dict[EntryType, type[Enum]] = {
    EntryType.EXPENSE: ExpenseCategory,
    EntryType.BILL: BillCategory,
}

# Fields the stores accept as a sort key
EXPENSE_SORT_FIELDS = frozenset({"spent_on", "amount", "category", "created_at", "updated_at"})
BILL_SORT_FIELDS = frozenset({"due_date", "amount", "category", "status", "title", "created_at", "updated_at"})


def _normalize_status(value):
    if isinstance(value, str) and value.strip().lower() == "upcoming":
        return BillStatus.PENDING
    return value


Amount = Annotated[
    Decimal,
    Field(gt=0, decimal_places=2, description="Amount in account currency"),
]


# =============================================================================
# STORED ENTRIES
# =============================================================================

class Expense(BaseModel):
    """
    A single recorded expense.

    Expenses never change status on their own; they are only edited or
    deleted on request of their owner.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(
        default_factory=uuid4,
        description="Unique expense ID"
    )
    owner_id: str = Field(
        ...,
        min_length=1,
        description="Identifier of the owning user"
    )
    category: ExpenseCategory
    amount: Amount
    spent_on: date = Field(
        ...,
        description="Calendar date of the spend"
    )
    note: Optional[str] = Field(
        default=None,
        max_length=1000,
    )
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    @property
    def entry_date(self) -> date:
        return self.spent_on

    @property
    def search_text(self) -> str:
        return self.note or ""


class Bill(BaseModel):
    """
    A payable obligation.

    Status rules are enforced by the lifecycle evaluator, not here:
    this model only guarantees that the stored shape is well-formed.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(
        default_factory=uuid4,
        description="Unique bill ID"
    )
    owner_id: str = Field(
        ...,
        min_length=1,
        description="Identifier of the owning user"
    )
    title: str = Field(
        ...,
        min_length=1,
        max_length=200,
    )
    amount: Amount
    due_date: date
    category: BillCategory
    status: BillStatus = Field(default=BillStatus.PENDING)
    description: Optional[str] = Field(
        default=None,
        max_length=1000,
    )
    is_recurring: bool = False
    recurring_period: Optional[RecurringPeriod] = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    @field_validator("status", mode="before")
    @classmethod
    def accept_upcoming_alias(cls, v):
        return _normalize_status(v)

    @model_validator(mode="after")
    def validate_recurrence(self) -> "Bill":
        """A recurring bill needs a period; a one-off bill never keeps one."""
        if self.is_recurring and self.recurring_period is None:
            raise ValueError("Recurring bills require a recurring period")
        if not self.is_recurring:
            self.recurring_period = None
        return self

    @property
    def entry_date(self) -> date:
        return self.due_date

    @property
    def search_text(self) -> str:
        return f"{self.title} {self.description or ''}"


LedgerEntry = Union[Expense, Bill]


# =============================================================================
# INPUT PAYLOADS
# =============================================================================

class ExpenseInput(BaseModel):
    """
    Payload for creating an expense or replacing one on edit.

    Edits replace every field, so the same payload serves both.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    category: ExpenseCategory
    amount: Amount
    spent_on: date = Field(
        default_factory=date.today,
        validation_alias=AliasChoices("spent_on", "date"),
    )
    note: Optional[str] = Field(default=None, max_length=1000)


class BillInput(BaseModel):
    """Payload for creating a bill."""
    model_config = ConfigDict(str_strip_whitespace=True)

    title: str = Field(..., min_length=1, max_length=200)
    amount: Amount
    due_date: date
    category: BillCategory
    status: BillStatus = BillStatus.PENDING
    description: Optional[str] = Field(default=None, max_length=1000)
    is_recurring: bool = False
    recurring_period: Optional[RecurringPeriod] = None

    @field_validator("status", mode="before")
    @classmethod
    def accept_upcoming_alias(cls, v):
        return _normalize_status(v)

    @model_validator(mode="after")
    def validate_recurrence(self) -> "BillInput":
        if self.is_recurring and self.recurring_period is None:
            raise ValueError("Recurring bills require a recurring period")
        return self


class BillUpdate(BaseModel):
    """
    Partial bill update. Only the fields that were actually sent are applied.

    This is also the ONLY way a bill becomes paid, or goes back from
    overdue to pending.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    amount: Optional[Decimal] = Field(default=None, gt=0, decimal_places=2)
    due_date: Optional[date] = None
    category: Optional[BillCategory] = None
    status: Optional[BillStatus] = None
    description: Optional[str] = Field(default=None, max_length=1000)
    is_recurring: Optional[bool] = None
    recurring_period: Optional[RecurringPeriod] = None

    @field_validator("status", mode="before")
    @classmethod
    def accept_upcoming_alias(cls, v):
        return _normalize_status(v)


# =============================================================================
# QUERY FILTER
# =============================================================================

class LedgerFilter(BaseModel):
    """
    Typed filter for store queries.

    DESIGN DECISION: One immutable value object with explicit optional fields
    replaces ad-hoc query dictionaries. Every store implementation filters with
    `matches`, so the meaning of a filter cannot drift between backends.
    """
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    categories: Optional[frozenset[str]] = Field(
        default=None,
        description="Allow-list of category values"
    )
    date_from: Optional[date] = Field(
        default=None,
        description="Inclusive lower bound on the entry date"
    )
    date_to: Optional[date] = Field(
        default=None,
        description="Inclusive upper bound on the entry date"
    )
    statuses: Optional[frozenset[BillStatus]] = None
    search: Optional[str] = Field(
        default=None,
        description="Case-insensitive text search over title, description and note"
    )

    @field_validator("categories", mode="before")
    @classmethod
    def normalize_categories(cls, v):
        if v is None:
            return None
        values = {
            (item.value if isinstance(item, Enum) else str(item)).strip().lower()
            for item in v
        }
        values.discard("")
        return frozenset(values) or None

    @field_validator("statuses", mode="before")
    @classmethod
    def normalize_statuses(cls, v):
        if v is None:
            return None
        statuses = frozenset(_normalize_status(item) for item in v)
        return statuses or None

    @field_validator("search")
    @classmethod
    def blank_search_is_none(cls, v: Optional[str]) -> Optional[str]:
        return v or None

    @model_validator(mode="after")
    def validate_range(self) -> "LedgerFilter":
        if self.date_from and self.date_to and self.date_to < self.date_from:
            raise ValueError("date_to cannot be before date_from")
        return self

    def with_window(self, date_from: Optional[date], date_to: Optional[date]) -> "LedgerFilter":
        """Same filter over a different date range."""
        return self.model_copy(update={"date_from": date_from, "date_to": date_to})

    def matches(self, entry: LedgerEntry) -> bool:
        if self.categories is not None and entry.category.value not in self.categories:
            return False

        entry_date = entry.entry_date
        if self.date_from and entry_date < self.date_from:
            return False
        if self.date_to and entry_date > self.date_to:
            return False

        if self.statuses is not None:
            status = getattr(entry, "status", None)
            if status not in self.statuses:
                return False

        if self.search and self.search.lower() not in entry.search_text.lower():
            return False

        return True


# =============================================================================
# VALIDATION RESULTS
# =============================================================================

class ValidationIssue(BaseModel):
    """A single validation issue found."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'invalid_format', 'suspicious_value')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        ...,
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )


class ValidationResult(BaseModel):
    """
    Result of the two-stage validation.

    Stage 1: Schema validation (types, required fields, allowed values)
    Stage 2: Semantic validation (plausibility checks, warnings only)
    """

    entity_type: str
    validated_at: datetime = Field(default_factory=utcnow)
    schema_valid: bool
    issues: list[ValidationIssue] = Field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return self.schema_valid and not any(
            issue.severity == "error" for issue in self.issues
        )

    @property
    def warnings(self) -> list[str]:
        return [issue.message for issue in self.issues if issue.severity == "warning"]
