"""
Report Models

Everything in this module is DERIVED data: recomputed from stored entries on
every request and never persisted.

DESIGN DECISION: Output models serialize with camelCase aliases
(`model_dump(by_alias=True)`) so the export/charting layer receives the
same nested shape regardless of which flow produced it.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    SerializeAsAny,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel

from finance_tracker.models.entries import (
    CATEGORIES_BY_ENTRY_TYPE,
    Bill,
    EntryType,
    Expense,
    PeriodMode,
    Trend,
    utcnow,
)


class ReportModel(BaseModel):
    """Base for derived, camelCase-serializable structures."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_export_dict(self) -> dict:
        """Plain nested data for the export/formatting layer."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


# =============================================================================
# AGGREGATES
# =============================================================================

class CategoryBreakdown(ReportModel):
    """Per-category statistics for one period."""

    category: str
    total: Decimal
    count: int = Field(ge=0)
    avg_amount: Decimal
    percentage: float = Field(
        ge=0.0,
        description="Share of the grand total, 0-100"
    )


class BillCategoryBreakdown(CategoryBreakdown):
    """Category statistics plus per-status bill counts."""

    paid_count: int = 0
    pending_count: int = 0
    overdue_count: int = 0


class MonthlyComparison(ReportModel):
    """
    One calendar month compared across two years.

    NOTE: month buckets ignore the year, so this is a same-month-across-years
    comparison, not a chronological timeline.
    """

    month: str
    current_year: Decimal
    previous_year: Decimal
    growth: Decimal
    growth_percentage: float


class YearlyComparison(ReportModel):
    year: str
    total: Decimal
    growth: Decimal
    growth_percentage: float


class ReportTotals(ReportModel):
    """Current vs previous period totals with trend classification."""

    current: Decimal
    previous: Decimal
    growth: Decimal
    growth_percentage: float
    trend: Trend


class StatusBreakdown(ReportModel):
    paid: int = 0
    pending: int = 0
    overdue: int = 0


class MonthlyTotal(ReportModel):
    """A chronological month bucket (e.g. '2024-03' or 'Mar 2024')."""

    month: str
    amount: Decimal
    count: int


class TotalStats(ReportModel):
    total_amount: Decimal = Decimal("0")
    total_count: int = 0
    avg_amount: Decimal = Decimal("0")


class DateWindow(ReportModel):
    start: date
    end: date


# =============================================================================
# REPORT REQUEST / RESPONSE
# =============================================================================

class ReportRequest(BaseModel):
    """
    What the caller wants reported.

    The owner id comes from the identity provider, never from the payload.
    Months are 1-12.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    owner_id: str = Field(..., min_length=1)
    entry_type: EntryType
    period_mode: PeriodMode = PeriodMode.MONTHLY
    year: int = Field(
        default_factory=lambda: date.today().year,
        ge=1900,
        le=9998,
    )
    month: Optional[int] = Field(default=None, ge=1, le=12)
    categories: Optional[list[str]] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None

    @field_validator("entry_type", mode="before")
    @classmethod
    def accept_plural_entry_type(cls, v):
        if isinstance(v, str):
            try:
                return EntryType(v)
            except ValueError:
                # Left for the enum check, which reports the allowed values
                return v
        return v

    @field_validator("categories", mode="before")
    @classmethod
    def split_categories(cls, v):
        if isinstance(v, str):
            v = v.split(",")
        if v is None:
            return None
        cleaned = [str(item).strip().lower() for item in v if str(item).strip()]
        return cleaned or None

    @model_validator(mode="after")
    def validate_categories_and_range(self) -> "ReportRequest":
        if self.categories:
            allowed = {member.value for member in CATEGORIES_BY_ENTRY_TYPE[self.entry_type]}
            unknown = sorted(set(self.categories) - allowed)
            if unknown:
                raise ValueError(
                    f"Invalid {self.entry_type.value} categories: {', '.join(unknown)}"
                )
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValueError("end_date cannot be before start_date")
        return self


class Report(ReportModel):
    """
    Assembled report for one entry type and one period.

    INVARIANT: sum(category_breakdown[*].total) == totals.current
    """

    entry_type: EntryType
    period_mode: PeriodMode
    year: int
    month: Optional[int] = None
    generated_at: datetime = Field(default_factory=utcnow)
    current_window: DateWindow
    previous_window: DateWindow

    category_breakdown: list[SerializeAsAny[CategoryBreakdown]] = Field(default_factory=list)
    monthly_comparison: Optional[list[MonthlyComparison]] = None
    yearly_comparison: Optional[list[YearlyComparison]] = None
    totals: ReportTotals
    count: int = 0
    average: Decimal = Decimal("0")
    status_breakdown: Optional[StatusBreakdown] = None


class CombinedReport(ReportModel):
    """Expenses and bills reported over the same period."""

    period_mode: PeriodMode
    year: int
    month: Optional[int] = None
    generated_at: datetime = Field(default_factory=utcnow)
    expenses: Report
    bills: Report


# =============================================================================
# READ VIEWS
# =============================================================================

class ExpenseStats(ReportModel):
    category_stats: list[CategoryBreakdown] = Field(default_factory=list)
    monthly_stats: list[MonthlyTotal] = Field(default_factory=list)
    total_stats: TotalStats = Field(default_factory=TotalStats)


class Pagination(ReportModel):
    current: int
    total_pages: int
    count: int
    limit: int


class ExpenseListing(ReportModel):
    expenses: list[Expense] = Field(default_factory=list)
    pagination: Pagination


class StatusSummary(ReportModel):
    count: int = 0
    total_amount: Decimal = Decimal("0")


class BillListing(ReportModel):
    bills: list[Bill] = Field(default_factory=list)
    pagination: Pagination
    summary: dict[str, StatusSummary] = Field(
        default_factory=dict,
        description="Per-status count and total across all of the owner's bills"
    )


class UpcomingBill(ReportModel):
    bill: Bill
    urgency: str
    days_until_due: int


class UpcomingSummary(ReportModel):
    overdue: int = 0
    due_today: int = 0
    due_soon: int = 0
    total: int = 0


class UpcomingBills(ReportModel):
    bills: list[UpcomingBill] = Field(default_factory=list)
    summary: UpcomingSummary = Field(default_factory=UpcomingSummary)


class AmountCount(ReportModel):
    total: Decimal = Decimal("0")
    count: int = 0


class DashboardSummary(ReportModel):
    total_expenses: Decimal
    upcoming_bills: AmountCount
    monthly_expenses: list[MonthlyTotal] = Field(default_factory=list)
    period: DateWindow
