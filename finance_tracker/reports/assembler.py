"""
Report Assembler

Builds a complete report for one owner, one entry type and one period by
reading the current and the previous window from the ledger store and
running them through the aggregation engine and the trend calculator.

CRITICAL: For bills the overdue sweep runs BEFORE anything is read, so a
report never shows a lapsed bill as pending.

Windows:
- yearly: January 1 to December 31 of the requested year
- monthly with a month: that calendar month
- monthly without a month: the whole year
- explicit start/end dates in the request replace the computed window
The previous window is always the current one moved back one year.
"""

import calendar
from datetime import date
from typing import Optional
from uuid import UUID

import structlog

from finance_tracker.config import get_settings
from finance_tracker.config.settings import AppSettings
from finance_tracker.lifecycle import BillLifecycleEvaluator
from finance_tracker.models.entries import EntryType, LedgerFilter, PeriodMode
from finance_tracker.models.reports import (
    CombinedReport,
    DateWindow,
    Report,
    ReportRequest,
)
from finance_tracker.reports import aggregation
from finance_tracker.reports.trends import calculate_trend
from finance_tracker.services.storage import (
    BillStorageInterface,
    ExpenseStorageInterface,
)


logger = structlog.get_logger(__name__)


def report_window(
    period_mode: PeriodMode,
    year: int,
    month: Optional[int] = None,
) -> tuple[date, date]:
    """Inclusive (start, end) of the requested period."""
    if period_mode == PeriodMode.MONTHLY and month is not None:
        last_day = calendar.monthrange(year, month)[1]
        return date(year, month, 1), date(year, month, last_day)
    return date(year, 1, 1), date(year, 12, 31)


def one_year_earlier(day: date) -> date:
    """
    Same calendar day one year earlier.

    A month-end maps to the month-end, so Feb 29 becomes Feb 28 and
    Feb 28 of a non-leap year becomes Feb 29 of a leap year.
    """
    year = day.year - 1
    last_day = calendar.monthrange(year, day.month)[1]
    if day.day == calendar.monthrange(day.year, day.month)[1]:
        return date(year, day.month, last_day)
    return date(year, day.month, min(day.day, last_day))


def previous_window(start: date, end: date) -> tuple[date, date]:
    return one_year_earlier(start), one_year_earlier(end)


class ReportAssembler:
    """
    Assembles reports from stored entries.

    Store failures propagate as StorageError. Periods without entries yield
    zeroed reports, never errors.
    """

    def __init__(
        self,
        expense_storage: ExpenseStorageInterface,
        bill_storage: BillStorageInterface,
        evaluator: BillLifecycleEvaluator,
        settings: Optional[AppSettings] = None,
    ):
        self._expenses = expense_storage
        self._bills = bill_storage
        self._evaluator = evaluator
        self._settings = settings or get_settings().app

    def resolve_window(self, request: ReportRequest) -> tuple[date, date]:
        start, end = report_window(request.period_mode, request.year, request.month)
        start = request.start_date or start
        end = request.end_date or end
        if end < start:
            raise ValueError(
                f"Report window is empty: {start.isoformat()} is after {end.isoformat()}"
            )
        return start, end

    async def _fetch(self, request: ReportRequest, ledger_filter: LedgerFilter) -> list:
        if request.entry_type == EntryType.BILL:
            return await self._bills.find_bills(request.owner_id, ledger_filter)
        return await self._expenses.find_expenses(request.owner_id, ledger_filter)

    async def build(
        self,
        request: ReportRequest,
        as_of: Optional[date] = None,
        correlation_id: Optional[UUID] = None,
    ) -> Report:
        """
        Build the report described by `request`.

        Raises:
            ValueError: If explicit dates produce an empty window
            StorageError: If the ledger store fails
        """
        start, end = self.resolve_window(request)
        prev_start, prev_end = previous_window(start, end)

        if request.entry_type == EntryType.BILL:
            await self._evaluator.normalize(request.owner_id, as_of, correlation_id)

        base_filter = LedgerFilter(categories=request.categories)
        current = await self._fetch(request, base_filter.with_window(start, end))
        previous = await self._fetch(request, base_filter.with_window(prev_start, prev_end))

        current_total = aggregation.sum_amounts(current)
        previous_total = aggregation.sum_amounts(previous)

        if request.entry_type == EntryType.BILL:
            breakdown = aggregation.breakdown_bills_by_category(current)
            statuses = aggregation.status_breakdown(current)
        else:
            breakdown = aggregation.breakdown_by_category(current)
            statuses = None

        monthly = None
        yearly = None
        if request.period_mode == PeriodMode.MONTHLY:
            monthly = aggregation.monthly_comparison(current, previous)
        else:
            yearly = aggregation.yearly_comparison([
                (prev_start.year, previous_total),
                (start.year, current_total),
            ])

        report = Report(
            entry_type=request.entry_type,
            period_mode=request.period_mode,
            year=request.year,
            month=request.month,
            current_window=DateWindow(start=start, end=end),
            previous_window=DateWindow(start=prev_start, end=prev_end),
            category_breakdown=breakdown,
            monthly_comparison=monthly,
            yearly_comparison=yearly,
            totals=calculate_trend(
                current_total,
                previous_total,
                self._settings.trend_threshold_percent,
            ),
            count=len(current),
            average=aggregation.average(current_total, len(current)),
            status_breakdown=statuses,
        )

        logger.info(
            "report_assembled",
            owner_id=request.owner_id,
            entry_type=request.entry_type.value,
            period_mode=request.period_mode.value,
            window_start=start.isoformat(),
            window_end=end.isoformat(),
            entry_count=report.count,
        )
        return report

    async def build_combined(
        self,
        request: ReportRequest,
        as_of: Optional[date] = None,
        correlation_id: Optional[UUID] = None,
    ) -> CombinedReport:
        """
        Expenses and bills over the same period.

        Category filters are type-specific, so they are not applied here.
        """
        expenses = await self.build(
            request.model_copy(update={"entry_type": EntryType.EXPENSE, "categories": None}),
            as_of,
            correlation_id,
        )
        bills = await self.build(
            request.model_copy(update={"entry_type": EntryType.BILL, "categories": None}),
            as_of,
            correlation_id,
        )
        return CombinedReport(
            period_mode=request.period_mode,
            year=request.year,
            month=request.month,
            expenses=expenses,
            bills=bills,
        )
