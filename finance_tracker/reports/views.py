"""
Read-side Ledger Views

Listings and summaries used by the bill list, the upcoming-bills reminder,
expense statistics and the dashboard.

CRITICAL: Every view that shows bills runs the overdue sweep first.
"""

import calendar
import math
from datetime import date, timedelta
from typing import Optional
from uuid import UUID

from finance_tracker.config import get_settings
from finance_tracker.config.settings import AppSettings
from finance_tracker.lifecycle import (
    URGENCY_DUE_TODAY,
    URGENCY_OVERDUE,
    BillLifecycleEvaluator,
    bill_urgency,
    days_until_due,
)
from finance_tracker.models.entries import BillStatus, LedgerFilter
from finance_tracker.models.reports import (
    AmountCount,
    BillListing,
    DashboardSummary,
    DateWindow,
    ExpenseStats,
    MonthlyTotal,
    Pagination,
    StatusSummary,
    UpcomingBill,
    UpcomingBills,
    UpcomingSummary,
)
from finance_tracker.reports import aggregation
from finance_tracker.services.storage import (
    BillStorageInterface,
    ExpenseStorageInterface,
)


def month_bounds(day: date) -> tuple[date, date]:
    last_day = calendar.monthrange(day.year, day.month)[1]
    return day.replace(day=1), day.replace(day=last_day)


def months_back(day: date, months: int) -> date:
    """First day of the month `months` calendar months before `day`'s month."""
    index = day.year * 12 + (day.month - 1) - months
    return date(index // 12, index % 12 + 1, 1)


class LedgerViews:
    """Owner-scoped read models over the ledger store."""

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

    # =========================================================================
    # BILLS
    # =========================================================================

    async def list_bills(
        self,
        owner_id: str,
        ledger_filter: Optional[LedgerFilter] = None,
        page: int = 1,
        limit: Optional[int] = None,
        as_of: Optional[date] = None,
        correlation_id: Optional[UUID] = None,
    ) -> BillListing:
        """
        One page of bills ordered by due date, plus a per-status summary.

        The summary covers all of the owner's bills, not just the filtered
        ones.
        """
        await self._evaluator.normalize(owner_id, as_of, correlation_id)

        limit = min(limit or self._settings.default_page_size, self._settings.max_page_size)
        page = max(page, 1)

        count = await self._bills.count_bills(owner_id, ledger_filter)
        bills = await self._bills.find_bills(
            owner_id,
            ledger_filter,
            sort_by="due_date",
            limit=limit,
            offset=(page - 1) * limit,
        )

        summary = {status.value: StatusSummary() for status in BillStatus}
        for bill in await self._bills.find_bills(owner_id):
            entry = summary[bill.status.value]
            entry.count += 1
            entry.total_amount += bill.amount

        return BillListing(
            bills=bills,
            pagination=Pagination(
                current=page,
                total_pages=math.ceil(count / limit),
                count=count,
                limit=limit,
            ),
            summary=summary,
        )

    async def upcoming_bills(
        self,
        owner_id: str,
        days: Optional[int] = None,
        limit: int = 10,
        as_of: Optional[date] = None,
        correlation_id: Optional[UUID] = None,
    ) -> UpcomingBills:
        """
        Overdue bills and pending bills due within `days`, soonest first.

        Summary counts cover every matching bill; `total` is the size of the
        returned list.
        """
        as_of = as_of or date.today()
        if days is None:
            days = self._settings.upcoming_window_days
        await self._evaluator.normalize(owner_id, as_of, correlation_id)

        horizon = as_of + timedelta(days=days)
        overdue = await self._bills.find_bills(
            owner_id, LedgerFilter(statuses={BillStatus.OVERDUE})
        )
        pending = await self._bills.find_bills(
            owner_id, LedgerFilter(statuses={BillStatus.PENDING}, date_to=horizon)
        )
        matching = sorted(overdue + pending, key=lambda bill: bill.due_date)

        summary = UpcomingSummary(overdue=len(overdue))
        for bill in pending:
            urgency = bill_urgency(bill, as_of)
            if urgency == URGENCY_DUE_TODAY:
                summary.due_today += 1
            elif urgency != URGENCY_OVERDUE:
                summary.due_soon += 1

        items = [
            UpcomingBill(
                bill=bill,
                urgency=bill_urgency(bill, as_of),
                days_until_due=days_until_due(bill, as_of),
            )
            for bill in matching[:limit]
        ]
        summary.total = len(items)
        return UpcomingBills(bills=items, summary=summary)

    # =========================================================================
    # EXPENSES
    # =========================================================================

    async def expense_stats(
        self,
        owner_id: str,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        categories: Optional[list[str]] = None,
    ) -> ExpenseStats:
        expenses = await self._expenses.find_expenses(
            owner_id,
            LedgerFilter(categories=categories, date_from=date_from, date_to=date_to),
        )
        return ExpenseStats(
            category_stats=aggregation.breakdown_by_category(expenses),
            monthly_stats=aggregation.monthly_timeline(expenses),
            total_stats=aggregation.total_stats(expenses),
        )

    # =========================================================================
    # DASHBOARD
    # =========================================================================

    async def dashboard_summary(
        self,
        owner_id: str,
        as_of: Optional[date] = None,
        correlation_id: Optional[UUID] = None,
    ) -> DashboardSummary:
        """
        Current-month spend, pending bills coming up, and recent monthly
        expense totals labelled like 'Mar 2024'.
        """
        as_of = as_of or date.today()
        month_start, month_end = month_bounds(as_of)

        this_month = await self._expenses.find_expenses(
            owner_id, LedgerFilter(date_from=month_start, date_to=month_end)
        )

        await self._evaluator.normalize(owner_id, as_of, correlation_id)
        upcoming = await self._bills.find_bills(
            owner_id,
            LedgerFilter(
                statuses={BillStatus.PENDING},
                date_from=as_of,
                date_to=as_of + timedelta(days=self._settings.dashboard_upcoming_days),
            ),
        )

        history_start = months_back(as_of, self._settings.dashboard_history_months - 1)
        history = await self._expenses.find_expenses(
            owner_id, LedgerFilter(date_from=history_start, date_to=month_end)
        )
        monthly = []
        for bucket in aggregation.monthly_timeline(history):
            year, month = (int(part) for part in bucket.month.split("-"))
            monthly.append(MonthlyTotal(
                month=f"{calendar.month_abbr[month]} {year}",
                amount=bucket.amount,
                count=bucket.count,
            ))

        return DashboardSummary(
            total_expenses=aggregation.sum_amounts(this_month),
            upcoming_bills=AmountCount(
                total=aggregation.sum_amounts(upcoming),
                count=len(upcoming),
            ),
            monthly_expenses=monthly,
            period=DateWindow(start=month_start, end=month_end),
        )
