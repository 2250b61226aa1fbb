"""
Tests for report windows and report assembly.
"""

from datetime import date
from decimal import Decimal

import pytest

from finance_tracker.models.entries import (
    BillCategory,
    BillStatus,
    EntryType,
    ExpenseCategory,
    PeriodMode,
    Trend,
)
from finance_tracker.models.reports import ReportRequest
from finance_tracker.reports.assembler import one_year_earlier, previous_window, report_window

from conftest import OTHER_OWNER, OWNER, make_bill, make_expense


class TestReportWindows:
    """Tests for current and previous window computation."""

    def test_month_window(self):
        assert report_window(PeriodMode.MONTHLY, 2024, 4) == (date(2024, 4, 1), date(2024, 4, 30))

    def test_monthly_without_month_covers_year(self):
        assert report_window(PeriodMode.MONTHLY, 2024) == (date(2024, 1, 1), date(2024, 12, 31))

    def test_yearly_window_ignores_month(self):
        assert report_window(PeriodMode.YEARLY, 2023, 7) == (date(2023, 1, 1), date(2023, 12, 31))

    def test_previous_window_is_one_year_back(self):
        assert previous_window(date(2024, 3, 1), date(2024, 3, 31)) == (
            date(2023, 3, 1),
            date(2023, 3, 31),
        )

    def test_leap_day_maps_to_month_end(self):
        assert one_year_earlier(date(2024, 2, 29)) == date(2023, 2, 28)
        assert one_year_earlier(date(2025, 2, 28)) == date(2024, 2, 29)
        assert one_year_earlier(date(2025, 2, 14)) == date(2024, 2, 14)


class TestReportAssembler:
    """Tests for ReportAssembler.build."""

    @pytest.mark.asyncio
    async def test_monthly_expense_report(self, assembler, expense_storage):
        for expense in (
            make_expense("30", ExpenseCategory.FOOD, date(2024, 3, 2)),
            make_expense("20", ExpenseCategory.FOOD, date(2024, 3, 10)),
            make_expense("60", ExpenseCategory.TRANSPORTATION, date(2024, 3, 31)),
            make_expense("100", ExpenseCategory.FOOD, date(2023, 3, 15)),
            make_expense("999", ExpenseCategory.FOOD, date(2024, 4, 1)),
            make_expense("500", ExpenseCategory.FOOD, date(2024, 3, 5), owner_id=OTHER_OWNER),
        ):
            await expense_storage.save_expense(expense)

        report = await assembler.build(
            ReportRequest(owner_id=OWNER, entry_type="expense", year=2024, month=3)
        )

        assert report.current_window.start == date(2024, 3, 1)
        assert report.previous_window.end == date(2023, 3, 31)
        assert [row.category for row in report.category_breakdown] == ["transportation", "food"]
        assert report.totals.current == Decimal("110")
        assert report.totals.previous == Decimal("100")
        assert report.totals.growth_percentage == pytest.approx(10.0)
        assert report.totals.trend == Trend.UP
        assert report.count == 3
        assert report.average == Decimal("36.67")
        assert len(report.monthly_comparison) == 12
        assert report.yearly_comparison is None
        assert report.status_breakdown is None

    @pytest.mark.asyncio
    async def test_breakdown_sums_to_current_total(self, assembler, expense_storage):
        for amount, category in (
            ("19.99", ExpenseCategory.SHOPPING),
            ("3.50", ExpenseCategory.FOOD),
            ("44.01", ExpenseCategory.ENTERTAINMENT),
            ("0.50", ExpenseCategory.FOOD),
        ):
            await expense_storage.save_expense(make_expense(amount, category, date(2024, 8, 8)))

        report = await assembler.build(
            ReportRequest(owner_id=OWNER, entry_type="expense", year=2024, period_mode="yearly")
        )

        assert sum(row.total for row in report.category_breakdown) == report.totals.current
        assert sum(row.percentage for row in report.category_breakdown) == pytest.approx(100.0)

    @pytest.mark.asyncio
    async def test_category_filter(self, assembler, expense_storage):
        await expense_storage.save_expense(make_expense("10", ExpenseCategory.FOOD, date(2024, 1, 1)))
        await expense_storage.save_expense(make_expense("40", ExpenseCategory.OTHER, date(2024, 1, 1)))

        report = await assembler.build(
            ReportRequest(owner_id=OWNER, entry_type="expense", year=2024, categories="food")
        )

        assert report.totals.current == Decimal("10")
        assert [row.category for row in report.category_breakdown] == ["food"]

    @pytest.mark.asyncio
    async def test_empty_period_is_zeroed(self, assembler):
        report = await assembler.build(
            ReportRequest(owner_id=OWNER, entry_type="bill", year=2020, month=2)
        )

        assert report.category_breakdown == []
        assert report.totals.current == Decimal("0")
        assert report.totals.trend == Trend.STABLE
        assert report.count == 0
        assert report.average == Decimal("0")
        assert report.status_breakdown.paid == 0
        assert all(row.current_year == 0 for row in report.monthly_comparison)

    @pytest.mark.asyncio
    async def test_yearly_report_compares_two_years(self, assembler, expense_storage):
        await expense_storage.save_expense(make_expense("150", spent_on=date(2024, 6, 1)))
        await expense_storage.save_expense(make_expense("100", spent_on=date(2023, 2, 1)))

        report = await assembler.build(
            ReportRequest(owner_id=OWNER, entry_type="expense", year=2024, period_mode="yearly")
        )

        assert report.monthly_comparison is None
        assert [(row.year, row.total) for row in report.yearly_comparison] == [
            ("2023", Decimal("100")),
            ("2024", Decimal("150")),
        ]
        assert report.yearly_comparison[1].growth_percentage == pytest.approx(50.0)

    @pytest.mark.asyncio
    async def test_bill_report_sweeps_first(self, assembler, bill_storage):
        lapsed = make_bill("75", due_date=date(2024, 5, 10), category=BillCategory.RENT)
        paid = make_bill("25", due_date=date(2024, 5, 1), status=BillStatus.PAID)
        await bill_storage.save_bill(lapsed)
        await bill_storage.save_bill(paid)

        report = await assembler.build(
            ReportRequest(owner_id=OWNER, entry_type="bill", year=2024, month=5),
            as_of=date(2024, 6, 1),
        )

        assert report.status_breakdown.overdue == 1
        assert report.status_breakdown.paid == 1
        assert report.status_breakdown.pending == 0
        rent = report.category_breakdown[0]
        assert rent.category == "rent"
        assert rent.overdue_count == 1
        assert (await bill_storage.get_bill(OWNER, lapsed.id)).status == BillStatus.OVERDUE

    @pytest.mark.asyncio
    async def test_explicit_dates_override_window(self, assembler, expense_storage):
        await expense_storage.save_expense(make_expense("10", spent_on=date(2024, 3, 10)))
        await expense_storage.save_expense(make_expense("20", spent_on=date(2024, 3, 20)))

        report = await assembler.build(ReportRequest(
            owner_id=OWNER,
            entry_type="expense",
            year=2024,
            month=3,
            start_date=date(2024, 3, 15),
        ))

        assert report.current_window.start == date(2024, 3, 15)
        assert report.current_window.end == date(2024, 3, 31)
        assert report.totals.current == Decimal("20")

    def test_start_after_computed_end_is_rejected(self, assembler):
        request = ReportRequest(
            owner_id=OWNER,
            entry_type="expense",
            year=2024,
            month=3,
            start_date=date(2024, 12, 1),
        )
        with pytest.raises(ValueError, match="Report window is empty"):
            assembler.resolve_window(request)

    @pytest.mark.asyncio
    async def test_combined_report(self, assembler, expense_storage, bill_storage):
        await expense_storage.save_expense(make_expense("40", spent_on=date(2024, 2, 2)))
        await bill_storage.save_bill(make_bill("60", due_date=date(2024, 2, 20)))

        combined = await assembler.build_combined(
            ReportRequest(owner_id=OWNER, entry_type="expense", year=2024, month=2),
            as_of=date(2024, 2, 1),
        )

        assert combined.expenses.entry_type == EntryType.EXPENSE
        assert combined.bills.entry_type == EntryType.BILL
        assert combined.expenses.totals.current == Decimal("40")
        assert combined.bills.totals.current == Decimal("60")
        exported = combined.to_export_dict()
        assert "categoryBreakdown" in exported["bills"]
        assert "paidCount" in exported["bills"]["categoryBreakdown"][0]
