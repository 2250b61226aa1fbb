"""
Tests for the aggregation engine and trend calculator.
"""

from datetime import date
from decimal import Decimal

import pytest

from finance_tracker.models.entries import BillStatus, ExpenseCategory, LedgerFilter, Trend
from finance_tracker.reports.aggregation import (
    average,
    breakdown_bills_by_category,
    breakdown_by_category,
    filter_entries,
    monthly_comparison,
    monthly_timeline,
    status_breakdown,
    total_stats,
    totals_by_month,
    totals_by_year,
    yearly_comparison,
)
from finance_tracker.reports.trends import calculate_trend, classify_trend, compute_growth

from conftest import make_bill, make_expense


class TestCategoryBreakdown:
    """Tests for per-category statistics."""

    def test_food_and_transportation(self):
        entries = [
            make_expense("30", ExpenseCategory.FOOD),
            make_expense("20", ExpenseCategory.FOOD),
            make_expense("50", ExpenseCategory.TRANSPORTATION),
        ]
        rows = breakdown_by_category(entries)

        assert [row.category for row in rows] == ["food", "transportation"]
        food = rows[0]
        assert food.total == Decimal("50")
        assert food.count == 2
        assert food.avg_amount == Decimal("25.00")
        assert food.percentage == pytest.approx(50.0)

    def test_sorted_by_descending_total(self):
        entries = [
            make_expense("5", ExpenseCategory.SHOPPING),
            make_expense("40", ExpenseCategory.HEALTHCARE),
            make_expense("15", ExpenseCategory.FOOD),
        ]
        rows = breakdown_by_category(entries)
        assert [row.category for row in rows] == ["healthcare", "food", "shopping"]

    def test_ties_keep_first_seen_order(self):
        entries = [
            make_expense("10", ExpenseCategory.EDUCATION),
            make_expense("10", ExpenseCategory.FOOD),
        ]
        rows = breakdown_by_category(entries)
        assert [row.category for row in rows] == ["education", "food"]

    def test_totals_and_percentages_add_up(self):
        entries = [
            make_expense("12.34", ExpenseCategory.FOOD),
            make_expense("7.66", ExpenseCategory.SHOPPING),
            make_expense("33.33", ExpenseCategory.OTHER),
            make_expense("0.67", ExpenseCategory.FOOD),
        ]
        rows = breakdown_by_category(entries)

        assert sum(row.total for row in rows) == Decimal("54.00")
        assert sum(row.percentage for row in rows) == pytest.approx(100.0)

    def test_empty_input(self):
        assert breakdown_by_category([]) == []

    def test_average_rounds_to_cents(self):
        assert average(Decimal("10"), 3) == Decimal("3.33")
        assert average(Decimal("0.05"), 2) == Decimal("0.03")
        assert average(Decimal("0"), 0) == Decimal("0")


class TestBillAggregates:
    """Tests for bill-specific aggregates."""

    def test_bill_breakdown_counts_statuses(self):
        bills = [
            make_bill("100", status=BillStatus.PAID),
            make_bill("50", status=BillStatus.OVERDUE),
            make_bill("25"),
        ]
        rows = breakdown_bills_by_category(bills)

        assert len(rows) == 1
        row = rows[0]
        assert row.total == Decimal("175")
        assert (row.paid_count, row.pending_count, row.overdue_count) == (1, 1, 1)

    def test_status_breakdown(self):
        bills = [
            make_bill("1", status=BillStatus.PAID),
            make_bill("1", status=BillStatus.PAID),
            make_bill("1", status=BillStatus.OVERDUE),
        ]
        breakdown = status_breakdown(bills)
        assert (breakdown.paid, breakdown.pending, breakdown.overdue) == (2, 0, 1)


class TestTimeSeries:
    """Tests for month and year bucketing."""

    def test_twelve_month_slots(self):
        entries = [
            make_expense("10", spent_on=date(2024, 1, 5)),
            make_expense("5", spent_on=date(2024, 1, 20)),
            make_expense("7", spent_on=date(2024, 12, 31)),
        ]
        slots = totals_by_month(entries)
        assert len(slots) == 12
        assert slots[0] == Decimal("15")
        assert slots[11] == Decimal("7")
        assert slots[5] == Decimal("0")

    def test_monthly_comparison(self):
        current = [make_expense("110", spent_on=date(2024, 3, 1))]
        previous = [make_expense("100", spent_on=date(2023, 3, 9))]
        rows = monthly_comparison(current, previous)

        assert len(rows) == 12
        march = rows[2]
        assert march.month == "Mar"
        assert march.growth == Decimal("10")
        assert march.growth_percentage == pytest.approx(10.0)
        assert rows[0].growth_percentage == 0.0

    def test_yearly_comparison_starts_from_zero(self):
        entries = [
            make_expense("200", spent_on=date(2023, 5, 1)),
            make_expense("100", spent_on=date(2022, 5, 1)),
        ]
        rows = yearly_comparison(totals_by_year(entries))

        assert [row.year for row in rows] == ["2022", "2023"]
        assert rows[0].growth == Decimal("100")
        assert rows[0].growth_percentage == 0.0
        assert rows[1].growth_percentage == pytest.approx(100.0)

    def test_monthly_timeline_is_chronological(self):
        entries = [
            make_expense("3", spent_on=date(2024, 2, 1)),
            make_expense("4", spent_on=date(2023, 11, 1)),
            make_expense("5", spent_on=date(2024, 2, 28)),
        ]
        timeline = monthly_timeline(entries)
        assert [(m.month, m.amount, m.count) for m in timeline] == [
            ("2023-11", Decimal("4"), 1),
            ("2024-02", Decimal("8"), 2),
        ]

    def test_total_stats(self):
        stats = total_stats([make_expense("10"), make_expense("20")])
        assert stats.total_amount == Decimal("30")
        assert stats.total_count == 2
        assert stats.avg_amount == Decimal("15.00")

    def test_filter_entries(self):
        entries = [make_expense("1", ExpenseCategory.FOOD), make_expense("2", ExpenseCategory.OTHER)]
        assert filter_entries(entries, None) == entries
        kept = filter_entries(entries, LedgerFilter(categories=["other"]))
        assert [e.amount for e in kept] == [Decimal("2")]


class TestTrends:
    """Tests for the trend calculator."""

    def test_growth_over_previous(self):
        totals = calculate_trend(Decimal("110"), Decimal("100"))
        assert totals.growth == Decimal("10")
        assert totals.growth_percentage == pytest.approx(10.0)
        assert totals.trend == Trend.UP

    def test_no_previous_total_is_stable(self):
        totals = calculate_trend(Decimal("100"), Decimal("0"))
        assert totals.growth == Decimal("100")
        assert totals.growth_percentage == 0.0
        assert totals.trend == Trend.STABLE

    def test_decline(self):
        growth, pct = compute_growth(Decimal("50"), Decimal("100"))
        assert growth == Decimal("-50")
        assert classify_trend(pct) == Trend.DOWN

    @pytest.mark.parametrize("pct, expected", [
        (5.0, Trend.STABLE),
        (-5.0, Trend.STABLE),
        (5.01, Trend.UP),
        (-5.01, Trend.DOWN),
    ])
    def test_threshold_is_exclusive(self, pct, expected):
        assert classify_trend(pct) == expected

    def test_custom_threshold(self):
        assert classify_trend(8.0, threshold=10.0) == Trend.STABLE
        assert classify_trend(8.0, threshold=1.0) == Trend.UP
