"""
Aggregation Engine

Pure functions that turn lists of validated ledger entries into report
structures. Nothing here touches storage or re-validates input.

DESIGN DECISION: Amounts stay Decimal end to end. Averages are rounded to
cents; percentages are floats because they are only ever displayed.
"""

import calendar
from collections import defaultdict
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Optional, Sequence

from finance_tracker.models.entries import Bill, BillStatus, LedgerEntry, LedgerFilter
from finance_tracker.models.reports import (
    BillCategoryBreakdown,
    CategoryBreakdown,
    MonthlyComparison,
    MonthlyTotal,
    StatusBreakdown,
    TotalStats,
    YearlyComparison,
)
from finance_tracker.reports.trends import compute_growth


ZERO = Decimal("0")
CENT = Decimal("0.01")

MONTH_LABELS = [calendar.month_abbr[month] for month in range(1, 13)]


def average(total: Decimal, count: int) -> Decimal:
    if count == 0:
        return ZERO
    return (total / count).quantize(CENT, rounding=ROUND_HALF_UP)


def percentage_of(part: Decimal, whole: Decimal) -> float:
    if whole <= 0:
        return 0.0
    return float(part / whole * 100)


def sum_amounts(entries: Iterable[LedgerEntry]) -> Decimal:
    return sum((entry.amount for entry in entries), ZERO)


def filter_entries(entries: Iterable[LedgerEntry], ledger_filter: Optional[LedgerFilter]) -> list:
    if ledger_filter is None:
        return list(entries)
    return [entry for entry in entries if ledger_filter.matches(entry)]


def _group_by_category(entries: Sequence[LedgerEntry]) -> dict[str, list[LedgerEntry]]:
    # dict keeps first-encountered order, which the stable sort below relies on
    groups: dict[str, list[LedgerEntry]] = {}
    for entry in entries:
        groups.setdefault(entry.category.value, []).append(entry)
    return groups


def breakdown_by_category(entries: Sequence[LedgerEntry]) -> list[CategoryBreakdown]:
    """
    Per-category total, count, average and share of the grand total.

    Sorted by descending total. Categories with equal totals keep the order
    in which they first appear in `entries`.
    """
    grand_total = sum_amounts(entries)
    rows = []
    for category, members in _group_by_category(entries).items():
        total = sum_amounts(members)
        rows.append(CategoryBreakdown(
            category=category,
            total=total,
            count=len(members),
            avg_amount=average(total, len(members)),
            percentage=percentage_of(total, grand_total),
        ))
    return sorted(rows, key=lambda row: row.total, reverse=True)


def breakdown_bills_by_category(bills: Sequence[Bill]) -> list[BillCategoryBreakdown]:
    """Category breakdown with paid / pending / overdue counts."""
    grand_total = sum_amounts(bills)
    rows = []
    for category, members in _group_by_category(bills).items():
        total = sum_amounts(members)
        statuses = status_breakdown(members)
        rows.append(BillCategoryBreakdown(
            category=category,
            total=total,
            count=len(members),
            avg_amount=average(total, len(members)),
            percentage=percentage_of(total, grand_total),
            paid_count=statuses.paid,
            pending_count=statuses.pending,
            overdue_count=statuses.overdue,
        ))
    return sorted(rows, key=lambda row: row.total, reverse=True)


def totals_by_month(entries: Iterable[LedgerEntry]) -> list[Decimal]:
    """
    Twelve slots, January first.

    NOTE: entries from different years land in the same slot.
    """
    slots = [ZERO] * 12
    for entry in entries:
        slots[entry.entry_date.month - 1] += entry.amount
    return slots


def monthly_comparison(
    current: Iterable[LedgerEntry],
    previous: Iterable[LedgerEntry],
) -> list[MonthlyComparison]:
    current_slots = totals_by_month(current)
    previous_slots = totals_by_month(previous)
    rows = []
    for label, current_total, previous_total in zip(MONTH_LABELS, current_slots, previous_slots):
        growth, growth_percentage = compute_growth(current_total, previous_total)
        rows.append(MonthlyComparison(
            month=label,
            current_year=current_total,
            previous_year=previous_total,
            growth=growth,
            growth_percentage=growth_percentage,
        ))
    return rows


def totals_by_year(entries: Iterable[LedgerEntry]) -> list[tuple[int, Decimal]]:
    """Chronological (year, total) pairs for the years present."""
    totals: dict[int, Decimal] = defaultdict(lambda: ZERO)
    for entry in entries:
        totals[entry.entry_date.year] += entry.amount
    return sorted(totals.items())


def yearly_comparison(yearly_totals: Sequence[tuple[int, Decimal]]) -> list[YearlyComparison]:
    """Each year compared with the preceding year present (the first with 0)."""
    rows = []
    previous = ZERO
    for year, total in yearly_totals:
        growth, growth_percentage = compute_growth(total, previous)
        rows.append(YearlyComparison(
            year=str(year),
            total=total,
            growth=growth,
            growth_percentage=growth_percentage,
        ))
        previous = total
    return rows


def monthly_timeline(entries: Iterable[LedgerEntry]) -> list[MonthlyTotal]:
    """Chronological YYYY-MM buckets with amount and count."""
    amounts: dict[tuple[int, int], Decimal] = defaultdict(lambda: ZERO)
    counts: dict[tuple[int, int], int] = defaultdict(int)
    for entry in entries:
        key = (entry.entry_date.year, entry.entry_date.month)
        amounts[key] += entry.amount
        counts[key] += 1
    return [
        MonthlyTotal(month=f"{year:04d}-{month:02d}", amount=amounts[(year, month)], count=counts[(year, month)])
        for year, month in sorted(amounts)
    ]


def status_breakdown(bills: Iterable[Bill]) -> StatusBreakdown:
    counts = {status: 0 for status in BillStatus}
    for bill in bills:
        counts[bill.status] += 1
    return StatusBreakdown(
        paid=counts[BillStatus.PAID],
        pending=counts[BillStatus.PENDING],
        overdue=counts[BillStatus.OVERDUE],
    )


def total_stats(entries: Sequence[LedgerEntry]) -> TotalStats:
    total = sum_amounts(entries)
    return TotalStats(
        total_amount=total,
        total_count=len(entries),
        avg_amount=average(total, len(entries)),
    )
