"""Reporting package: aggregation, trends, report assembly and read views."""

from finance_tracker.reports.aggregation import (
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
from finance_tracker.reports.assembler import (
    ReportAssembler,
    previous_window,
    report_window,
)
from finance_tracker.reports.trends import (
    calculate_trend,
    classify_trend,
    compute_growth,
)
from finance_tracker.reports.views import LedgerViews

__all__ = [
    "LedgerViews",
    "ReportAssembler",
    "breakdown_bills_by_category",
    "breakdown_by_category",
    "calculate_trend",
    "classify_trend",
    "compute_growth",
    "filter_entries",
    "monthly_comparison",
    "monthly_timeline",
    "previous_window",
    "report_window",
    "status_breakdown",
    "total_stats",
    "totals_by_month",
    "totals_by_year",
    "yearly_comparison",
]
