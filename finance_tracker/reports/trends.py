"""
Trend Calculator

Compares a current total with a previous one.

NOTE: growth percentage is relative to the previous total. When there is no
previous total (0) the percentage is reported as 0 and the trend as stable,
even if the current total is positive. Callers that need to tell "new
spending" apart from "flat spending" should look at `growth`, which is
always the plain difference.
"""

from decimal import Decimal

from finance_tracker.models.entries import Trend
from finance_tracker.models.reports import ReportTotals


DEFAULT_TREND_THRESHOLD = 5.0


def compute_growth(current: Decimal, previous: Decimal) -> tuple[Decimal, float]:
    """Return (growth, growth_percentage)."""
    growth = current - previous
    if previous > 0:
        return growth, float(growth / previous * 100)
    return growth, 0.0


def classify_trend(growth_percentage: float, threshold: float = DEFAULT_TREND_THRESHOLD) -> Trend:
    """Changes within +/- threshold percent count as stable."""
    if growth_percentage > threshold:
        return Trend.UP
    if growth_percentage < -threshold:
        return Trend.DOWN
    return Trend.STABLE


def calculate_trend(
    current: Decimal,
    previous: Decimal,
    threshold: float = DEFAULT_TREND_THRESHOLD,
) -> ReportTotals:
    growth, growth_percentage = compute_growth(current, previous)
    return ReportTotals(
        current=current,
        previous=previous,
        growth=growth,
        growth_percentage=growth_percentage,
        trend=classify_trend(growth_percentage, threshold),
    )
