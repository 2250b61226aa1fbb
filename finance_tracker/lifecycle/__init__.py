"""Bill lifecycle package."""

from finance_tracker.lifecycle.evaluator import (
    URGENCY_DUE_SOON,
    URGENCY_DUE_TODAY,
    URGENCY_OVERDUE,
    BillLifecycleEvaluator,
    bill_urgency,
    days_until_due,
    evaluate_bill_status,
    is_overdue,
)

__all__ = [
    "URGENCY_DUE_SOON",
    "URGENCY_DUE_TODAY",
    "URGENCY_OVERDUE",
    "BillLifecycleEvaluator",
    "bill_urgency",
    "days_until_due",
    "evaluate_bill_status",
    "is_overdue",
]
