"""
Data Models Package

This package contains all Pydantic models used in Finance Tracker.
Every enumeration the system knows is defined exactly once, in
`finance_tracker.models.entries`.
"""

from finance_tracker.models.entries import (
    BILL_SORT_FIELDS,
    CATEGORIES_BY_ENTRY_TYPE,
    EXPENSE_SORT_FIELDS,
    Bill,
    BillCategory,
    BillInput,
    BillStatus,
    BillUpdate,
    EntryType,
    Expense,
    ExpenseCategory,
    ExpenseInput,
    LedgerEntry,
    LedgerFilter,
    PeriodMode,
    RecurringPeriod,
    Trend,
    ValidationIssue,
    ValidationResult,
)
from finance_tracker.models.reports import (
    AmountCount,
    BillCategoryBreakdown,
    BillListing,
    CategoryBreakdown,
    CombinedReport,
    DashboardSummary,
    DateWindow,
    ExpenseListing,
    ExpenseStats,
    MonthlyComparison,
    MonthlyTotal,
    Pagination,
    Report,
    ReportRequest,
    ReportTotals,
    StatusBreakdown,
    StatusSummary,
    TotalStats,
    UpcomingBill,
    UpcomingBills,
    UpcomingSummary,
    YearlyComparison,
)
from finance_tracker.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Ledger models
    "BILL_SORT_FIELDS",
    "CATEGORIES_BY_ENTRY_TYPE",
    "EXPENSE_SORT_FIELDS",
    "Bill",
    "BillCategory",
    "BillInput",
    "BillStatus",
    "BillUpdate",
    "EntryType",
    "Expense",
    "ExpenseCategory",
    "ExpenseInput",
    "LedgerEntry",
    "LedgerFilter",
    "PeriodMode",
    "RecurringPeriod",
    "Trend",
    "ValidationIssue",
    "ValidationResult",
    # Report models
    "AmountCount",
    "BillCategoryBreakdown",
    "BillListing",
    "CategoryBreakdown",
    "CombinedReport",
    "DashboardSummary",
    "DateWindow",
    "ExpenseListing",
    "ExpenseStats",
    "MonthlyComparison",
    "MonthlyTotal",
    "Pagination",
    "Report",
    "ReportRequest",
    "ReportTotals",
    "StatusBreakdown",
    "StatusSummary",
    "TotalStats",
    "UpcomingBill",
    "UpcomingBills",
    "UpcomingSummary",
    "YearlyComparison",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
