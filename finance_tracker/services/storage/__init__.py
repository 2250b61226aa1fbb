"""
Storage Services Package

Provides abstract owner-scoped ledger stores and their implementations.
The in-memory store is the default; Google Sheets is the persistent backend.
"""

from finance_tracker.services.storage.interface import (
    AuditStorageInterface,
    BillStorageInterface,
    ExpenseStorageInterface,
    NotFoundError,
    StorageError,
    StorageUnavailableError,
    check_bill_sort,
    check_expense_sort,
)
from finance_tracker.services.storage.memory import (
    InMemoryAuditStorage,
    InMemoryBillStorage,
    InMemoryExpenseStorage,
)
from finance_tracker.services.storage.google_sheets import (
    GoogleSheetsAuditStorage,
    GoogleSheetsBillStorage,
    GoogleSheetsClient,
    GoogleSheetsExpenseStorage,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "BillStorageInterface",
    "ExpenseStorageInterface",
    "check_bill_sort",
    "check_expense_sort",
    # Exceptions
    "NotFoundError",
    "StorageError",
    "StorageUnavailableError",
    # In-memory implementation
    "InMemoryAuditStorage",
    "InMemoryBillStorage",
    "InMemoryExpenseStorage",
    # Google Sheets implementation
    "GoogleSheetsAuditStorage",
    "GoogleSheetsBillStorage",
    "GoogleSheetsClient",
    "GoogleSheetsExpenseStorage",
]
