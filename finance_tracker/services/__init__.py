"""Services package."""

from finance_tracker.services.storage import (
    AuditStorageInterface,
    BillStorageInterface,
    ExpenseStorageInterface,
    GoogleSheetsAuditStorage,
    GoogleSheetsBillStorage,
    GoogleSheetsClient,
    GoogleSheetsExpenseStorage,
    InMemoryAuditStorage,
    InMemoryBillStorage,
    InMemoryExpenseStorage,
    NotFoundError,
    StorageError,
    StorageUnavailableError,
)

__all__ = [
    "AuditStorageInterface",
    "BillStorageInterface",
    "ExpenseStorageInterface",
    "GoogleSheetsAuditStorage",
    "GoogleSheetsBillStorage",
    "GoogleSheetsClient",
    "GoogleSheetsExpenseStorage",
    "InMemoryAuditStorage",
    "InMemoryBillStorage",
    "InMemoryExpenseStorage",
    "NotFoundError",
    "StorageError",
    "StorageUnavailableError",
]
