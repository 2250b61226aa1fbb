"""
Google Sheets ledger store.

Owners can open their ledger directly in Sheets and there is no database
to run. Sheets has no transactions and no server-side queries, so rows are
read whole and filtered with LedgerFilter.matches.

Every owner's entries share one worksheet per entry type; the owner_id
column scopes them. Connection problems surface as StorageUnavailableError
so the flows can report the ledger store as unavailable instead of failing
with a generic error.
"""

import json
from abc import ABC, abstractmethod
from datetime import date, datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

import gspread
import structlog
from google.oauth2.service_account import Credentials
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from finance_tracker.config import get_settings
from finance_tracker.config.settings import GoogleSheetsSettings
from finance_tracker.models.audit import AuditEvent, AuditEventType, AuditSeverity
from finance_tracker.models.entries import (
    Bill,
    BillCategory,
    BillStatus,
    Expense,
    ExpenseCategory,
    LedgerFilter,
    RecurringPeriod,
    utcnow,
)
from finance_tracker.services.storage.interface import (
    AuditStorageInterface,
    BillStorageInterface,
    ExpenseStorageInterface,
    NotFoundError,
    StorageError,
    StorageUnavailableError,
    check_bill_sort,
    check_expense_sort,
    select_entries,
)


logger = structlog.get_logger(__name__)


EXPENSE_COLUMNS = [
    "id",
    "owner_id",
    "category",
    "amount",
    "spent_on",
    "note",
    "created_at",
    "updated_at",
]

BILL_COLUMNS = [
    "id",
    "owner_id",
    "title",
    "amount",
    "due_date",
    "category",
    "status",
    "description",
    "is_recurring",
    "recurring_period",
    "created_at",
    "updated_at",
]

AUDIT_COLUMNS = [
    "event_id",
    "timestamp",
    "event_type",
    "severity",
    "owner_id",
    "entity_type",
    "entity_id",
    "correlation_id",
    "description",
    "details_json",
    "error_message",
    "is_user_action",
]

# Transient API failures (quota, 5xx) are retried; anything else fails fast
_api_retry = retry(
    retry=retry_if_exception_type(gspread.exceptions.APIError),
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=2, max=10),
    reraise=True,
)


class GoogleSheetsClient:
    """
    Thin wrapper around a gspread client.

    Authenticates lazily and retries transient API failures with tenacity.
    """

    def __init__(self, settings: Optional[GoogleSheetsSettings] = None):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = settings

    @property
    def settings(self) -> GoogleSheetsSettings:
        if self._settings is None:
            self._settings = get_settings().google_sheets
        return self._settings

    def connect(self) -> gspread.Client:
        """
        Authorize with the service account key.
        """
        if self._client is None:
            try:
                scopes = [
                    "https://www.googleapis.com/auth/spreadsheets",
                    "https://www.googleapis.com/auth/drive",
                ]
                credentials = Credentials.from_service_account_file(
                    self.settings.credentials_path,
                    scopes=scopes,
                )
                self._client = gspread.authorize(credentials)
            except FileNotFoundError as e:
                raise StorageUnavailableError(
                    f"Google credentials file not found: {self.settings.credentials_path}"
                ) from e
            except Exception as e:
                raise StorageUnavailableError(f"Failed to connect to Google Sheets: {e}") from e

        return self._client

    def get_spreadsheet(self) -> gspread.Spreadsheet:
        """Open (once) the spreadsheet named by spreadsheet_id."""
        if self._spreadsheet is None:
            client = self.connect()
            try:
                self._spreadsheet = client.open_by_key(self.settings.spreadsheet_id)
            except gspread.SpreadsheetNotFound as e:
                raise StorageUnavailableError(
                    f"Spreadsheet not found: {self.settings.spreadsheet_id}"
                ) from e
        return self._spreadsheet

    def get_worksheet(self, title: str, columns: list[str], rows: int = 1000) -> gspread.Worksheet:
        """Get or create a worksheet with the given header row."""
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(title)
        except gspread.WorksheetNotFound:
            sheet = spreadsheet.add_worksheet(title=title, rows=rows, cols=len(columns))
            sheet.append_row(columns)
        return sheet

    @_api_retry
    def read_rows(self, sheet: gspread.Worksheet) -> list[tuple[int, list]]:
        """All data rows with their 1-based sheet row number (header excluded)."""
        all_rows = sheet.get_all_values()
        return [
            (index, row)
            for index, row in enumerate(all_rows[1:], start=2)
            if row and row[0]
        ]

    @_api_retry
    def append_row(self, sheet: gspread.Worksheet, row: list) -> None:
        sheet.append_row(row, value_input_option="RAW")

    @_api_retry
    def replace_row(self, sheet: gspread.Worksheet, index: int, row: list) -> None:
        sheet.update(range_name=f"A{index}", values=[row], raw=True)

    @_api_retry
    def update_cell(self, sheet: gspread.Worksheet, index: int, column: int, value: str) -> None:
        sheet.update_cell(index, column, value)

    @_api_retry
    def delete_row(self, sheet: gspread.Worksheet, index: int) -> None:
        sheet.delete_rows(index)


def _safe_get(row: list, index: int, default: str = "") -> str:
    # Trailing empty cells are not returned by the API
    try:
        return row[index] if row[index] else default
    except IndexError:
        return default


def expense_to_row(expense: Expense) -> list:
    """Convert an Expense to a spreadsheet row (EXPENSE_COLUMNS order)."""
    return [
        str(expense.id),
        expense.owner_id,
        expense.category.value,
        str(expense.amount),
        expense.spent_on.isoformat(),
        expense.note or "",
        expense.created_at.isoformat(),
        expense.updated_at.isoformat(),
    ]


def row_to_expense(row: list) -> Expense:
    return Expense(
        id=UUID(_safe_get(row, 0)),
        owner_id=_safe_get(row, 1),
        category=ExpenseCategory(_safe_get(row, 2)),
        amount=Decimal(_safe_get(row, 3)),
        spent_on=date.fromisoformat(_safe_get(row, 4)),
        note=_safe_get(row, 5) or None,
        created_at=datetime.fromisoformat(_safe_get(row, 6)),
        updated_at=datetime.fromisoformat(_safe_get(row, 7)),
    )


def bill_to_row(bill: Bill) -> list:
    """Convert a Bill to a spreadsheet row (BILL_COLUMNS order)."""
    return [
        str(bill.id),
        bill.owner_id,
        bill.title,
        str(bill.amount),
        bill.due_date.isoformat(),
        bill.category.value,
        bill.status.value,
        bill.description or "",
        str(bill.is_recurring),
        bill.recurring_period.value if bill.recurring_period else "",
        bill.created_at.isoformat(),
        bill.updated_at.isoformat(),
    ]


def row_to_bill(row: list) -> Bill:
    period = _safe_get(row, 9)
    return Bill(
        id=UUID(_safe_get(row, 0)),
        owner_id=_safe_get(row, 1),
        title=_safe_get(row, 2),
        amount=Decimal(_safe_get(row, 3)),
        due_date=date.fromisoformat(_safe_get(row, 4)),
        category=BillCategory(_safe_get(row, 5)),
        status=BillStatus(_safe_get(row, 6)),
        description=_safe_get(row, 7) or None,
        is_recurring=_safe_get(row, 8).lower() == "true",
        recurring_period=RecurringPeriod(period) if period else None,
        created_at=datetime.fromisoformat(_safe_get(row, 10)),
        updated_at=datetime.fromisoformat(_safe_get(row, 11)),
    )


class _SheetsLedger(ABC):
    """Row lookup shared by the expense and bill worksheets."""

    entity = "entry"
    columns: list[str] = []

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    @abstractmethod
    def _sheet_name(self) -> str:
        """Worksheet title from the settings."""

    @abstractmethod
    def _parse(self, row: list):
        """Row to model; raises ValueError or ArithmeticError on bad cells."""

    def _sheet(self) -> gspread.Worksheet:
        return self._client.get_worksheet(self._sheet_name(), self.columns)

    def _load(self, sheet: gspread.Worksheet) -> list:
        entries = []
        for index, row in self._client.read_rows(sheet):
            try:
                entries.append(self._parse(row))
            except (ValueError, ArithmeticError) as e:
                logger.warning(
                    "malformed_row_skipped",
                    entity=self.entity,
                    row=index,
                    error=str(e),
                )
        return entries

    def _find_row(self, sheet: gspread.Worksheet, owner_id: str, entry_id: UUID) -> Optional[tuple[int, list]]:
        for index, row in self._client.read_rows(sheet):
            if row[0] == str(entry_id) and _safe_get(row, 1) == owner_id:
                return index, row
        return None


class GoogleSheetsExpenseStorage(_SheetsLedger, ExpenseStorageInterface):
    """
    Expense rows in the expenses worksheet.

    Expenses are stored as rows in a worksheet with one expense per row.
    """

    entity = "expense"
    columns = EXPENSE_COLUMNS

    def _sheet_name(self) -> str:
        return self._client.settings.expenses_sheet_name

    def _parse(self, row: list) -> Expense:
        return row_to_expense(row)

    async def save_expense(self, expense: Expense) -> bool:
        try:
            self._client.append_row(self._sheet(), expense_to_row(expense))
            return True
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to save expense: {e}") from e

    async def get_expense(self, owner_id: str, expense_id: UUID) -> Optional[Expense]:
        try:
            found = self._find_row(self._sheet(), owner_id, expense_id)
            return row_to_expense(found[1]) if found else None
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to get expense: {e}") from e

    async def update_expense(self, expense: Expense) -> bool:
        try:
            sheet = self._sheet()
            found = self._find_row(sheet, expense.owner_id, expense.id)
            if found is None:
                raise NotFoundError(f"Expense not found: {expense.id}")
            self._client.replace_row(sheet, found[0], expense_to_row(expense))
            return True
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to update expense: {e}") from e

    async def delete_expense(self, owner_id: str, expense_id: UUID) -> bool:
        try:
            sheet = self._sheet()
            found = self._find_row(sheet, owner_id, expense_id)
            if found is None:
                return False
            self._client.delete_row(sheet, found[0])
            return True
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to delete expense: {e}") from e

    async def find_expenses(
        self,
        owner_id: str,
        ledger_filter: Optional[LedgerFilter] = None,
        sort_by: str = "spent_on",
        descending: bool = False,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> list[Expense]:
        check_expense_sort(sort_by)
        try:
            expenses = self._load(self._sheet())
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to list expenses: {e}") from e
        return select_entries(expenses, owner_id, ledger_filter, sort_by, descending, limit, offset)

    async def count_expenses(
        self,
        owner_id: str,
        ledger_filter: Optional[LedgerFilter] = None,
    ) -> int:
        return len(await self.find_expenses(owner_id, ledger_filter))


class GoogleSheetsBillStorage(_SheetsLedger, BillStorageInterface):
    """
    Bill rows in the bills worksheet.
    """

    entity = "bill"
    columns = BILL_COLUMNS

    def _sheet_name(self) -> str:
        return self._client.settings.bills_sheet_name

    def _parse(self, row: list) -> Bill:
        return row_to_bill(row)

    async def save_bill(self, bill: Bill) -> bool:
        try:
            self._client.append_row(self._sheet(), bill_to_row(bill))
            return True
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to save bill: {e}") from e

    async def get_bill(self, owner_id: str, bill_id: UUID) -> Optional[Bill]:
        try:
            found = self._find_row(self._sheet(), owner_id, bill_id)
            return row_to_bill(found[1]) if found else None
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to get bill: {e}") from e

    async def update_bill(self, bill: Bill) -> bool:
        try:
            sheet = self._sheet()
            found = self._find_row(sheet, bill.owner_id, bill.id)
            if found is None:
                raise NotFoundError(f"Bill not found: {bill.id}")
            self._client.replace_row(sheet, found[0], bill_to_row(bill))
            return True
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to update bill: {e}") from e

    async def delete_bill(self, owner_id: str, bill_id: UUID) -> bool:
        try:
            sheet = self._sheet()
            found = self._find_row(sheet, owner_id, bill_id)
            if found is None:
                return False
            self._client.delete_row(sheet, found[0])
            return True
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to delete bill: {e}") from e

    async def find_bills(
        self,
        owner_id: str,
        ledger_filter: Optional[LedgerFilter] = None,
        sort_by: str = "due_date",
        descending: bool = False,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> list[Bill]:
        check_bill_sort(sort_by)
        try:
            bills = self._load(self._sheet())
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to list bills: {e}") from e
        return select_entries(bills, owner_id, ledger_filter, sort_by, descending, limit, offset)

    async def count_bills(
        self,
        owner_id: str,
        ledger_filter: Optional[LedgerFilter] = None,
    ) -> int:
        return len(await self.find_bills(owner_id, ledger_filter))

    async def mark_overdue(self, owner_id: str, as_of: date) -> int:
        """Rewrite the status and updated_at cells of every bill that lapsed."""
        status_column = BILL_COLUMNS.index("status") + 1
        updated_column = BILL_COLUMNS.index("updated_at") + 1
        transitioned = 0
        try:
            sheet = self._sheet()
            now = utcnow().isoformat()
            for index, row in self._client.read_rows(sheet):
                if _safe_get(row, 1) != owner_id:
                    continue
                try:
                    status = BillStatus(_safe_get(row, 6))
                    due = date.fromisoformat(_safe_get(row, 4))
                except ValueError:
                    continue
                if status != BillStatus.PENDING:
                    continue
                if due < as_of:
                    self._client.update_cell(sheet, index, status_column, BillStatus.OVERDUE.value)
                    self._client.update_cell(sheet, index, updated_column, now)
                    transitioned += 1
            return transitioned
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to mark overdue bills: {e}") from e


class GoogleSheetsAuditStorage(AuditStorageInterface):
    """
    Audit events in the audit worksheet.

    Audit events are append-only.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _sheet(self) -> gspread.Worksheet:
        # More rows for audit log
        return self._client.get_worksheet(
            self._client.settings.audit_sheet_name, AUDIT_COLUMNS, rows=5000
        )

    def _row_to_event(self, row: list) -> AuditEvent:
        return AuditEvent(
            event_id=UUID(_safe_get(row, 0)),
            timestamp=datetime.fromisoformat(_safe_get(row, 1)),
            event_type=AuditEventType(_safe_get(row, 2)),
            severity=AuditSeverity(_safe_get(row, 3)),
            owner_id=_safe_get(row, 4) or None,
            entity_type=_safe_get(row, 5) or None,
            entity_id=UUID(_safe_get(row, 6)) if _safe_get(row, 6) else None,
            correlation_id=UUID(_safe_get(row, 7)) if _safe_get(row, 7) else None,
            description=_safe_get(row, 8),
            details=json.loads(_safe_get(row, 9)) if _safe_get(row, 9) else {},
            error_message=_safe_get(row, 10) or None,
            is_user_action=_safe_get(row, 11).lower() == "true",
        )

    def _events(self, predicate) -> list[AuditEvent]:
        events = []
        for index, row in self._client.read_rows(self._sheet()):
            if not predicate(row):
                continue
            try:
                events.append(self._row_to_event(row))
            except (ValueError, ArithmeticError) as e:
                logger.warning("malformed_audit_row_skipped", row=index, error=str(e))
        return events

    async def append_event(self, event: AuditEvent) -> bool:
        try:
            self._client.append_row(self._sheet(), event.to_sheets_row())
            return True
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to write audit event: {e}") from e

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        try:
            events = self._events(lambda row: _safe_get(row, 7) == str(correlation_id))
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}") from e
        events.sort(key=lambda e: e.timestamp)
        return events

    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: UUID,
    ) -> list[AuditEvent]:
        try:
            events = self._events(
                lambda row: _safe_get(row, 5) == entity_type and _safe_get(row, 6) == str(entity_id)
            )
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}") from e
        events.sort(key=lambda e: e.timestamp)
        return events

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        try:
            events = self._events(lambda row: True)
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}") from e
        # Sort newest first
        events.sort(key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
