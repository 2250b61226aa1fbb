"""
Tests for the ledger stores.

The Google Sheets store runs against an in-process fake worksheet; the
client's connection handling is bypassed by overriding get_worksheet.
"""

from datetime import date, timedelta
from decimal import Decimal
from uuid import uuid4

import pytest

from finance_tracker.config.settings import GoogleSheetsSettings
from finance_tracker.lifecycle import BillLifecycleEvaluator
from finance_tracker.models.audit import AuditEventBuilder
from finance_tracker.models.entries import (
    BillStatus,
    ExpenseCategory,
    LedgerFilter,
    RecurringPeriod,
)
from finance_tracker.services.storage import (
    NotFoundError,
    StorageError,
)
from finance_tracker.services.storage.google_sheets import (
    BILL_COLUMNS,
    EXPENSE_COLUMNS,
    GoogleSheetsAuditStorage,
    GoogleSheetsBillStorage,
    GoogleSheetsClient,
    GoogleSheetsExpenseStorage,
    _SheetsLedger,
    bill_to_row,
    expense_to_row,
    row_to_bill,
    row_to_expense,
)

from conftest import OTHER_OWNER, OWNER, TODAY, make_bill, make_expense


# =============================================================================
# FAKES
# =============================================================================

class FakeWorksheet:
    """Just enough of gspread.Worksheet for the store."""

    def __init__(self, columns: list[str]):
        self.rows = [list(columns)]
        self.fail_reads = False

    def get_all_values(self):
        if self.fail_reads:
            raise RuntimeError("quota exceeded")
        return [list(row) for row in self.rows]

    def append_row(self, row, value_input_option=None):
        self.rows.append([str(cell) for cell in row])

    def update(self, range_name, values, raw=True):
        index = int(range_name[1:])
        self.rows[index - 1] = [str(cell) for cell in values[0]]

    def update_cell(self, row, col, value):
        self.rows[row - 1][col - 1] = str(value)

    def delete_rows(self, index):
        del self.rows[index - 1]


class FakeSheetsClient(GoogleSheetsClient):
    def __init__(self):
        super().__init__(GoogleSheetsSettings.model_construct(
            credentials_path="unused.json",
            spreadsheet_id="test-sheet",
        ))
        self.worksheets: dict[str, FakeWorksheet] = {}

    def get_worksheet(self, title, columns, rows=1000):
        if title not in self.worksheets:
            self.worksheets[title] = FakeWorksheet(columns)
        return self.worksheets[title]


@pytest.fixture
def sheets_client() -> FakeSheetsClient:
    return FakeSheetsClient()


# =============================================================================
# IN-MEMORY STORE
# =============================================================================

class TestInMemoryStores:
    """Tests for the in-memory expense and bill stores."""

    @pytest.mark.asyncio
    async def test_save_and_get(self, expense_storage):
        expense = make_expense("10")
        await expense_storage.save_expense(expense)

        assert await expense_storage.get_expense(OWNER, expense.id) == expense
        assert await expense_storage.get_expense(OTHER_OWNER, expense.id) is None

    @pytest.mark.asyncio
    async def test_stored_entries_are_copies(self, expense_storage):
        expense = make_expense("10")
        await expense_storage.save_expense(expense)

        fetched = await expense_storage.get_expense(OWNER, expense.id)
        fetched.note = "mutated"
        assert (await expense_storage.get_expense(OWNER, expense.id)).note is None

    @pytest.mark.asyncio
    async def test_update_foreign_entry_is_not_found(self, expense_storage):
        expense = make_expense("10")
        await expense_storage.save_expense(expense)

        with pytest.raises(NotFoundError):
            await expense_storage.update_expense(expense.model_copy(update={"owner_id": OTHER_OWNER}))

    @pytest.mark.asyncio
    async def test_delete(self, bill_storage):
        bill = make_bill("10")
        await bill_storage.save_bill(bill)

        assert await bill_storage.delete_bill(OTHER_OWNER, bill.id) is False
        assert await bill_storage.delete_bill(OWNER, bill.id) is True
        assert await bill_storage.get_bill(OWNER, bill.id) is None

    @pytest.mark.asyncio
    async def test_find_filters_sorts_and_pages(self, expense_storage):
        for amount, day in (("5", 3), ("15", 1), ("10", 2)):
            await expense_storage.save_expense(make_expense(amount, spent_on=date(2024, 1, day)))
        await expense_storage.save_expense(
            make_expense("99", ExpenseCategory.OTHER, date(2024, 1, 4))
        )

        food = LedgerFilter(categories=["food"])
        newest_first = await expense_storage.find_expenses(OWNER, food, descending=True)
        assert [e.spent_on.day for e in newest_first] == [3, 2, 1]

        by_amount = await expense_storage.find_expenses(OWNER, food, sort_by="amount", limit=2, offset=1)
        assert [e.amount for e in by_amount] == [Decimal("10"), Decimal("15")]

        assert await expense_storage.count_expenses(OWNER, food) == 3
        assert await expense_storage.count_expenses(OTHER_OWNER) == 0

    @pytest.mark.asyncio
    async def test_unknown_sort_field(self, bill_storage):
        with pytest.raises(ValueError, match="Cannot sort by"):
            await bill_storage.find_bills(OWNER, sort_by="spent_on")

    @pytest.mark.asyncio
    async def test_mark_overdue(self, bill_storage):
        lapsed = make_bill("10", due_date=TODAY - timedelta(days=1))
        await bill_storage.save_bill(lapsed)

        assert await bill_storage.mark_overdue(OWNER, TODAY) == 1
        stored = await bill_storage.get_bill(OWNER, lapsed.id)
        assert stored.status == BillStatus.OVERDUE
        assert stored.updated_at >= lapsed.updated_at

    @pytest.mark.asyncio
    async def test_audit_queries(self, audit_storage):
        correlation_id = uuid4()
        bill_id = uuid4()
        await audit_storage.append_event(AuditEventBuilder.bill_status_changed(
            bill_id, OWNER, "pending", "paid", False, correlation_id
        ))
        await audit_storage.append_event(AuditEventBuilder.overdue_sweep(OWNER, 2, None))

        assert len(await audit_storage.get_events_by_correlation_id(correlation_id)) == 1
        assert len(await audit_storage.get_events_by_entity("bill", bill_id)) == 1
        assert len(await audit_storage.get_recent_events(limit=1)) == 1


# =============================================================================
# GOOGLE SHEETS STORE
# =============================================================================

class TestRowMapping:
    """Tests for the row <-> model mappers."""

    def test_expense_row(self):
        expense = make_expense("12.30", note="Taxi")
        row = expense_to_row(expense)
        assert len(row) == len(EXPENSE_COLUMNS)
        assert row[3] == "12.30"
        assert row_to_expense(row) == expense

    def test_bill_row_with_recurrence(self):
        bill = make_bill("50").model_copy(
            update={"is_recurring": True, "recurring_period": RecurringPeriod.YEARLY}
        )
        row = bill_to_row(bill)
        assert len(row) == len(BILL_COLUMNS)
        assert row[8] == "True"
        assert row_to_bill(row).recurring_period == RecurringPeriod.YEARLY

    def test_short_row_uses_defaults(self):
        row = expense_to_row(make_expense("1"))
        row[5] = ""
        parsed = row_to_expense(row)
        assert parsed.note is None


class TestGoogleSheetsStores:
    """Tests for the Google Sheets stores against a fake worksheet."""

    @pytest.mark.asyncio
    async def test_expense_crud(self, sheets_client):
        storage = GoogleSheetsExpenseStorage(sheets_client)
        expense = make_expense("20")
        await storage.save_expense(expense)

        assert await storage.get_expense(OWNER, expense.id) == expense
        assert await storage.get_expense(OTHER_OWNER, expense.id) is None

        edited = expense.model_copy(update={"amount": Decimal("25")})
        await storage.update_expense(edited)
        assert (await storage.get_expense(OWNER, expense.id)).amount == Decimal("25")

        assert await storage.delete_expense(OWNER, expense.id) is True
        assert await storage.find_expenses(OWNER) == []

    @pytest.mark.asyncio
    async def test_update_missing_expense(self, sheets_client):
        storage = GoogleSheetsExpenseStorage(sheets_client)
        with pytest.raises(NotFoundError):
            await storage.update_expense(make_expense("1"))

    @pytest.mark.asyncio
    async def test_malformed_rows_are_skipped(self, sheets_client):
        storage = GoogleSheetsExpenseStorage(sheets_client)
        await storage.save_expense(make_expense("20"))
        sheet = sheets_client.worksheets["Expenses"]
        sheet.rows.append(["not-a-uuid", OWNER, "food", "abc"])
        bad_amount = expense_to_row(make_expense("5"))
        bad_amount[3] = "1,200.00"
        sheet.rows.append(bad_amount)

        assert len(await storage.find_expenses(OWNER)) == 1
        assert await storage.count_expenses(OWNER) == 1

    @pytest.mark.asyncio
    async def test_read_failure_is_storage_error(self, sheets_client):
        storage = GoogleSheetsBillStorage(sheets_client)
        await storage.save_bill(make_bill("5"))
        sheets_client.worksheets["Bills"].fail_reads = True

        with pytest.raises(StorageError):
            await storage.find_bills(OWNER)

    @pytest.mark.asyncio
    async def test_mark_overdue_rewrites_cells(self, sheets_client):
        storage = GoogleSheetsBillStorage(sheets_client)
        lapsed = make_bill("10", due_date=TODAY - timedelta(days=2))
        upcoming = make_bill("20", due_date=TODAY + timedelta(days=2))
        foreign = make_bill("30", due_date=TODAY - timedelta(days=2), owner_id=OTHER_OWNER)
        for bill in (lapsed, upcoming, foreign):
            await storage.save_bill(bill)

        assert await storage.mark_overdue(OWNER, TODAY) == 1
        assert await storage.mark_overdue(OWNER, TODAY) == 0

        statuses = {b.id: b.status for b in await storage.find_bills(OWNER)}
        assert statuses == {lapsed.id: BillStatus.OVERDUE, upcoming.id: BillStatus.PENDING}
        assert (await storage.get_bill(OTHER_OWNER, foreign.id)).status == BillStatus.PENDING

    @pytest.mark.asyncio
    async def test_sweep_reads_legacy_status_cells(self, sheets_client):
        storage = GoogleSheetsBillStorage(sheets_client)
        await storage.save_bill(make_bill("10"))
        sheet = sheets_client.worksheets["Bills"]
        for status in ("upcoming", "Pending"):
            row = bill_to_row(make_bill("15", due_date=TODAY - timedelta(days=3)))
            row[6] = status
            sheet.rows.append(row)

        assert await BillLifecycleEvaluator(storage).normalize(OWNER, TODAY) == 2

        statuses = sorted(b.status.value for b in await storage.find_bills(OWNER))
        assert statuses == ["overdue", "overdue", "pending"]

    @pytest.mark.asyncio
    async def test_bill_filtering(self, sheets_client):
        storage = GoogleSheetsBillStorage(sheets_client)
        await storage.save_bill(make_bill("10", title="Electricity"))
        await storage.save_bill(make_bill("20", title="Water", status=BillStatus.PAID))

        paid = await storage.find_bills(OWNER, LedgerFilter(statuses=["paid"]))
        assert [b.title for b in paid] == ["Water"]
        assert await storage.count_bills(OWNER, LedgerFilter(search="elec")) == 1

    def test_ledger_base_needs_worksheet_hooks(self, sheets_client):
        with pytest.raises(TypeError):
            _SheetsLedger(sheets_client)

    @pytest.mark.asyncio
    async def test_audit_round_trip(self, sheets_client):
        storage = GoogleSheetsAuditStorage(sheets_client)
        correlation_id = uuid4()
        event = AuditEventBuilder.report_generated(OWNER, "expense", "monthly", 4, correlation_id)
        await storage.append_event(event)

        events = await storage.get_events_by_correlation_id(correlation_id)
        assert len(events) == 1
        assert events[0].event_id == event.event_id
        assert events[0].details["entry_count"] == 4
        assert events[0].is_user_action is False
