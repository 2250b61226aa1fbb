"""
In-Memory Ledger Store

Process-local implementation of the storage interfaces. Used as the default
backend in development and by the test suite.

Entries are copied on the way in and on the way out, so callers can never
mutate stored state by holding on to a model instance.
"""

from datetime import date
from typing import Optional
from uuid import UUID

from finance_tracker.models.audit import AuditEvent
from finance_tracker.models.entries import Bill, BillStatus, Expense, LedgerFilter, utcnow
from finance_tracker.services.storage.interface import (
    AuditStorageInterface,
    BillStorageInterface,
    ExpenseStorageInterface,
    NotFoundError,
    check_bill_sort,
    check_expense_sort,
    select_entries,
)


class InMemoryExpenseStorage(ExpenseStorageInterface):
    """Expenses kept in a dict keyed by id, in insertion order."""

    def __init__(self):
        self._expenses: dict[UUID, Expense] = {}

    async def save_expense(self, expense: Expense) -> bool:
        self._expenses[expense.id] = expense.model_copy(deep=True)
        return True

    async def get_expense(self, owner_id: str, expense_id: UUID) -> Optional[Expense]:
        expense = self._expenses.get(expense_id)
        if expense is None or expense.owner_id != owner_id:
            return None
        return expense.model_copy(deep=True)

    async def update_expense(self, expense: Expense) -> bool:
        stored = self._expenses.get(expense.id)
        if stored is None or stored.owner_id != expense.owner_id:
            raise NotFoundError(f"Expense not found: {expense.id}")
        self._expenses[expense.id] = expense.model_copy(deep=True)
        return True

    async def delete_expense(self, owner_id: str, expense_id: UUID) -> bool:
        stored = self._expenses.get(expense_id)
        if stored is None or stored.owner_id != owner_id:
            return False
        del self._expenses[expense_id]
        return True

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
        selected = select_entries(
            self._expenses.values(), owner_id, ledger_filter,
            sort_by, descending, limit, offset,
        )
        return [expense.model_copy(deep=True) for expense in selected]

    async def count_expenses(
        self,
        owner_id: str,
        ledger_filter: Optional[LedgerFilter] = None,
    ) -> int:
        return len(select_entries(
            self._expenses.values(), owner_id, ledger_filter,
            "spent_on", False, None, 0,
        ))


class InMemoryBillStorage(BillStorageInterface):
    """Bills kept in a dict keyed by id, in insertion order."""

    def __init__(self):
        self._bills: dict[UUID, Bill] = {}

    async def save_bill(self, bill: Bill) -> bool:
        self._bills[bill.id] = bill.model_copy(deep=True)
        return True

    async def get_bill(self, owner_id: str, bill_id: UUID) -> Optional[Bill]:
        bill = self._bills.get(bill_id)
        if bill is None or bill.owner_id != owner_id:
            return None
        return bill.model_copy(deep=True)

    async def update_bill(self, bill: Bill) -> bool:
        stored = self._bills.get(bill.id)
        if stored is None or stored.owner_id != bill.owner_id:
            raise NotFoundError(f"Bill not found: {bill.id}")
        self._bills[bill.id] = bill.model_copy(deep=True)
        return True

    async def delete_bill(self, owner_id: str, bill_id: UUID) -> bool:
        stored = self._bills.get(bill_id)
        if stored is None or stored.owner_id != owner_id:
            return False
        del self._bills[bill_id]
        return True

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
        selected = select_entries(
            self._bills.values(), owner_id, ledger_filter,
            sort_by, descending, limit, offset,
        )
        return [bill.model_copy(deep=True) for bill in selected]

    async def count_bills(
        self,
        owner_id: str,
        ledger_filter: Optional[LedgerFilter] = None,
    ) -> int:
        return len(select_entries(
            self._bills.values(), owner_id, ledger_filter,
            "due_date", False, None, 0,
        ))

    async def mark_overdue(self, owner_id: str, as_of: date) -> int:
        transitioned = 0
        now = utcnow()
        for bill_id, bill in list(self._bills.items()):
            if (
                bill.owner_id == owner_id
                and bill.status == BillStatus.PENDING
                and bill.due_date < as_of
            ):
                self._bills[bill_id] = bill.model_copy(
                    update={"status": BillStatus.OVERDUE, "updated_at": now}
                )
                transitioned += 1
        return transitioned


class InMemoryAuditStorage(AuditStorageInterface):
    """Append-only list of audit events."""

    def __init__(self):
        self._events: list[AuditEvent] = []

    @property
    def events(self) -> list[AuditEvent]:
        return list(self._events)

    async def append_event(self, event: AuditEvent) -> bool:
        self._events.append(event)
        return True

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        events = [e for e in self._events if e.correlation_id == correlation_id]
        return sorted(events, key=lambda e: e.timestamp)

    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: UUID,
    ) -> list[AuditEvent]:
        events = [
            e for e in self._events
            if e.entity_type == entity_type and e.entity_id == entity_id
        ]
        return sorted(events, key=lambda e: e.timestamp)

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        return sorted(self._events, key=lambda e: e.timestamp, reverse=True)[:limit]
