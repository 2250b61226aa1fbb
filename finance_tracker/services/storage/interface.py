"""
Ledger store contracts.

The flows and views only talk to these ABCs. Two implementations ship:
an in-memory one and a Google Sheets one.

Every method takes the owner id explicitly. A store never returns, counts
or modifies another owner's entries, so scoping cannot be forgotten by a
caller.

Filtering semantics live in `LedgerFilter.matches`; stores only decide how
to fetch candidates efficiently.
"""

from abc import ABC, abstractmethod
from datetime import date
from typing import Iterable, Optional
from uuid import UUID

from finance_tracker.models.audit import AuditEvent
from finance_tracker.models.entries import (
    BILL_SORT_FIELDS,
    EXPENSE_SORT_FIELDS,
    Bill,
    Expense,
    LedgerEntry,
    LedgerFilter,
)


class ExpenseStorageInterface(ABC):
    """Expenses, scoped by owner."""

    @abstractmethod
    async def save_expense(self, expense: Expense) -> bool:
        """
        Save a new expense.

        Raises:
            StorageError: If save fails
        """

    @abstractmethod
    async def get_expense(self, owner_id: str, expense_id: UUID) -> Optional[Expense]:
        """
        Retrieve one of the owner's expenses.

        Returns:
            The expense, or None if it does not exist or belongs to
            someone else
        """

    @abstractmethod
    async def update_expense(self, expense: Expense) -> bool:
        """
        Replace an existing expense.

        Raises:
            NotFoundError: If the owner has no such expense
            StorageError: If update fails
        """

    @abstractmethod
    async def delete_expense(self, owner_id: str, expense_id: UUID) -> bool:
        """
        Delete one of the owner's expenses.

        Returns:
            True if something was deleted
        """

    @abstractmethod
    async def find_expenses(
        self,
        owner_id: str,
        ledger_filter: Optional[LedgerFilter] = None,
        sort_by: str = "spent_on",
        descending: bool = False,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> list[Expense]:
        """
        Find the owner's expenses matching a filter.

        Args:
            owner_id: Owner whose ledger is searched
            ledger_filter: Optional filter (categories, date range, search)
            sort_by: One of EXPENSE_SORT_FIELDS
            descending: Sort direction
            limit: Maximum number of results (None = all)
            offset: Number of results to skip
        """

    @abstractmethod
    async def count_expenses(
        self,
        owner_id: str,
        ledger_filter: Optional[LedgerFilter] = None,
    ) -> int:
        """Count the owner's expenses matching a filter."""


class BillStorageInterface(ABC):
    """
    Bills, scoped by owner.
    """

    @abstractmethod
    async def save_bill(self, bill: Bill) -> bool:
        """
        Save a new bill.

        Raises:
            StorageError: If save fails
        """

    @abstractmethod
    async def get_bill(self, owner_id: str, bill_id: UUID) -> Optional[Bill]:
        """Retrieve one of the owner's bills, or None."""

    @abstractmethod
    async def update_bill(self, bill: Bill) -> bool:
        """
        Replace an existing bill.

        Raises:
            NotFoundError: If the owner has no such bill
            StorageError: If update fails
        """

    @abstractmethod
    async def delete_bill(self, owner_id: str, bill_id: UUID) -> bool:
        """Delete one of the owner's bills. True if something was deleted."""

    @abstractmethod
    async def find_bills(
        self,
        owner_id: str,
        ledger_filter: Optional[LedgerFilter] = None,
        sort_by: str = "due_date",
        descending: bool = False,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> list[Bill]:
        """Find the owner's bills matching a filter. See find_expenses."""

    @abstractmethod
    async def count_bills(
        self,
        owner_id: str,
        ledger_filter: Optional[LedgerFilter] = None,
    ) -> int:
        """Count the owner's bills matching a filter."""

    @abstractmethod
    async def mark_overdue(self, owner_id: str, as_of: date) -> int:
        """
        Bulk-update the owner's pending bills due strictly before `as_of`
        to overdue.

        Must be idempotent: a second call with the same `as_of` changes
        nothing.

        Returns:
            Number of bills transitioned
        """


class AuditStorageInterface(ABC):
    """
    Audit trail sink.

    No update or delete: events are append-only.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """Append an audit event to the log. True if logged successfully."""

    @abstractmethod
    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """All events of one request, in chronological order."""

    @abstractmethod
    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: UUID,
    ) -> list[AuditEvent]:
        """All events for a specific entity, in chronological order."""

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """The most recent audit events, newest first."""


def select_entries(
    entries: Iterable[LedgerEntry],
    owner_id: str,
    ledger_filter: Optional[LedgerFilter],
    sort_by: str,
    descending: bool,
    limit: Optional[int],
    offset: int,
) -> list:
    """
    Owner scoping, filtering, sorting and pagination done in Python.

    Shared by the backends that cannot query server-side. Sorting is stable,
    so entries with equal keys keep their stored order.
    """
    selected = [
        entry for entry in entries
        if entry.owner_id == owner_id
        and (ledger_filter is None or ledger_filter.matches(entry))
    ]
    selected.sort(key=lambda entry: getattr(entry, sort_by), reverse=descending)
    if limit is None:
        return selected[offset:]
    return selected[offset:offset + limit]


def check_sort_field(sort_by: str, allowed: frozenset) -> str:
    """Reject sort keys the entry type does not have."""
    if sort_by not in allowed:
        raise ValueError(
            f"Cannot sort by {sort_by!r}. Allowed: {', '.join(sorted(allowed))}"
        )
    return sort_by


def check_expense_sort(sort_by: str) -> str:
    return check_sort_field(sort_by, EXPENSE_SORT_FIELDS)


def check_bill_sort(sort_by: str) -> str:
    return check_sort_field(sort_by, BILL_SORT_FIELDS)


class StorageError(Exception):
    """Raised by a store when an operation could not complete."""
    pass


class NotFoundError(StorageError):
    """The entry to update is missing or belongs to another owner."""
    pass


class StorageUnavailableError(StorageError):
    """Could not reach the storage backend."""
    pass
