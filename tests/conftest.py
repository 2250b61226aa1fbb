"""
Shared fixtures.

Everything runs against the in-memory ledger store; no test touches
Google Sheets or the network.
"""

from datetime import date
from decimal import Decimal
from typing import Optional

import pytest

from finance_tracker.audit import AuditLogger
from finance_tracker.config.settings import AppSettings
from finance_tracker.lifecycle import BillLifecycleEvaluator
from finance_tracker.models.entries import (
    Bill,
    BillCategory,
    BillStatus,
    Expense,
    ExpenseCategory,
)
from finance_tracker.orchestrator import create_app_components
from finance_tracker.reports import LedgerViews, ReportAssembler
from finance_tracker.services.storage import (
    InMemoryAuditStorage,
    InMemoryBillStorage,
    InMemoryExpenseStorage,
    StorageUnavailableError,
)
from finance_tracker.validation import EntryValidator


OWNER = "user-1"
OTHER_OWNER = "user-2"
TODAY = date(2024, 6, 15)


def make_expense(
    amount: str,
    category: ExpenseCategory = ExpenseCategory.FOOD,
    spent_on: date = TODAY,
    owner_id: str = OWNER,
    note: Optional[str] = None,
) -> Expense:
    return Expense(
        owner_id=owner_id,
        category=category,
        amount=Decimal(amount),
        spent_on=spent_on,
        note=note,
    )


def make_bill(
    amount: str,
    due_date: date = TODAY,
    category: BillCategory = BillCategory.UTILITIES,
    status: BillStatus = BillStatus.PENDING,
    owner_id: str = OWNER,
    title: str = "Electricity",
    description: Optional[str] = None,
) -> Bill:
    return Bill(
        owner_id=owner_id,
        title=title,
        amount=Decimal(amount),
        due_date=due_date,
        category=category,
        status=status,
        description=description,
    )


class UnavailableExpenseStorage(InMemoryExpenseStorage):
    """Expense store whose backend cannot be reached."""

    async def save_expense(self, expense):
        raise StorageUnavailableError("Failed to connect to Google Sheets")

    async def count_expenses(self, owner_id, ledger_filter=None):
        raise StorageUnavailableError("Failed to connect to Google Sheets")


@pytest.fixture
def settings() -> AppSettings:
    return AppSettings(storage_backend="memory")


@pytest.fixture
def expense_storage() -> InMemoryExpenseStorage:
    return InMemoryExpenseStorage()


@pytest.fixture
def bill_storage() -> InMemoryBillStorage:
    return InMemoryBillStorage()


@pytest.fixture
def audit_storage() -> InMemoryAuditStorage:
    return InMemoryAuditStorage()


@pytest.fixture
def audit_logger(audit_storage) -> AuditLogger:
    return AuditLogger(audit_storage)


@pytest.fixture
def evaluator(bill_storage, audit_logger) -> BillLifecycleEvaluator:
    return BillLifecycleEvaluator(bill_storage, audit_logger)


@pytest.fixture
def validator(settings) -> EntryValidator:
    return EntryValidator(settings)


@pytest.fixture
def assembler(expense_storage, bill_storage, evaluator, settings) -> ReportAssembler:
    return ReportAssembler(expense_storage, bill_storage, evaluator, settings)


@pytest.fixture
def views(expense_storage, bill_storage, evaluator, settings) -> LedgerViews:
    return LedgerViews(expense_storage, bill_storage, evaluator, settings)


@pytest.fixture
def components(settings, expense_storage, bill_storage, audit_logger):
    return create_app_components(
        settings=settings,
        expense_storage=expense_storage,
        bill_storage=bill_storage,
        audit_logger=audit_logger,
    )
