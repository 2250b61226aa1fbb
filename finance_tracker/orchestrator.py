"""
Main Orchestrator for Finance Tracker

Wires the stores, validator, evaluator and audit logger into the flows:
1. Expenses (validate -> persist -> audit)
2. Bills (validate -> evaluate status -> persist -> audit)
3. Reports (validate request -> sweep -> assemble -> audit)
4. Dashboard (sweep -> summarize)

DESIGN DECISION: Every flow keeps to these rules:
- Nothing is persisted or aggregated after a validation failure
- Every entry operation is scoped to the owner supplied by the identity
  provider; someone else's entry is reported exactly like a missing one
- Store failures leave here as UpstreamUnavailableError, never as
  backend-specific exceptions
- Every change is audited
"""

import math
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import date
from typing import Any, Mapping, Optional, Union
from uuid import UUID

import structlog

from finance_tracker.audit import AuditLogger, create_correlation_id
from finance_tracker.config import get_settings
from finance_tracker.config.settings import AppSettings
from finance_tracker.errors import (
    EntryNotFoundError,
    EntryValidationFailed,
    UpstreamUnavailableError,
)
from finance_tracker.lifecycle import BillLifecycleEvaluator, evaluate_bill_status
from finance_tracker.models.audit import AuditEventType
from finance_tracker.models.entries import Bill, EntryType, Expense, LedgerFilter
from finance_tracker.models.reports import (
    BillListing,
    CombinedReport,
    DashboardSummary,
    ExpenseListing,
    ExpenseStats,
    Pagination,
    Report,
    UpcomingBills,
)
from finance_tracker.reports import LedgerViews, ReportAssembler
from finance_tracker.services.storage import (
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
)
from finance_tracker.validation import EntryValidator


logger = structlog.get_logger(__name__)

COMBINED_REPORT_TYPES = {"both", "all"}


class _Flow:
    """Error translation and auditing shared by every flow."""

    def __init__(self, audit_logger: Optional[AuditLogger] = None):
        self._audit_logger = audit_logger

    @asynccontextmanager
    async def _store_call(
        self,
        operation: str,
        owner_id: str,
        correlation_id: Optional[UUID],
    ):
        """Translate storage exceptions raised inside the block."""
        try:
            yield
        except NotFoundError as e:
            raise EntryNotFoundError(str(e)) from e
        except StorageError as e:
            logger.error(
                "ledger_store_failed",
                operation=operation,
                owner_id=owner_id,
                error=str(e),
            )
            if self._audit_logger:
                await self._audit_logger.log_storage_unavailable(
                    operation=operation,
                    error_message=str(e),
                    owner_id=owner_id,
                    correlation_id=correlation_id,
                )
            raise UpstreamUnavailableError(
                "The ledger store is currently unavailable",
                details={"operation": operation},
            ) from e

    async def _validated(
        self,
        build,
        owner_id: str,
        entity_type: str,
        correlation_id: Optional[UUID],
    ):
        """Run a validator call, auditing the failure before re-raising it."""
        try:
            return build()
        except EntryValidationFailed as e:
            if self._audit_logger:
                issues = (e.details or {}).get("issues", [])
                await self._audit_logger.log_validation_failed(
                    owner_id=owner_id,
                    entity_type=entity_type,
                    issues=issues,
                    correlation_id=correlation_id,
                )
            raise

    @staticmethod
    def _pagination(count: int, page: int, limit: int) -> Pagination:
        return Pagination(
            current=page,
            total_pages=math.ceil(count / limit),
            count=count,
            limit=limit,
        )


class ExpenseFlow(_Flow):
    """
    Orchestrates expense operations.

    Expenses have no lifecycle: they are only created, replaced or deleted
    on request of their owner.
    """

    def __init__(
        self,
        expense_storage: ExpenseStorageInterface,
        validator: EntryValidator,
        views: LedgerViews,
        audit_logger: Optional[AuditLogger] = None,
        settings: Optional[AppSettings] = None,
    ):
        super().__init__(audit_logger)
        self._storage = expense_storage
        self._validator = validator
        self._views = views
        self._settings = settings or get_settings().app

    async def create(
        self,
        owner_id: str,
        payload: Mapping[str, Any],
        correlation_id: Optional[UUID] = None,
    ) -> Expense:
        correlation_id = correlation_id or create_correlation_id()
        expense = await self._validated(
            lambda: self._validator.build_expense(owner_id, payload),
            owner_id, "expense", correlation_id,
        )

        async with self._store_call("save_expense", owner_id, correlation_id):
            await self._storage.save_expense(expense)

        if self._audit_logger:
            await self._audit_logger.log_entry_changed(
                event_type=AuditEventType.EXPENSE_CREATED,
                entity_type="expense",
                entity_id=expense.id,
                owner_id=owner_id,
                correlation_id=correlation_id,
                details={"category": expense.category.value, "amount": str(expense.amount)},
            )
        return expense

    async def get(self, owner_id: str, expense_id: UUID) -> Expense:
        async with self._store_call("get_expense", owner_id, None):
            expense = await self._storage.get_expense(owner_id, expense_id)
        if expense is None:
            raise EntryNotFoundError(f"Expense not found: {expense_id}")
        return expense

    async def update(
        self,
        owner_id: str,
        expense_id: UUID,
        payload: Mapping[str, Any],
        correlation_id: Optional[UUID] = None,
    ) -> Expense:
        correlation_id = correlation_id or create_correlation_id()
        existing = await self.get(owner_id, expense_id)
        expense = await self._validated(
            lambda: self._validator.replace_expense(existing, payload),
            owner_id, "expense", correlation_id,
        )

        async with self._store_call("update_expense", owner_id, correlation_id):
            await self._storage.update_expense(expense)

        if self._audit_logger:
            await self._audit_logger.log_entry_changed(
                event_type=AuditEventType.EXPENSE_UPDATED,
                entity_type="expense",
                entity_id=expense.id,
                owner_id=owner_id,
                correlation_id=correlation_id,
            )
        return expense

    async def delete(
        self,
        owner_id: str,
        expense_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        correlation_id = correlation_id or create_correlation_id()
        async with self._store_call("delete_expense", owner_id, correlation_id):
            deleted = await self._storage.delete_expense(owner_id, expense_id)
        if not deleted:
            raise EntryNotFoundError(f"Expense not found: {expense_id}")

        if self._audit_logger:
            await self._audit_logger.log_entry_changed(
                event_type=AuditEventType.EXPENSE_DELETED,
                entity_type="expense",
                entity_id=expense_id,
                owner_id=owner_id,
                correlation_id=correlation_id,
            )

    async def list_expenses(
        self,
        owner_id: str,
        ledger_filter: Optional[LedgerFilter] = None,
        page: int = 1,
        limit: Optional[int] = None,
        sort_by: str = "spent_on",
        descending: bool = True,
    ) -> ExpenseListing:
        """Newest expenses first by default."""
        limit = min(limit or self._settings.default_page_size, self._settings.max_page_size)
        page = max(page, 1)
        try:
            async with self._store_call("find_expenses", owner_id, None):
                count = await self._storage.count_expenses(owner_id, ledger_filter)
                expenses = await self._storage.find_expenses(
                    owner_id,
                    ledger_filter,
                    sort_by=sort_by,
                    descending=descending,
                    limit=limit,
                    offset=(page - 1) * limit,
                )
        except ValueError as e:
            raise EntryValidationFailed(str(e), details={"field": "sort_by"}) from e

        return ExpenseListing(
            expenses=expenses,
            pagination=self._pagination(count, page, limit),
        )

    async def stats(
        self,
        owner_id: str,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        categories: Optional[list[str]] = None,
    ) -> ExpenseStats:
        async with self._store_call("expense_stats", owner_id, None):
            return await self._views.expense_stats(owner_id, date_from, date_to, categories)


class BillFlow(_Flow):
    """
    Orchestrates bill operations.

    CRITICAL: Every bill is evaluated BEFORE it is persisted, so a pending
    bill saved with a past due date is stored as overdue.
    """

    def __init__(
        self,
        bill_storage: BillStorageInterface,
        validator: EntryValidator,
        evaluator: BillLifecycleEvaluator,
        views: LedgerViews,
        audit_logger: Optional[AuditLogger] = None,
    ):
        super().__init__(audit_logger)
        self._storage = bill_storage
        self._validator = validator
        self._evaluator = evaluator
        self._views = views

    async def _log_status_change(
        self,
        bill: Bill,
        old_status: str,
        automatic: bool,
        correlation_id: UUID,
    ) -> None:
        if self._audit_logger and old_status != bill.status.value:
            await self._audit_logger.log_bill_status_changed(
                bill_id=bill.id,
                owner_id=bill.owner_id,
                old_status=old_status,
                new_status=bill.status.value,
                automatic=automatic,
                correlation_id=correlation_id,
            )

    async def create(
        self,
        owner_id: str,
        payload: Mapping[str, Any],
        as_of: Optional[date] = None,
        correlation_id: Optional[UUID] = None,
    ) -> Bill:
        correlation_id = correlation_id or create_correlation_id()
        requested = await self._validated(
            lambda: self._validator.build_bill(owner_id, payload),
            owner_id, "bill", correlation_id,
        )
        bill = evaluate_bill_status(requested, as_of)

        async with self._store_call("save_bill", owner_id, correlation_id):
            await self._storage.save_bill(bill)

        if self._audit_logger:
            await self._audit_logger.log_entry_changed(
                event_type=AuditEventType.BILL_CREATED,
                entity_type="bill",
                entity_id=bill.id,
                owner_id=owner_id,
                correlation_id=correlation_id,
                details={"title": bill.title, "amount": str(bill.amount), "status": bill.status.value},
            )
        await self._log_status_change(bill, requested.status.value, True, correlation_id)
        return bill

    async def get(
        self,
        owner_id: str,
        bill_id: UUID,
        as_of: Optional[date] = None,
        correlation_id: Optional[UUID] = None,
    ) -> Bill:
        async with self._store_call("get_bill", owner_id, correlation_id):
            await self._evaluator.normalize(owner_id, as_of, correlation_id)
            bill = await self._storage.get_bill(owner_id, bill_id)
        if bill is None:
            raise EntryNotFoundError(f"Bill not found: {bill_id}")
        return bill

    async def update(
        self,
        owner_id: str,
        bill_id: UUID,
        payload: Mapping[str, Any],
        as_of: Optional[date] = None,
        correlation_id: Optional[UUID] = None,
    ) -> Bill:
        """
        Apply a partial update, then re-evaluate the status.

        Marking a bill paid, or moving it back from overdue to pending, only
        ever happens here.
        """
        correlation_id = correlation_id or create_correlation_id()
        async with self._store_call("get_bill", owner_id, correlation_id):
            existing = await self._storage.get_bill(owner_id, bill_id)
        if existing is None:
            raise EntryNotFoundError(f"Bill not found: {bill_id}")

        requested = await self._validated(
            lambda: self._validator.apply_bill_update(existing, payload),
            owner_id, "bill", correlation_id,
        )
        bill = evaluate_bill_status(requested, as_of)

        async with self._store_call("update_bill", owner_id, correlation_id):
            await self._storage.update_bill(bill)

        if self._audit_logger:
            await self._audit_logger.log_entry_changed(
                event_type=AuditEventType.BILL_UPDATED,
                entity_type="bill",
                entity_id=bill.id,
                owner_id=owner_id,
                correlation_id=correlation_id,
            )
        await self._log_status_change(requested, existing.status.value, False, correlation_id)
        await self._log_status_change(bill, requested.status.value, True, correlation_id)
        return bill

    async def delete(
        self,
        owner_id: str,
        bill_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        correlation_id = correlation_id or create_correlation_id()
        async with self._store_call("delete_bill", owner_id, correlation_id):
            deleted = await self._storage.delete_bill(owner_id, bill_id)
        if not deleted:
            raise EntryNotFoundError(f"Bill not found: {bill_id}")

        if self._audit_logger:
            await self._audit_logger.log_entry_changed(
                event_type=AuditEventType.BILL_DELETED,
                entity_type="bill",
                entity_id=bill_id,
                owner_id=owner_id,
                correlation_id=correlation_id,
            )

    async def list_bills(
        self,
        owner_id: str,
        ledger_filter: Optional[LedgerFilter] = None,
        page: int = 1,
        limit: Optional[int] = None,
        as_of: Optional[date] = None,
        correlation_id: Optional[UUID] = None,
    ) -> BillListing:
        async with self._store_call("list_bills", owner_id, correlation_id):
            return await self._views.list_bills(
                owner_id, ledger_filter, page, limit, as_of, correlation_id
            )

    async def upcoming(
        self,
        owner_id: str,
        days: Optional[int] = None,
        limit: int = 10,
        as_of: Optional[date] = None,
        correlation_id: Optional[UUID] = None,
    ) -> UpcomingBills:
        async with self._store_call("upcoming_bills", owner_id, correlation_id):
            return await self._views.upcoming_bills(owner_id, days, limit, as_of, correlation_id)


class ReportFlow(_Flow):
    """
    Orchestrates report generation.

    Flow:
    1. Validate the request (entry type, period, categories, dates)
    2. Sweep overdue bills (inside the assembler)
    3. Assemble current and previous period
    4. Audit
    """

    def __init__(
        self,
        assembler: ReportAssembler,
        validator: EntryValidator,
        audit_logger: Optional[AuditLogger] = None,
    ):
        super().__init__(audit_logger)
        self._assembler = assembler
        self._validator = validator

    async def generate(
        self,
        owner_id: str,
        params: Mapping[str, Any],
        as_of: Optional[date] = None,
        correlation_id: Optional[UUID] = None,
    ) -> Union[Report, CombinedReport]:
        """
        Build the report described by `params`.

        An entry type of "both" yields a CombinedReport with expenses and
        bills over the same period.
        """
        correlation_id = correlation_id or create_correlation_id()
        params = dict(params)
        entry_type = params.get("entry_type")
        combined = isinstance(entry_type, str) and entry_type.strip().lower() in COMBINED_REPORT_TYPES
        if combined:
            params["entry_type"] = EntryType.EXPENSE
            params.pop("categories", None)

        request = await self._validated(
            lambda: self._validator.validate_report_request(owner_id, params),
            owner_id, "report", correlation_id,
        )

        try:
            async with self._store_call("build_report", owner_id, correlation_id):
                if combined:
                    report = await self._assembler.build_combined(request, as_of, correlation_id)
                else:
                    report = await self._assembler.build(request, as_of, correlation_id)
        except ValueError as e:
            raise EntryValidationFailed(str(e), details={"field": "start_date"}) from e

        if self._audit_logger:
            if combined:
                entry_count = report.expenses.count + report.bills.count
                entry_label = "combined"
            else:
                entry_count = report.count
                entry_label = request.entry_type.value
            await self._audit_logger.log_report_generated(
                owner_id=owner_id,
                entry_type=entry_label,
                period_mode=request.period_mode.value,
                entry_count=entry_count,
                correlation_id=correlation_id,
            )
        return report


class DashboardFlow(_Flow):
    """Dashboard summary for one owner."""

    def __init__(
        self,
        views: LedgerViews,
        audit_logger: Optional[AuditLogger] = None,
    ):
        super().__init__(audit_logger)
        self._views = views

    async def summary(
        self,
        owner_id: str,
        as_of: Optional[date] = None,
        correlation_id: Optional[UUID] = None,
    ) -> DashboardSummary:
        async with self._store_call("dashboard_summary", owner_id, correlation_id):
            return await self._views.dashboard_summary(owner_id, as_of, correlation_id)


@dataclass
class AppComponents:
    expenses: ExpenseFlow
    bills: BillFlow
    reports: ReportFlow
    dashboard: DashboardFlow
    audit_logger: AuditLogger
    storage_backend: str
    sheets_client: Optional[GoogleSheetsClient] = None


def create_app_components(
    settings: Optional[AppSettings] = None,
    expense_storage: Optional[ExpenseStorageInterface] = None,
    bill_storage: Optional[BillStorageInterface] = None,
    audit_logger: Optional[AuditLogger] = None,
) -> AppComponents:
    """
    Build the flows and views around one set of stores.

    Args:
        settings: Application settings (loaded from the environment if None)
        expense_storage, bill_storage, audit_logger: Explicit backends.
            When omitted they are built from `settings.storage_backend`.

    NOTE: The Google Sheets backend connects lazily. A misconfigured
    spreadsheet surfaces on the first request as UpstreamUnavailableError.
    """
    settings = settings or get_settings().app
    sheets_client = None

    if expense_storage is None or bill_storage is None:
        if settings.storage_backend == "google_sheets":
            sheets_client = GoogleSheetsClient()
            expense_storage = expense_storage or GoogleSheetsExpenseStorage(sheets_client)
            bill_storage = bill_storage or GoogleSheetsBillStorage(sheets_client)
            audit_logger = audit_logger or AuditLogger(GoogleSheetsAuditStorage(sheets_client))
        else:
            expense_storage = expense_storage or InMemoryExpenseStorage()
            bill_storage = bill_storage or InMemoryBillStorage()

    audit_logger = audit_logger or AuditLogger(InMemoryAuditStorage())

    validator = EntryValidator(settings)
    evaluator = BillLifecycleEvaluator(bill_storage, audit_logger)
    views = LedgerViews(expense_storage, bill_storage, evaluator, settings)
    assembler = ReportAssembler(expense_storage, bill_storage, evaluator, settings)

    logger.info(
        "components_created",
        storage_backend=settings.storage_backend,
        environment=settings.app_environment,
    )

    return AppComponents(
        expenses=ExpenseFlow(expense_storage, validator, views, audit_logger, settings),
        bills=BillFlow(bill_storage, validator, evaluator, views, audit_logger),
        reports=ReportFlow(assembler, validator, audit_logger),
        dashboard=DashboardFlow(views, audit_logger),
        audit_logger=audit_logger,
        storage_backend=settings.storage_backend,
        sheets_client=sheets_client,
    )
