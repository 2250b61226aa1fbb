"""
Bill Lifecycle Evaluator

Decides the payment status of bills as time passes.

CRITICAL: The only automatic transition is PENDING -> OVERDUE, once the due
date is strictly earlier than the evaluation date. PAID bills are never
touched, and an OVERDUE bill only goes back to PENDING when its owner says so.

DESIGN DECISION: The status rule is a pure function so it can run on a
single bill before it is persisted. The bulk sweep over an owner's stored
bills is a separate, explicit operation that readers call before they look
at bills. It never happens as a side effect of a read.
"""

from datetime import date
from typing import Optional
from uuid import UUID

import structlog

from finance_tracker.audit import AuditLogger
from finance_tracker.models.entries import Bill, BillStatus
from finance_tracker.services.storage import BillStorageInterface


logger = structlog.get_logger(__name__)


URGENCY_OVERDUE = "overdue"
URGENCY_DUE_TODAY = "due_today"
URGENCY_DUE_SOON = "due_soon"


def is_overdue(bill: Bill, as_of: Optional[date] = None) -> bool:
    """True if a pending bill's due date has passed."""
    as_of = as_of or date.today()
    return bill.status == BillStatus.PENDING and bill.due_date < as_of


def evaluate_bill_status(bill: Bill, as_of: Optional[date] = None) -> Bill:
    """
    Apply the automatic status rule to one bill.

    Returns a copy with status OVERDUE if the bill is pending and lapsed,
    otherwise the bill itself. No other field changes.
    """
    if is_overdue(bill, as_of):
        return bill.model_copy(update={"status": BillStatus.OVERDUE})
    return bill


def days_until_due(bill: Bill, as_of: Optional[date] = None) -> int:
    """Negative once the due date has passed."""
    as_of = as_of or date.today()
    return (bill.due_date - as_of).days


def bill_urgency(bill: Bill, as_of: Optional[date] = None) -> str:
    """Classify an unpaid bill as overdue, due_today or due_soon."""
    days = days_until_due(bill, as_of)
    if bill.status == BillStatus.OVERDUE or days < 0:
        return URGENCY_OVERDUE
    if days == 0:
        return URGENCY_DUE_TODAY
    return URGENCY_DUE_SOON


class BillLifecycleEvaluator:
    """
    Runs the overdue sweep against a bill store.

    Usage:
        evaluator = BillLifecycleEvaluator(bill_storage, audit_logger)
        await evaluator.normalize(owner_id)
        bills = await bill_storage.find_bills(owner_id)
    """

    def __init__(
        self,
        storage: BillStorageInterface,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._storage = storage
        self._audit = audit_logger

    async def normalize(
        self,
        owner_id: str,
        as_of: Optional[date] = None,
        correlation_id: Optional[UUID] = None,
    ) -> int:
        """
        Mark every lapsed pending bill of one owner as overdue.

        Idempotent: running it twice for the same date transitions nothing
        the second time.

        Returns:
            Number of bills transitioned

        Raises:
            StorageError: If the bill store fails
        """
        as_of = as_of or date.today()
        transitioned = await self._storage.mark_overdue(owner_id, as_of)

        logger.debug(
            "overdue_sweep",
            owner_id=owner_id,
            as_of=as_of.isoformat(),
            transitioned=transitioned,
        )
        if self._audit and transitioned:
            await self._audit.log_overdue_sweep(
                owner_id=owner_id,
                transitioned=transitioned,
                correlation_id=correlation_id,
            )
        return transitioned
