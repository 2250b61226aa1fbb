"""
Audit Logger

DESIGN DECISION: Ledger changes, automatic overdue transitions, rejected
input and generated reports all leave an audit event, so an owner can ask
"why is this bill overdue?" and get an answer.

Each event is written twice: to the structured process log, and to the
audit store when one is configured. A failing audit store is reported in
the process log but never fails the ledger operation that triggered it.

Events belonging to one request share a correlation id.
"""

from typing import Optional
from uuid import UUID, uuid4

import structlog

from finance_tracker.models.audit import AuditEvent, AuditEventBuilder, AuditEventType
from finance_tracker.services.storage import AuditStorageInterface


# Configure structlog for local logging.
# merge_contextvars picks up the request id bound by the API middleware.
structlog.configure(
    processors=[
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


class AuditLogger:
    """Writes audit events to the process log and, optionally, the audit store."""

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        self._storage = storage
        self._logger = structlog.get_logger("finance_tracker.audit")

    async def log(self, event: AuditEvent) -> bool:
        """
        Record one event.

        Returns False only when the audit store rejected the write.
        """
        log_dict = event.to_log_dict()

        if event.severity.value in ("error", "critical"):
            self._logger.error("audit_event", **log_dict)
        elif event.severity.value == "warning":
            self._logger.warning("audit_event", **log_dict)
        elif event.severity.value == "debug":
            self._logger.debug("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                # Audit persistence must never fail the ledger operation
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def log_entry_changed(
        self,
        event_type: AuditEventType,
        entity_type: str,
        entity_id: UUID,
        owner_id: str,
        correlation_id: Optional[UUID],
        details: Optional[dict] = None,
    ) -> None:
        """Log a create, update or delete of an expense or bill."""
        event = AuditEventBuilder.entry_changed(
            event_type=event_type,
            entity_type=entity_type,
            entity_id=entity_id,
            owner_id=owner_id,
            correlation_id=correlation_id,
            details=details,
        )
        await self.log(event)

    async def log_bill_status_changed(
        self,
        bill_id: UUID,
        owner_id: str,
        old_status: str,
        new_status: str,
        automatic: bool,
        correlation_id: Optional[UUID],
    ) -> None:
        event = AuditEventBuilder.bill_status_changed(
            bill_id=bill_id,
            owner_id=owner_id,
            old_status=old_status,
            new_status=new_status,
            automatic=automatic,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_overdue_sweep(
        self,
        owner_id: str,
        transitioned: int,
        correlation_id: Optional[UUID],
    ) -> None:
        event = AuditEventBuilder.overdue_sweep(
            owner_id=owner_id,
            transitioned=transitioned,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_validation_failed(
        self,
        owner_id: str,
        entity_type: str,
        issues: list[dict],
        correlation_id: Optional[UUID],
    ) -> None:
        """Input was rejected before anything was persisted."""
        event = AuditEventBuilder.validation_failed(
            owner_id=owner_id,
            entity_type=entity_type,
            issues=issues,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_report_generated(
        self,
        owner_id: str,
        entry_type: str,
        period_mode: str,
        entry_count: int,
        correlation_id: Optional[UUID],
    ) -> None:
        event = AuditEventBuilder.report_generated(
            owner_id=owner_id,
            entry_type=entry_type,
            period_mode=period_mode,
            entry_count=entry_count,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_storage_unavailable(
        self,
        operation: str,
        error_message: str,
        owner_id: Optional[str],
        correlation_id: Optional[UUID],
    ) -> None:
        event = AuditEventBuilder.storage_unavailable(
            operation=operation,
            error_message=error_message,
            owner_id=owner_id,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        event = AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        )
        await self.log(event)


def create_correlation_id() -> UUID:
    """One per owner request; every event the request causes carries it."""
    return uuid4()
