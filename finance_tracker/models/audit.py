"""
Audit trail records.

Ledger writes, bill status transitions and store outages each leave an
AuditEvent. Events are only ever appended.
"""

import json
from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from finance_tracker.models.entries import utcnow


class AuditEventType(str, Enum):
    """What happened."""
    # Expenses
    EXPENSE_CREATED = "expense_created"
    EXPENSE_UPDATED = "expense_updated"
    EXPENSE_DELETED = "expense_deleted"

    # Bills
    BILL_CREATED = "bill_created"
    BILL_UPDATED = "bill_updated"
    BILL_DELETED = "bill_deleted"
    BILL_STATUS_CHANGED = "bill_status_changed"
    OVERDUE_SWEEP_COMPLETED = "overdue_sweep_completed"

    # Rejected input
    VALIDATION_FAILED = "validation_failed"

    # Reads
    REPORT_GENERATED = "report_generated"

    # Failures
    STORAGE_UNAVAILABLE = "storage_unavailable"
    SYSTEM_ERROR = "system_error"


class AuditSeverity(str, Enum):
    """Mirrors the log level the event is emitted at."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """One entry in the audit trail."""

    event_id: UUID = Field(
        default_factory=uuid4,
        description="Primary key of the event"
    )
    timestamp: datetime = Field(
        default_factory=utcnow,
        description="UTC time the event was recorded"
    )

    event_type: AuditEventType
    severity: AuditSeverity = AuditSeverity.INFO

    # Who and what
    owner_id: Optional[str] = Field(
        default=None,
        description="Owner whose ledger the event concerns"
    )
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'expense', 'bill', 'report')"
    )
    entity_id: Optional[UUID] = None

    # Shared by every event caused by one request
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate the events of one request"
    )

    description: str = Field(..., max_length=500)
    details: dict[str, Any] = Field(default_factory=dict)

    # Set only on failure events
    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="False for automatic transitions such as the overdue sweep"
    )

    def to_log_dict(self) -> dict:
        """Flat, JSON-safe view for structlog."""
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "owner_id": self.owner_id,
            "entity_type": self.entity_type,
            "entity_id": str(self.entity_id) if self.entity_id else None,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }

    def to_sheets_row(self) -> list:
        """
        Cells for the audit worksheet, in column order:
        [event_id, timestamp, event_type, severity, owner_id, entity_type,
         entity_id, correlation_id, description, details_json, error_message,
         is_user_action]
        """
        return [
            str(self.event_id),
            self.timestamp.isoformat(),
            self.event_type.value,
            self.severity.value,
            self.owner_id or "",
            self.entity_type or "",
            str(self.entity_id) if self.entity_id else "",
            str(self.correlation_id) if self.correlation_id else "",
            self.description,
            json.dumps(self.details, default=str) if self.details else "",
            self.error_message or "",
            str(self.is_user_action),
        ]


class AuditEventBuilder:
    """
    Factories for the events the flows emit.

    Example:
        event = AuditEventBuilder.entry_changed(
            AuditEventType.EXPENSE_CREATED, "expense", expense.id, owner_id, correlation_id
        )
        event = AuditEventBuilder.overdue_sweep(owner_id, 3, correlation_id)
    """

    @staticmethod
    def entry_changed(
        event_type: AuditEventType,
        entity_type: str,
        entity_id: UUID,
        owner_id: str,
        correlation_id: Optional[UUID],
        details: Optional[dict] = None,
    ) -> AuditEvent:
        action = event_type.value.rsplit("_", 1)[-1]
        return AuditEvent(
            event_type=event_type,
            owner_id=owner_id,
            entity_type=entity_type,
            entity_id=entity_id,
            correlation_id=correlation_id,
            description=f"{entity_type.capitalize()} {action}",
            details=details or {},
            is_user_action=True,
        )

    @staticmethod
    def bill_status_changed(
        bill_id: UUID,
        owner_id: str,
        old_status: str,
        new_status: str,
        automatic: bool,
        correlation_id: Optional[UUID],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BILL_STATUS_CHANGED,
            owner_id=owner_id,
            entity_type="bill",
            entity_id=bill_id,
            correlation_id=correlation_id,
            description=f"Bill status changed: {old_status} -> {new_status}",
            details={
                "old_status": old_status,
                "new_status": new_status,
                "automatic": automatic,
            },
            is_user_action=not automatic,
        )

    @staticmethod
    def overdue_sweep(
        owner_id: str,
        transitioned: int,
        correlation_id: Optional[UUID],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.OVERDUE_SWEEP_COMPLETED,
            severity=AuditSeverity.DEBUG if transitioned == 0 else AuditSeverity.INFO,
            owner_id=owner_id,
            entity_type="bill",
            correlation_id=correlation_id,
            description=f"Overdue sweep marked {transitioned} bill(s) overdue",
            details={"transitioned": transitioned},
        )

    @staticmethod
    def validation_failed(
        owner_id: str,
        entity_type: str,
        issues: list[dict],
        correlation_id: Optional[UUID],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.VALIDATION_FAILED,
            severity=AuditSeverity.WARNING,
            owner_id=owner_id,
            entity_type=entity_type,
            correlation_id=correlation_id,
            description=f"{entity_type.capitalize()} validation failed with {len(issues)} issues",
            details={"issues": issues},
            is_user_action=True,
        )

    @staticmethod
    def report_generated(
        owner_id: str,
        entry_type: str,
        period_mode: str,
        entry_count: int,
        correlation_id: Optional[UUID],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.REPORT_GENERATED,
            owner_id=owner_id,
            entity_type="report",
            correlation_id=correlation_id,
            description=f"{period_mode.capitalize()} {entry_type} report over {entry_count} entries",
            details={
                "entry_type": entry_type,
                "period_mode": period_mode,
                "entry_count": entry_count,
            },
        )

    @staticmethod
    def storage_unavailable(
        operation: str,
        error_message: str,
        owner_id: Optional[str],
        correlation_id: Optional[UUID],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STORAGE_UNAVAILABLE,
            severity=AuditSeverity.ERROR,
            owner_id=owner_id,
            correlation_id=correlation_id,
            description=f"Ledger store unavailable during {operation}",
            error_message=error_message,
            details={"operation": operation},
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )
