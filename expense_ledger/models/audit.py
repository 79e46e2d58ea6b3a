"""
Audit Models for Expense Ledger

Every structural change to a month sheet is logged for audit purposes.
Because the sheet keeps no index, the audit trail is the only record of
which block a purchase was written to and where it sat at the time.

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

import json
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Ledger structure
    PARTITION_CREATED = "partition_created"
    BLOCK_CREATED = "block_created"
    TRANSACTION_APPENDED = "transaction_appended"
    TOTALS_RECOMPUTED = "totals_recomputed"

    # Submissions
    SUBMISSION_RECEIVED = "submission_received"
    SUBMISSION_REJECTED = "submission_rejected"
    SUBMISSION_COMPLETED = "submission_completed"

    # Reporting
    CHARTS_GENERATED = "charts_generated"
    REPORT_SENT = "report_sent"

    # System events
    SYSTEM_ERROR = "system_error"
    EXTERNAL_SERVICE_ERROR = "external_service_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


AUDIT_COLUMNS = [
    "event_id",
    "timestamp",
    "event_type",
    "severity",
    "partition",
    "correlation_id",
    "description",
    "details_json",
    "error_message",
    "is_user_action",
]


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=_utcnow,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Which month sheet this is about
    partition: Optional[str] = Field(
        default=None,
        description="Period key of the month sheet involved"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., all events in one submission)"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "partition": self.partition,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }

    def to_sheets_row(self) -> list:
        """
        Convert to a row for the audit sheet, in AUDIT_COLUMNS order.
        """
        return [
            str(self.event_id),
            self.timestamp.isoformat(),
            self.event_type.value,
            self.severity.value,
            self.partition or "",
            str(self.correlation_id) if self.correlation_id else "",
            self.description,
            json.dumps(self.details, default=str) if self.details else "",
            self.error_message or "",
            str(self.is_user_action),
        ]


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.block_created("January 2025", label, 3, cid)
    """

    @staticmethod
    def partition_created(
        period_key: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PARTITION_CREATED,
            partition=period_key,
            correlation_id=correlation_id,
            description=f"Month sheet created: {period_key}",
        )

    @staticmethod
    def block_created(
        period_key: str,
        week_label: str,
        label_row: int,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BLOCK_CREATED,
            partition=period_key,
            correlation_id=correlation_id,
            description=f"Week block created: {week_label}",
            details={
                "week_label": week_label,
                "label_row": label_row,
            },
        )

    @staticmethod
    def transaction_appended(
        period_key: str,
        week_label: str,
        row: int,
        amount: str,
        block_total: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_APPENDED,
            partition=period_key,
            correlation_id=correlation_id,
            description=f"Purchase added to {week_label}: {amount}",
            details={
                "week_label": week_label,
                "row": row,
                "amount": amount,
                "block_total": block_total,
            },
            is_user_action=True,
        )

    @staticmethod
    def totals_recomputed(
        period_key: str,
        block_count: int,
        period_total: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TOTALS_RECOMPUTED,
            partition=period_key,
            correlation_id=correlation_id,
            description=f"Totals recomputed for {period_key}",
            details={
                "block_count": block_count,
                "period_total": period_total,
            },
        )

    @staticmethod
    def submission_received(
        item_count: int,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SUBMISSION_RECEIVED,
            correlation_id=correlation_id,
            description=f"Submission received with {item_count} purchase(s)",
            details={"item_count": item_count},
            is_user_action=True,
        )

    @staticmethod
    def submission_rejected(
        reason: str,
        field: Optional[str],
        index: Optional[int],
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SUBMISSION_REJECTED,
            severity=AuditSeverity.WARNING,
            correlation_id=correlation_id,
            description="Submission rejected before any write",
            error_message=reason,
            details={
                "field": field,
                "index": index,
            },
        )

    @staticmethod
    def submission_completed(
        added: int,
        periods: list[str],
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SUBMISSION_COMPLETED,
            correlation_id=correlation_id,
            description=f"{added} purchase(s) written",
            details={
                "added": added,
                "periods": periods,
            },
        )

    @staticmethod
    def charts_generated(
        chart: str,
        period_key: Optional[str],
        points: int,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CHARTS_GENERATED,
            partition=period_key,
            correlation_id=correlation_id,
            description=f"{chart} chart data written ({points} points)",
            details={
                "chart": chart,
                "points": points,
            },
            is_user_action=True,
        )

    @staticmethod
    def report_sent(
        period_key: str,
        to_address: str,
        total: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.REPORT_SENT,
            partition=period_key,
            correlation_id=correlation_id,
            description=f"Report for {period_key} sent to {to_address}",
            details={
                "to_address": to_address,
                "total": total,
            },
            is_user_action=True,
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

    @staticmethod
    def external_service_error(
        service: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXTERNAL_SERVICE_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"External service error: {service}",
            error_message=error_message,
            details={"service": service},
            correlation_id=correlation_id,
        )
