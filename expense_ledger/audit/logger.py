"""
Audit Logger

DESIGN DECISION: Every structural change to the ledger is logged. Month
sheets carry no index, so the audit trail is where you find out which
block a purchase went to and in which row it landed at the time.

The audit logger:
- Is synchronous, like the ledger it records
- Gracefully handles failures (doesn't break a submission if logging fails)
- Supports correlation IDs to trace all events of one submission
"""

import logging
import sys
from decimal import Decimal
from typing import Optional
from uuid import UUID, uuid4

import structlog

from expense_ledger.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity
from expense_ledger.services.storage import AuditStorageInterface


def configure_logging(level: str = "INFO") -> None:
    """
    Configure structlog for local JSON logs.

    Safe to call again (the Streamlit app does on every rerun).
    """
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, str(level).upper(), logging.INFO),
        force=True,
    )
    structlog.configure(
        processors=[
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


configure_logging()


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. The audit sheet (for persistence and user visibility)
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Args:
            storage: Storage backend for persistence.
                     If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger("expense_ledger.audit")

    def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if the storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity in (AuditSeverity.ERROR, AuditSeverity.CRITICAL):
            self._logger.error("audit_event", **log_dict)
        elif event.severity == AuditSeverity.WARNING:
            self._logger.warning("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return self._storage.append_event(event)
            except Exception as e:
                # The ledger write already happened; report and carry on
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    def log_partition_created(
        self,
        period_key: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.partition_created(period_key, correlation_id))

    def log_block_created(
        self,
        period_key: str,
        week_label: str,
        label_row: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.block_created(
            period_key=period_key,
            week_label=week_label,
            label_row=label_row,
            correlation_id=correlation_id,
        ))

    def log_transaction_appended(
        self,
        period_key: str,
        week_label: str,
        row: int,
        amount: Decimal,
        block_total: Decimal,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.transaction_appended(
            period_key=period_key,
            week_label=week_label,
            row=row,
            amount=str(amount),
            block_total=str(block_total),
            correlation_id=correlation_id,
        ))

    def log_totals_recomputed(
        self,
        period_key: str,
        block_count: int,
        period_total: Decimal,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.totals_recomputed(
            period_key=period_key,
            block_count=block_count,
            period_total=str(period_total),
            correlation_id=correlation_id,
        ))

    def log_submission_received(self, item_count: int, correlation_id: UUID) -> None:
        self.log(AuditEventBuilder.submission_received(item_count, correlation_id))

    def log_submission_rejected(
        self,
        reason: str,
        field: Optional[str],
        index: Optional[int],
        correlation_id: UUID,
    ) -> None:
        self.log(AuditEventBuilder.submission_rejected(
            reason=reason,
            field=field,
            index=index,
            correlation_id=correlation_id,
        ))

    def log_submission_completed(
        self,
        added: int,
        periods: list[str],
        correlation_id: UUID,
    ) -> None:
        self.log(AuditEventBuilder.submission_completed(added, periods, correlation_id))

    def log_charts_generated(
        self,
        chart: str,
        period_key: Optional[str],
        points: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.charts_generated(chart, period_key, points, correlation_id))

    def log_report_sent(
        self,
        period_key: str,
        to_address: str,
        total: Decimal,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.report_sent(
            period_key=period_key,
            to_address=to_address,
            total=str(total),
            correlation_id=correlation_id,
        ))

    def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an error."""
        self.log(AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        ))

    def log_external_service_error(
        self,
        service: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log external service error."""
        self.log(AuditEventBuilder.external_service_error(
            service=service,
            error_message=error_message,
            correlation_id=correlation_id,
        ))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a user action (a submission, a report).
    Pass it through all subsequent operations.
    """
    return uuid4()
