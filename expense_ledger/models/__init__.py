"""
Data Models Package

This package contains all Pydantic models used in the Expense Ledger.
All data flowing through the system must conform to these schemas.
"""

from expense_ledger.models.ledger import (
    BlockCoordinates,
    PartitionHandle,
    PeriodSummary,
    ReportDelivery,
    ReportPayload,
    StoreTotal,
    SubmissionResult,
    Transaction,
    WeekTotal,
)
from expense_ledger.models.audit import (
    AUDIT_COLUMNS,
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Ledger models
    "BlockCoordinates",
    "PartitionHandle",
    "PeriodSummary",
    "ReportDelivery",
    "ReportPayload",
    "StoreTotal",
    "SubmissionResult",
    "Transaction",
    "WeekTotal",
    # Audit models
    "AUDIT_COLUMNS",
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
