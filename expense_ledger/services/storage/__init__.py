"""
Storage Services Package

Provides the grid storage interface and its implementations.
Google Sheets is the real backend; the in-memory store backs the tests
and the unconfigured fallback.
"""

from expense_ledger.services.storage.interface import (
    AuditStorageInterface,
    ConnectionError,
    DuplicateError,
    GridStore,
    NotFoundError,
    PartitionRef,
    StorageError,
)
from expense_ledger.services.storage.google_sheets import (
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsGridStore,
)
from expense_ledger.services.storage.memory import (
    InMemoryAuditStorage,
    InMemoryGridStore,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "GridStore",
    "PartitionRef",
    # Exceptions
    "ConnectionError",
    "DuplicateError",
    "NotFoundError",
    "StorageError",
    # Google Sheets implementation
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsGridStore",
    # In-memory implementation
    "InMemoryAuditStorage",
    "InMemoryGridStore",
]
