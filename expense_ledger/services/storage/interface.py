"""
Abstract Grid Storage Interface

DESIGN DECISION: The ledger engine talks to a plain cell grid through
this interface. This allows us to:
1. Keep Google Sheets behind a thin wrapper
2. Use in-memory storage for testing
3. Keep the block layout logic decoupled from the spreadsheet API

The interface is intentionally small - cell and row reads/writes, row
insertion and text search. Grids have no stable row identifiers, so the
interface offers none: callers find rows by scanning their content.

Rows and columns are 1-based everywhere, like the spreadsheet itself.
A partition is referenced by its title (a plain string).
"""

from abc import ABC, abstractmethod
from typing import Any, Optional, Sequence

from expense_ledger.models.audit import AuditEvent


PartitionRef = str
CellValue = Any


class GridStore(ABC):
    """
    Abstract interface for tabular storage.

    Any storage implementation (Google Sheets, in-memory, ...) must
    implement these methods. None of them may cache row positions.
    """

    # ------------------------------------------------------------------
    # Partitions
    # ------------------------------------------------------------------

    @abstractmethod
    def create_partition(self, key: str) -> PartitionRef:
        """
        Create an empty partition.

        Raises:
            DuplicateError: If a partition with this key already exists
        """
        pass

    @abstractmethod
    def has_partition(self, key: str) -> bool:
        pass

    @abstractmethod
    def list_partitions(self) -> list[PartitionRef]:
        """All partitions, in the store's display order."""
        pass

    def get_partition(self, key: str) -> PartitionRef:
        """
        Reference to an existing partition.

        Raises:
            NotFoundError: If no partition has this key
        """
        if not self.has_partition(key):
            raise NotFoundError(f"Partition not found: {key}")
        return key

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    @abstractmethod
    def read_column(
        self,
        partition: PartitionRef,
        column: int,
        row_count: Optional[int] = None,
    ) -> list[CellValue]:
        """
        Read one column from row 1 down.

        Args:
            partition: Partition to read
            column: Column number
            row_count: Number of rows to return. Defaults to the column's
                       own last non-blank row, so reading the label
                       column costs a single fetch. Missing cells read
                       as "".

        Returns:
            Cell values; index 0 is row 1
        """
        pass

    @abstractmethod
    def read_cell(self, partition: PartitionRef, row: int, column: int) -> CellValue:
        """Read one cell. Cells never written read as ""."""
        pass

    @abstractmethod
    def last_row(self, partition: PartitionRef) -> int:
        """Number of the last row holding any non-blank cell, 0 when empty."""
        pass

    @abstractmethod
    def find_text(
        self,
        partition: PartitionRef,
        literal: str,
    ) -> Optional[tuple[int, int]]:
        """
        Find the first cell whose text contains `literal`, ignoring case.

        Scans row by row, left to right. Hand-edited labels such as
        "Month Total:" still match "MONTH TOTAL:".

        Returns:
            (row, column) of the match, or None
        """
        pass

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    @abstractmethod
    def write_rows(
        self,
        partition: PartitionRef,
        row: int,
        start_column: int,
        rows: Sequence[Sequence[CellValue]],
    ) -> None:
        """Write a rectangle of values with its top-left cell at (row, start_column)."""
        pass

    def write_row(
        self,
        partition: PartitionRef,
        row: int,
        start_column: int,
        values: Sequence[CellValue],
    ) -> None:
        """Write consecutive cells of one row starting at start_column."""
        self.write_rows(partition, row, start_column, [values])

    def append_rows(
        self,
        partition: PartitionRef,
        rows: Sequence[Sequence[CellValue]],
        start_column: int = 1,
        gap: int = 0,
    ) -> int:
        """
        Write rows after the partition's last non-blank row.

        Args:
            gap: Blank rows to leave between the last row and the new ones

        Returns:
            Row number where the first appended row landed
        """
        first = self.last_row(partition) + 1 + gap
        self.write_rows(partition, first, start_column, rows)
        return first

    @abstractmethod
    def insert_row_before(self, partition: PartitionRef, row: int) -> None:
        """Insert an empty row at `row`; that row and all below shift down by one."""
        pass

    @abstractmethod
    def clear_columns(
        self,
        partition: PartitionRef,
        first_column: int,
        last_column: int,
    ) -> None:
        """Blank every cell in the given column range."""
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Partition not found in storage."""
    pass


class DuplicateError(StorageError):
    """Attempted to create a partition that already exists."""
    pass


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass
