"""
In-Memory Grid Storage

A plain list-of-rows grid implementing GridStore. Used by the test suite
and as the fallback when Google Sheets is not configured, so the app can
still be tried out locally (nothing survives a restart).
"""

from typing import Optional, Sequence

from expense_ledger.models.audit import AuditEvent
from expense_ledger.services.storage.interface import (
    AuditStorageInterface,
    CellValue,
    DuplicateError,
    GridStore,
    NotFoundError,
    PartitionRef,
)


def _blank(value: CellValue) -> bool:
    return value is None or value == ""


class InMemoryGridStore(GridStore):
    """
    Grid kept as {partition: [[cell, ...], ...]}.

    Rows grow on demand; unwritten cells read as "".
    Partition order is creation order.
    """

    def __init__(self):
        self._grids: dict[str, list[list[CellValue]]] = {}

    def _grid(self, partition: PartitionRef) -> list[list[CellValue]]:
        try:
            return self._grids[partition]
        except KeyError:
            raise NotFoundError(f"Partition not found: {partition}")

    @staticmethod
    def _check_position(row: int, column: int) -> None:
        if row < 1 or column < 1:
            raise ValueError(f"Rows and columns start at 1, got ({row}, {column})")

    # Partitions

    def create_partition(self, key: str) -> PartitionRef:
        if key in self._grids:
            raise DuplicateError(f"Partition already exists: {key}")
        self._grids[key] = []
        return key

    def has_partition(self, key: str) -> bool:
        return key in self._grids

    def list_partitions(self) -> list[PartitionRef]:
        return list(self._grids)

    # Reads

    def read_column(
        self,
        partition: PartitionRef,
        column: int,
        row_count: Optional[int] = None,
    ) -> list[CellValue]:
        self._check_position(1, column)
        grid = self._grid(partition)
        if row_count is None:
            row_count = 0
            for index, cells in enumerate(grid):
                if column - 1 < len(cells) and not _blank(cells[column - 1]):
                    row_count = index + 1
        values = []
        for index in range(row_count):
            row = grid[index] if index < len(grid) else []
            values.append(row[column - 1] if column - 1 < len(row) else "")
        return values

    def read_cell(self, partition: PartitionRef, row: int, column: int) -> CellValue:
        self._check_position(row, column)
        grid = self._grid(partition)
        if row > len(grid):
            return ""
        cells = grid[row - 1]
        return cells[column - 1] if column - 1 < len(cells) else ""

    def last_row(self, partition: PartitionRef) -> int:
        grid = self._grid(partition)
        for index in range(len(grid) - 1, -1, -1):
            if any(not _blank(cell) for cell in grid[index]):
                return index + 1
        return 0

    def find_text(
        self,
        partition: PartitionRef,
        literal: str,
    ) -> Optional[tuple[int, int]]:
        needle = literal.casefold()
        for row_index, cells in enumerate(self._grid(partition), start=1):
            for col_index, cell in enumerate(cells, start=1):
                if isinstance(cell, str) and needle in cell.casefold():
                    return row_index, col_index
        return None

    # Writes

    def write_rows(
        self,
        partition: PartitionRef,
        row: int,
        start_column: int,
        rows: Sequence[Sequence[CellValue]],
    ) -> None:
        self._check_position(row, start_column)
        grid = self._grid(partition)
        for offset, values in enumerate(rows):
            index = row - 1 + offset
            while len(grid) <= index:
                grid.append([])
            cells = grid[index]
            needed = start_column - 1 + len(values)
            if len(cells) < needed:
                cells.extend([""] * (needed - len(cells)))
            cells[start_column - 1:needed] = list(values)

    def insert_row_before(self, partition: PartitionRef, row: int) -> None:
        self._check_position(row, 1)
        grid = self._grid(partition)
        while len(grid) < row - 1:
            grid.append([])
        grid.insert(row - 1, [])

    def clear_columns(
        self,
        partition: PartitionRef,
        first_column: int,
        last_column: int,
    ) -> None:
        self._check_position(1, first_column)
        for cells in self._grid(partition):
            for index in range(first_column - 1, min(last_column, len(cells))):
                cells[index] = ""

    def dump(self, partition: PartitionRef) -> list[list[CellValue]]:
        """Copy of the partition's rows, trimmed to last_row()."""
        grid = self._grid(partition)
        return [list(cells) for cells in grid[:self.last_row(partition)]]


class InMemoryAuditStorage(AuditStorageInterface):
    """Audit events kept in a list, oldest first."""

    def __init__(self):
        self.events: list[AuditEvent] = []

    def append_event(self, event: AuditEvent) -> bool:
        self.events.append(event)
        return True
