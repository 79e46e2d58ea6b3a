"""
Chart Data Sheet

Writes chart tables to a helper sheet so charts inside the spreadsheet
can point at fixed ranges:

    A:B   weekly totals of the selected month
    C:D   spend per store of the selected month
    F:G   totals per month

Each table replaces whatever was in its columns before.
"""

from typing import Any, Sequence

import structlog

from expense_ledger.services.storage import DuplicateError, GridStore


logger = structlog.get_logger(__name__)


WEEKLY_COLUMNS = (1, 2)
STORE_COLUMNS = (3, 4)
PERIOD_COLUMNS = (6, 7)


class ChartDataWriter:
    """Keeps the chart helper sheet in sync with the latest tables."""

    def __init__(self, store: GridStore, sheet_name: str = "Chart_Data"):
        self._store = store
        self.sheet_name = sheet_name

    def write_weekly(self, table: Sequence[Sequence[Any]]) -> int:
        return self._write(table, WEEKLY_COLUMNS)

    def write_stores(self, table: Sequence[Sequence[Any]]) -> int:
        return self._write(table, STORE_COLUMNS)

    def write_periods(self, table: Sequence[Sequence[Any]]) -> int:
        return self._write(table, PERIOD_COLUMNS)

    def _ensure_sheet(self) -> None:
        if self._store.has_partition(self.sheet_name):
            return
        try:
            self._store.create_partition(self.sheet_name)
        except DuplicateError:
            pass

    def _write(self, table: Sequence[Sequence[Any]], columns: tuple[int, int]) -> int:
        """
        Replace a column pair with `table`.

        Returns:
            Number of data rows written (header excluded)
        """
        self._ensure_sheet()
        first, last = columns
        self._store.clear_columns(self.sheet_name, first, last)
        if table:
            self._store.write_rows(self.sheet_name, 1, first, [list(row) for row in table])
        points = max(len(table) - 1, 0)
        logger.debug(
            "chart_data_written",
            sheet=self.sheet_name,
            columns=f"{first}:{last}",
            points=points,
        )
        return points
