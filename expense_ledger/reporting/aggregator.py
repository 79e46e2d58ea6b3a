"""
Ledger Aggregation

Folds month sheets into the totals behind the charts and the e-mailed
report: per week, per store, per month.

DESIGN DECISION: Aggregates are never stored as ledger state. They are
recomputed from the rows on demand, reading each needed column once
and walking it in a single pass.

The folds are plain functions over column values so they can be tested
without a grid; Aggregator wires them to a GridStore.
"""

from decimal import Decimal
from typing import Any, Iterable, Iterator, Optional, Sequence

import structlog

from expense_ledger.ledger.layout import (
    LABEL_COLUMN,
    STORE_COLUMN,
    STORE_HEADER,
    VALUE_COLUMN,
    MONTH_TOTAL_LABEL,
    is_blank,
    is_sentinel,
    parse_amount,
    sum_week_totals,
    week_total_rows,
)
from expense_ledger.models.ledger import PeriodSummary, WeekTotal
from expense_ledger.services.storage import GridStore, PartitionRef


logger = structlog.get_logger(__name__)


# =============================================================================
# FOLDS
# =============================================================================

def fold_weekly_totals(
    labels: Sequence[Any],
    values: Sequence[Any],
) -> list[WeekTotal]:
    """
    One entry per week-total row, numbered 1..N in row order.

    The numbering follows the blocks' position in the sheet, not the
    calendar week in their labels.
    """
    weeks = []
    for row in week_total_rows(labels):
        value = values[row - 1] if row <= len(values) else ""
        weeks.append(WeekTotal(index=len(weeks) + 1, total=parse_amount(value)))
    return weeks


def data_rows(
    labels: Sequence[Any],
    stores: Sequence[Any],
    values: Sequence[Any],
) -> Iterator[tuple[Any, Any]]:
    """
    (store, total) for every row that can hold a purchase.

    Rows with a blank or sentinel label cell are skipped.
    """
    for index, label in enumerate(labels):
        if is_blank(label) or is_sentinel(label):
            continue
        store = stores[index] if index < len(stores) else ""
        value = values[index] if index < len(values) else ""
        yield store, value


def sum_by_store(rows: Iterable[tuple[Any, Any]]) -> dict[str, Decimal]:
    """
    Spend per store, in first-seen order.

    Rows are skipped silently when the store is blank or the header
    label, or when the total is not a positive number.
    """
    totals: dict[str, Decimal] = {}
    for store, value in rows:
        if not isinstance(store, str) or is_blank(store) or store == STORE_HEADER:
            continue
        amount = parse_amount(value)
        if amount <= 0:
            continue
        totals[store] = totals.get(store, Decimal(0)) + amount
    return totals


# =============================================================================
# AGGREGATOR
# =============================================================================

class Aggregator:
    """
    Reads month sheets and folds them into report aggregates.

    Read-only with respect to the ledger.
    """

    def __init__(
        self,
        store: GridStore,
        excluded_partitions: Iterable[str] = (),
    ):
        """
        Args:
            store: Grid holding the month sheets
            excluded_partitions: Sheets that are not month sheets
                                 (chart data, dashboard, audit log)
        """
        self._store = store
        self._excluded = set(excluded_partitions)

    def ledger_partitions(self) -> list[PartitionRef]:
        """Month sheets in display order."""
        return [
            partition
            for partition in self._store.list_partitions()
            if partition not in self._excluded
        ]

    def is_ledger_partition(self, key: str) -> bool:
        return key not in self._excluded and self._store.has_partition(key)

    def weekly_totals(self, partition: PartitionRef) -> list[WeekTotal]:
        labels = self._store.read_column(partition, LABEL_COLUMN)
        values = self._store.read_column(partition, VALUE_COLUMN, len(labels))
        return fold_weekly_totals(labels, values)

    def store_totals(self, partition: PartitionRef) -> dict[str, Decimal]:
        labels = self._store.read_column(partition, LABEL_COLUMN)
        stores = self._store.read_column(partition, STORE_COLUMN, len(labels))
        values = self._store.read_column(partition, VALUE_COLUMN, len(labels))
        return sum_by_store(data_rows(labels, stores, values))

    def period_total(self, partition: PartitionRef) -> Optional[Decimal]:
        """
        Month total of one sheet.

        Uses the value next to the "MONTH TOTAL:" label. When that is
        missing or zero, sums the week-total rows instead.

        Returns:
            The total, or None for a sheet with neither a month total
            nor any week block
        """
        match = self._store.find_text(partition, MONTH_TOTAL_LABEL)
        if match is not None:
            row, column = match
            stored = parse_amount(self._store.read_cell(partition, row, column + 1))
            if stored != 0:
                return stored

        labels = self._store.read_column(partition, LABEL_COLUMN)
        if match is None and not any(True for _ in week_total_rows(labels)):
            return None
        values = self._store.read_column(partition, VALUE_COLUMN, len(labels))
        return sum_week_totals(labels, values)

    def period_totals(
        self,
        partitions: Optional[Iterable[PartitionRef]] = None,
    ) -> list[PeriodSummary]:
        """
        Month totals across sheets, in sheet order.

        Args:
            partitions: Sheets to include. Defaults to every month sheet.
        """
        if partitions is None:
            partitions = self.ledger_partitions()

        summaries = []
        for partition in partitions:
            total = self.period_total(partition)
            if total is None:
                logger.debug("period_skipped_no_data", partition=partition)
                continue
            summaries.append(PeriodSummary(period_key=partition, total=total))
        return summaries
