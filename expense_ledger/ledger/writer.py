"""
Ledger Writer

Adds purchases to week blocks and keeps the block and month totals in
step with the rows.

The grid cannot roll back a row insertion, so every check runs before the
first write. If a write fails after the insertion, the sheet holds a row
that the totals do not count yet; recompute_totals() repairs that.
"""

from decimal import Decimal

import structlog

from expense_ledger.ledger.blocks import find_block, scan_blocks
from expense_ledger.ledger.errors import BlockNotFound, InvalidTransaction
from expense_ledger.ledger.layout import (
    BLOCK_WIDTH,
    LABEL_COLUMN,
    MAX_AMOUNT,
    MONTH_TOTAL_LABEL,
    PERIOD_LABEL_COLUMN,
    PERIOD_TOTAL_ROW,
    ROW_DATE_FORMAT,
    VALUE_COLUMN,
    WEEK_TOTAL_LABEL,
    is_blank,
    is_week_total,
    parse_amount,
    sum_week_totals,
    to_cell_number,
)
from expense_ledger.models.ledger import BlockCoordinates, Transaction
from expense_ledger.services.storage import GridStore, PartitionRef


logger = structlog.get_logger(__name__)


class LedgerWriter:
    """
    Inserts purchase rows and rewrites the affected totals.

    Totals are written as plain values computed here, never as
    spreadsheet formulas.
    """

    def __init__(self, store: GridStore):
        self._store = store

    def append(
        self,
        partition: PartitionRef,
        block: BlockCoordinates,
        transaction: Transaction,
    ) -> BlockCoordinates:
        """
        Add a purchase as the last data row of `block`.

        Steps:
        1. Insert a row at the block's total row (the total moves down)
        2. Write the purchase into the new row
        3. Re-locate the block by its label
        4. Rewrite the block total
        5. Rewrite the month total

        Returns:
            The block's coordinates after the insertion

        Raises:
            InvalidTransaction: If the purchase is invalid (nothing written)
            BlockNotFound: If `block` no longer matches the sheet (nothing written)
        """
        self._check_transaction(transaction)
        self._check_block(partition, block)

        row = block.total_row
        self._store.insert_row_before(partition, row)
        self._store.write_row(partition, row, LABEL_COLUMN, self._row_values(transaction))

        labels = self._store.read_column(partition, LABEL_COLUMN)
        updated = find_block(labels, block.week_label, partition)
        if updated is None:
            raise BlockNotFound(partition, block.week_label, "lost after insertion")

        values = self._store.read_column(partition, VALUE_COLUMN, len(labels))
        block_total = self._block_sum(updated, values)
        self._write_block_total(partition, updated, block_total)

        values[updated.total_row - 1] = block_total
        period_total = sum_week_totals(labels, values)
        self._write_period_total(partition, period_total)

        logger.debug(
            "transaction_appended",
            partition=partition,
            week_label=updated.week_label,
            row=row,
            block_total=str(block_total),
            period_total=str(period_total),
        )
        return updated

    def recompute_totals(self, partition: PartitionRef) -> Decimal:
        """
        Rewrite every block total and the month total from the data rows.

        Returns:
            The month total
        """
        labels = self._store.read_column(partition, LABEL_COLUMN)
        values = self._store.read_column(partition, VALUE_COLUMN, len(labels))

        for block in scan_blocks(labels):
            block_total = self._block_sum(block, values)
            if parse_amount(values[block.total_row - 1]) != block_total:
                self._write_block_total(partition, block, block_total)
            values[block.total_row - 1] = block_total

        period_total = sum_week_totals(labels, values)
        self._write_period_total(partition, period_total)
        logger.info(
            "totals_recomputed",
            partition=partition,
            period_total=str(period_total),
        )
        return period_total

    # ------------------------------------------------------------------

    @staticmethod
    def _check_transaction(transaction: Transaction) -> None:
        if not isinstance(transaction, Transaction):
            raise InvalidTransaction("Expected a validated purchase")
        if is_blank(transaction.store):
            raise InvalidTransaction("Store is required", field="store")
        if is_blank(transaction.product):
            raise InvalidTransaction("Product is required", field="product")
        if transaction.quantity is None or transaction.quantity <= 0:
            raise InvalidTransaction("Quantity must be greater than zero", field="quantity")
        if transaction.price is None or transaction.price < 0:
            raise InvalidTransaction("Price cannot be negative", field="price")
        for field in ("quantity", "price"):
            if abs(getattr(transaction, field)) >= MAX_AMOUNT:
                raise InvalidTransaction(f"{field.capitalize()} is too large", field=field)

    def _check_block(self, partition: PartitionRef, block: BlockCoordinates) -> None:
        labels = self._store.read_column(partition, LABEL_COLUMN)
        label_ok = (
            block.label_row <= len(labels)
            and str(labels[block.label_row - 1]).strip() == block.week_label
        )
        total_ok = (
            block.total_row <= len(labels)
            and is_week_total(labels[block.total_row - 1])
            and not any(
                is_week_total(value)
                for value in labels[block.first_data_row - 1:block.total_row - 1]
            )
        )
        if not (label_ok and total_ok):
            raise BlockNotFound(partition, block.week_label, "stale coordinates")

    @staticmethod
    def _row_values(transaction: Transaction) -> list:
        return [
            transaction.date.strftime(ROW_DATE_FORMAT),
            transaction.product,
            transaction.store,
            to_cell_number(transaction.quantity),
            to_cell_number(transaction.price),
            to_cell_number(transaction.total),
        ]

    @staticmethod
    def _block_sum(block: BlockCoordinates, values: list) -> Decimal:
        total = Decimal(0)
        for value in values[block.first_data_row - 1:block.total_row - 1]:
            total += parse_amount(value)
        return total

    def _write_block_total(
        self,
        partition: PartitionRef,
        block: BlockCoordinates,
        total: Decimal,
    ) -> None:
        self._store.write_row(
            partition,
            block.total_row,
            LABEL_COLUMN,
            [WEEK_TOTAL_LABEL] + [""] * (BLOCK_WIDTH - 2) + [to_cell_number(total)],
        )

    def _write_period_total(self, partition: PartitionRef, total: Decimal) -> None:
        self._store.write_row(
            partition,
            PERIOD_TOTAL_ROW,
            PERIOD_LABEL_COLUMN,
            [MONTH_TOTAL_LABEL, to_cell_number(total)],
        )
