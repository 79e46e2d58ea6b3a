"""
Week Block Location and Creation

A month sheet stores no index of its blocks. Every lookup reads the label
column and walks it: the week label marks the top of a block and the first
"WEEK TOTAL:" cell below it marks the bottom. Any insertion shifts every
row below it, so coordinates returned here are good only until the next
write to the same sheet.
"""

from typing import Any, Optional, Sequence

import structlog

from expense_ledger.ledger.errors import BlockNotFound
from expense_ledger.ledger.layout import (
    BLOCK_HEADER,
    BLOCK_WIDTH,
    LABEL_COLUMN,
    WEEK_TOTAL_LABEL,
    is_blank,
    is_week_total,
)
from expense_ledger.models.ledger import BlockCoordinates
from expense_ledger.services.storage import GridStore, PartitionRef


logger = structlog.get_logger(__name__)


def find_block(
    labels: Sequence[Any],
    week_label: str,
    partition: PartitionRef = "",
) -> Optional[BlockCoordinates]:
    """
    Locate a block in an already-read label column.

    The first cell equal to `week_label` wins. The total row is the first
    week-total sentinel found from the first data row downward.

    Returns:
        The block's coordinates, or None if the label is absent

    Raises:
        BlockNotFound: If the label exists but no total row follows it
    """
    label_row = None
    for index, value in enumerate(labels):
        if isinstance(value, str) and value.strip() == week_label:
            label_row = index + 1
            break
    if label_row is None:
        return None

    # 0-based index of the first data row (label_row + 2)
    for index in range(label_row + 1, len(labels)):
        if is_week_total(labels[index]):
            return BlockCoordinates(
                week_label=week_label,
                label_row=label_row,
                header_row=label_row + 1,
                first_data_row=label_row + 2,
                total_row=index + 1,
            )

    raise BlockNotFound(partition, week_label, "no week total row below the label")


def scan_blocks(labels: Sequence[Any]) -> list[BlockCoordinates]:
    """
    Every block in the sheet, in row order.

    A block starts at a non-blank label directly above a "Date" header
    cell and ends at the next week-total sentinel. A header with no
    closing total row is ignored.
    """
    blocks = []
    label_row = None
    for index, value in enumerate(labels):
        row = index + 1
        if (
            value == BLOCK_HEADER[0]
            and index > 0
            and not is_blank(labels[index - 1])
        ):
            label_row = row - 1
        elif is_week_total(value) and label_row is not None:
            blocks.append(BlockCoordinates(
                week_label=str(labels[label_row - 1]).strip(),
                label_row=label_row,
                header_row=label_row + 1,
                first_data_row=label_row + 2,
                total_row=row,
            ))
            label_row = None
    return blocks


class BlockLocator:
    """
    Scan-based block lookup.

    Re-reads the label column on every call. Never cache what it returns
    across writes.
    """

    def __init__(self, store: GridStore):
        self._store = store

    def locate(
        self,
        partition: PartitionRef,
        week_label: str,
    ) -> Optional[BlockCoordinates]:
        """
        Coordinates of the block labelled `week_label`, or None.

        Raises:
            BlockNotFound: If the block is missing its total row
        """
        labels = self._store.read_column(partition, LABEL_COLUMN)
        return find_block(labels, week_label, partition)

    def blocks(self, partition: PartitionRef) -> list[BlockCoordinates]:
        """All blocks of the sheet, top to bottom."""
        return scan_blocks(self._store.read_column(partition, LABEL_COLUMN))


class BlockBuilder:
    """
    Appends new week blocks to the end of a month sheet.

    Only ever writes below the last used row, so existing blocks keep
    their positions.
    """

    def __init__(self, store: GridStore):
        self._store = store

    def create(self, partition: PartitionRef, week_label: str) -> BlockCoordinates:
        """
        Append an empty block: label, header, zero total, spacer.

        The caller must have checked that the label is not present;
        this method does not scan for it again.
        """
        rows = [
            [week_label],
            list(BLOCK_HEADER),
            [WEEK_TOTAL_LABEL] + [""] * (BLOCK_WIDTH - 2) + [0],
            [""] * BLOCK_WIDTH,
        ]

        # One blank row between the last used row and the new label:
        # below the title that puts the first block at row 3.
        label_row = self._store.append_rows(
            partition,
            rows,
            start_column=LABEL_COLUMN,
            gap=1,
        )

        logger.info(
            "week_block_created",
            partition=partition,
            week_label=week_label,
            label_row=label_row,
        )
        return BlockCoordinates(
            week_label=week_label,
            label_row=label_row,
            header_row=label_row + 1,
            first_data_row=label_row + 2,
            total_row=label_row + 2,
        )
