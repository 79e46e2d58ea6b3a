"""
Period Resolution

Maps a purchase date to its month sheet, creating the sheet on first use.
"""

from datetime import date, datetime
from typing import Union

import structlog

from expense_ledger.ledger.errors import PartitionNotFound
from expense_ledger.ledger.layout import (
    LABEL_COLUMN,
    TITLE_ROW,
    period_key,
    to_date,
)
from expense_ledger.models.ledger import PartitionHandle
from expense_ledger.services.storage import DuplicateError, GridStore, NotFoundError


logger = structlog.get_logger(__name__)


class PeriodResolver:
    """
    Finds or creates the month sheet for a date.

    The sheet title doubles as the period key ("January 2025"), so a
    resolve is a lookup by name; no registry of sheets is kept.
    """

    def __init__(self, store: GridStore):
        self._store = store

    def resolve(self, day: Union[date, datetime, str]) -> PartitionHandle:
        """
        Month sheet for `day`, created with its title if missing.

        Idempotent: resolving any date of the same month again returns
        the same key with created=False.

        Raises:
            InvalidArgument: If `day` is not a date or ISO date string
        """
        key = period_key(to_date(day))
        if self._store.has_partition(key):
            return PartitionHandle(key=key)

        try:
            self._store.create_partition(key)
        except DuplicateError:
            return PartitionHandle(key=key)

        self._store.write_row(key, TITLE_ROW, LABEL_COLUMN, [key])
        logger.info("partition_created", partition=key)
        return PartitionHandle(key=key, created=True)

    def get(self, key: str) -> PartitionHandle:
        """
        Existing month sheet by key.

        Raises:
            PartitionNotFound: If the sheet does not exist
        """
        try:
            self._store.get_partition(key)
        except NotFoundError:
            raise PartitionNotFound(key)
        return PartitionHandle(key=key)
