"""
Ledger Engine Package

Month sheets, week blocks and their running totals. Positions are always
recovered by scanning sentinel labels; nothing here keeps an index.
"""

from expense_ledger.ledger.blocks import (
    BlockBuilder,
    BlockLocator,
    find_block,
    scan_blocks,
)
from expense_ledger.ledger.errors import (
    BlockNotFound,
    InvalidArgument,
    InvalidTransaction,
    LedgerError,
    PartitionNotFound,
)
from expense_ledger.ledger.periods import PeriodResolver
from expense_ledger.ledger.writer import LedgerWriter

__all__ = [
    # Engine
    "BlockBuilder",
    "BlockLocator",
    "LedgerWriter",
    "PeriodResolver",
    "find_block",
    "scan_blocks",
    # Exceptions
    "BlockNotFound",
    "InvalidArgument",
    "InvalidTransaction",
    "LedgerError",
    "PartitionNotFound",
]
