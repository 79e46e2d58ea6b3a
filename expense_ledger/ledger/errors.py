"""
Ledger Exceptions

Every failure the ledger engine raises is a LedgerError. Messages are
written for the person entering purchases, because the UI shows them as-is.
"""


class LedgerError(Exception):
    """Base exception for ledger operations."""
    pass


class InvalidArgument(LedgerError, ValueError):
    """Malformed or missing input. Raised before anything is written."""
    pass


class InvalidTransaction(InvalidArgument):
    """A purchase failed validation (missing field, bad quantity or price)."""

    def __init__(self, message: str, field: str = "", index: int = -1):
        super().__init__(message)
        self.field = field
        self.index = index


class BlockNotFound(LedgerError):
    """A week block could not be resolved from its label and total row."""

    def __init__(self, partition: str, week_label: str, reason: str = "not found"):
        super().__init__(f"Week block '{week_label}' in '{partition}': {reason}")
        self.partition = partition
        self.week_label = week_label


class PartitionNotFound(LedgerError, LookupError):
    """Requested month sheet does not exist."""

    def __init__(self, key: str):
        super().__init__(f"Month sheet not found: {key}")
        self.key = key
