"""Validation package."""

from expense_ledger.validation.validator import REQUIRED_FIELDS, TransactionValidator

__all__ = [
    "REQUIRED_FIELDS",
    "TransactionValidator",
]
