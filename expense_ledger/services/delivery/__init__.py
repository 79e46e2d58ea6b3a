"""Report delivery services."""

from expense_ledger.services.delivery.smtp_mailer import (
    DeliveryError,
    ReportMailer,
    is_valid_address,
)

__all__ = [
    "DeliveryError",
    "ReportMailer",
    "is_valid_address",
]
