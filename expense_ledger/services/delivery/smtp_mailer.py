"""
SMTP Report Delivery

Sends the monthly report as a multipart e-mail (plain text with an HTML
alternative).

DESIGN DECISION: Delivery is a side channel. A failed send raises
DeliveryError to the caller and never touches ledger state.
"""

import smtplib
from email.message import EmailMessage
from email.utils import make_msgid
from typing import Callable, Optional

import structlog
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from expense_ledger.config import EmailSettings, get_settings
from expense_ledger.models.ledger import ReportDelivery, ReportPayload
from expense_ledger.reporting.formatter import ReportFormatter


logger = structlog.get_logger(__name__)

# Connection-level failures worth another attempt. Rejections by the
# server (bad login, refused recipient) are final.
_TRANSIENT_ERRORS = (
    smtplib.SMTPServerDisconnected,
    smtplib.SMTPConnectError,
    TimeoutError,
    ConnectionRefusedError,
    ConnectionResetError,
)


def is_valid_address(address: str) -> bool:
    """Loose shape check: one "@" with text on both sides and a dot in the domain."""
    if not isinstance(address, str):
        return False
    address = address.strip()
    if " " in address or address.count("@") != 1:
        return False
    local, domain = address.split("@")
    return bool(local) and "." in domain.strip(".")


class ReportMailer:
    """
    Delivers ReportPayloads over SMTP.

    Usage:
        mailer = ReportMailer()
        mailer.send(payload, "me@example.com")
    """

    def __init__(
        self,
        settings: Optional[EmailSettings] = None,
        formatter: Optional[ReportFormatter] = None,
        smtp_factory: Callable[..., smtplib.SMTP] = smtplib.SMTP,
    ):
        """
        Args:
            settings: SMTP settings. Loaded from the environment if None.
            formatter: Renders subject and body. Defaults to the ledger
                       currency settings.
            smtp_factory: Connection class, replaceable for tests
        """
        self._settings = settings or get_settings().email
        self._formatter = formatter or ReportFormatter.from_settings(get_settings().ledger)
        self._smtp_factory = smtp_factory

    def build_message(
        self,
        payload: ReportPayload,
        to_address: str,
    ) -> EmailMessage:
        message = EmailMessage()
        message["Subject"] = self._formatter.subject(payload)
        message["From"] = self._settings.sender
        message["To"] = to_address.strip()
        message["Message-ID"] = make_msgid()
        message.set_content(self._formatter.render_text(payload))
        message.add_alternative(self._formatter.render_html(payload), subtype="html")
        return message

    @retry(
        retry=retry_if_exception_type(_TRANSIENT_ERRORS),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def _deliver(self, message: EmailMessage) -> None:
        settings = self._settings
        with self._smtp_factory(
            settings.host,
            settings.port,
            timeout=settings.timeout_seconds,
        ) as smtp:
            if settings.use_tls:
                smtp.starttls()
            if settings.username:
                smtp.login(settings.username, settings.password or "")
            smtp.send_message(message)

    def send(
        self,
        payload: ReportPayload,
        to_address: str,
    ) -> ReportDelivery:
        """
        Send the report to one recipient.

        Raises:
            DeliveryError: If the message could not be handed to the server
        """
        message = self.build_message(payload, to_address)
        try:
            self._deliver(message)
        except (smtplib.SMTPException, OSError) as e:
            logger.error(
                "report_delivery_failed",
                period_key=payload.period_key,
                error=str(e),
            )
            raise DeliveryError(f"Could not send report: {e}") from e

        logger.info("report_delivered", period_key=payload.period_key)
        return ReportDelivery(
            period_key=payload.period_key,
            to_address=str(message["To"]),
            subject=str(message["Subject"]),
            message_id=str(message["Message-ID"]),
        )


class DeliveryError(Exception):
    """Raised when a report could not be delivered."""
    pass
