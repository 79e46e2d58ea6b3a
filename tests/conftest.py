"""
Shared fixtures.

Everything runs against the in-memory grid; no test talks to Google
Sheets or an SMTP server.
"""

from datetime import date
from decimal import Decimal

import pytest

from expense_ledger.audit import AuditLogger
from expense_ledger.config import EmailSettings, LedgerSettings
from expense_ledger.models.ledger import Transaction
from expense_ledger.orchestrator import PurchaseFlow, ReportFlow
from expense_ledger.services.storage import InMemoryAuditStorage, InMemoryGridStore
from expense_ledger.validation import TransactionValidator


def purchase(day, store="A", product="X", quantity=1, price=100) -> dict:
    """Raw form row, as the UI submits it."""
    return {
        "date": day,
        "store": store,
        "product": product,
        "quantity": quantity,
        "price": price,
    }


def transaction(day, store="A", product="X", quantity=1, price=100) -> Transaction:
    return Transaction(
        date=day,
        store=store,
        product=product,
        quantity=Decimal(str(quantity)),
        price=Decimal(str(price)),
    )


class FakeSMTP:
    """Stands in for smtplib.SMTP; records what would have been sent."""

    instances: list["FakeSMTP"] = []
    fail_with: Exception = None

    def __init__(self, host, port, timeout=None):
        self.host = host
        self.port = port
        self.timeout = timeout
        self.tls = False
        self.credentials = None
        self.sent = []
        FakeSMTP.instances.append(self)

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        return False

    def starttls(self):
        self.tls = True

    def login(self, username, password):
        self.credentials = (username, password)

    def send_message(self, message):
        if FakeSMTP.fail_with is not None:
            raise FakeSMTP.fail_with
        self.sent.append(message)


@pytest.fixture
def store():
    return InMemoryGridStore()


@pytest.fixture
def ledger_settings():
    return LedgerSettings(
        helper_sheet_name="Chart_Data",
        dashboard_sheet_name="Dashboard",
        currency_symbol="$",
        thousands_separator=".",
    )


@pytest.fixture
def email_settings():
    return EmailSettings(
        host="smtp.test",
        port=587,
        username="ledger",
        password="secret",
        sender="ledger@example.com",
        use_tls=True,
    )


@pytest.fixture
def fake_smtp():
    FakeSMTP.instances = []
    FakeSMTP.fail_with = None
    yield FakeSMTP
    FakeSMTP.instances = []
    FakeSMTP.fail_with = None


@pytest.fixture
def audit_storage():
    return InMemoryAuditStorage()


@pytest.fixture
def audit_logger(audit_storage):
    return AuditLogger(audit_storage)


@pytest.fixture
def purchase_flow(store, audit_logger):
    return PurchaseFlow(
        store,
        validator=TransactionValidator(max_batch_size=50),
        audit_logger=audit_logger,
    )


@pytest.fixture
def report_flow(store, ledger_settings, audit_logger):
    return ReportFlow(
        store,
        ledger_settings=ledger_settings,
        audit_logger=audit_logger,
        excluded_partitions=["AuditLog"],
    )


@pytest.fixture
def january(purchase_flow):
    """
    January 2025 after scenarios A, B and C:
    two purchases in the week of 06/01, one in the week of 13/01.
    """
    purchase_flow.submit([purchase(date(2025, 1, 6), "A", "X", 2, 1000)])
    purchase_flow.submit([purchase(date(2025, 1, 6), "A", "Y", 1, 500)])
    purchase_flow.submit([purchase(date(2025, 1, 14), "B", "Z", 3, 200)])
    return "January 2025"
