"""
Integration tests for the purchase and report flows.

Run against the in-memory grid, with a fake SMTP connection.
"""

import pytest
from datetime import date
from decimal import Decimal

from conftest import purchase

from expense_ledger.audit import AuditLogger
from expense_ledger.ledger import (
    BlockLocator,
    InvalidArgument,
    InvalidTransaction,
    PartitionNotFound,
)
from expense_ledger.ledger.layout import (
    LABEL_COLUMN,
    PERIOD_TOTAL_ROW,
    PERIOD_VALUE_COLUMN,
    VALUE_COLUMN,
    parse_amount,
    week_label,
)
from expense_ledger.models.audit import AuditEventType
from expense_ledger.orchestrator import ReportFlow, create_app_components
from expense_ledger.services.delivery import DeliveryError, ReportMailer
from expense_ledger.services.storage import InMemoryAuditStorage, InMemoryGridStore
from expense_ledger.reporting import ReportFormatter


WEEK_OF_JAN_6 = week_label(date(2025, 1, 6))


def block_total(store, key, label):
    block = BlockLocator(store).locate(key, label)
    return parse_amount(store.read_cell(key, block.total_row, VALUE_COLUMN))


def period_total(store, key):
    return parse_amount(store.read_cell(key, PERIOD_TOTAL_ROW, PERIOD_VALUE_COLUMN))


class TestPurchaseFlow:
    """Submitting purchases end to end."""

    def test_first_purchase_creates_sheet_and_block(self, store, purchase_flow):
        result = purchase_flow.submit([purchase(date(2025, 1, 6), "A", "X", 2, 1000)])

        assert result.added == 1
        assert result.periods == ["January 2025"]
        assert result.message == "Purchase(s) added successfully!"
        assert store.list_partitions() == ["January 2025"]
        assert len(BlockLocator(store).blocks("January 2025")) == 1
        assert block_total(store, "January 2025", WEEK_OF_JAN_6) == Decimal(2000)
        assert period_total(store, "January 2025") == Decimal(2000)

    def test_same_week_reuses_block(self, store, purchase_flow):
        purchase_flow.submit([purchase(date(2025, 1, 6), "A", "X", 2, 1000)])
        purchase_flow.submit([purchase(date(2025, 1, 6), "A", "Y", 1, 500)])

        assert len(BlockLocator(store).blocks("January 2025")) == 1
        assert block_total(store, "January 2025", WEEK_OF_JAN_6) == Decimal(2500)
        assert period_total(store, "January 2025") == Decimal(2500)

    def test_new_week_appends_block(self, store, january):
        blocks = BlockLocator(store).blocks(january)

        assert [b.week_label for b in blocks] == [WEEK_OF_JAN_6, week_label(date(2025, 1, 14))]
        assert blocks[1].label_row > blocks[0].total_row
        assert block_total(store, january, WEEK_OF_JAN_6) == Decimal(2500)
        assert period_total(store, january) == Decimal(3100)

    def test_batch_across_months(self, store, purchase_flow):
        result = purchase_flow.submit([
            purchase(date(2025, 2, 3), price=10),
            purchase(date(2025, 1, 6), price=20),
            purchase(date(2025, 2, 4), price=30),
        ])
        assert result.added == 3
        assert result.periods == ["February 2025", "January 2025"]
        assert period_total(store, "February 2025") == Decimal(40)

    def test_invalid_batch_writes_nothing(self, store, purchase_flow):
        with pytest.raises(InvalidTransaction) as excinfo:
            purchase_flow.submit([
                purchase(date(2025, 1, 6)),
                purchase(date(2025, 1, 7), quantity=0),
            ])
        assert excinfo.value.index == 1
        assert store.list_partitions() == []

    def test_oversized_amount_writes_nothing(self, store, purchase_flow, january):
        snapshot = store.dump(january)
        with pytest.raises(InvalidTransaction) as excinfo:
            purchase_flow.submit([purchase(date(2025, 1, 7), quantity="1e5000", price=1)])
        assert excinfo.value.field == "quantity"
        assert store.dump(january) == snapshot
        assert period_total(store, january) == Decimal(3100)

    def test_missing_field_rejected(self, store, purchase_flow):
        raw = purchase(date(2025, 1, 6))
        del raw["price"]
        with pytest.raises(InvalidArgument):
            purchase_flow.submit([raw])
        assert store.list_partitions() == []

    def test_out_of_order_weeks_keep_entry_order(self, store, purchase_flow, report_flow):
        """Blocks follow entry order, and so does the weekly numbering."""
        purchase_flow.submit([purchase(date(2025, 1, 20), price=7)])
        purchase_flow.submit([purchase(date(2025, 1, 6), price=3)])

        labels = [b.week_label for b in BlockLocator(store).blocks("January 2025")]
        assert labels == [week_label(date(2025, 1, 20)), WEEK_OF_JAN_6]
        weeks = report_flow.weekly_chart("January 2025")
        assert [(w.label, w.total) for w in weeks] == [("Week 1", Decimal(7)), ("Week 2", Decimal(3))]

    def test_recompute(self, store, purchase_flow, january):
        store.write_row(january, PERIOD_TOTAL_ROW, PERIOD_VALUE_COLUMN, [1])
        assert purchase_flow.recompute(january) == Decimal(3100)
        assert period_total(store, january) == Decimal(3100)

    def test_recompute_unknown_month(self, purchase_flow):
        with pytest.raises(PartitionNotFound):
            purchase_flow.recompute("March 2031")


class TestAuditTrail:
    """What a submission leaves in the audit log."""

    def test_successful_submission(self, purchase_flow, audit_storage):
        purchase_flow.submit([purchase(date(2025, 1, 6))])

        types = [event.event_type for event in audit_storage.events]
        assert types == [
            AuditEventType.SUBMISSION_RECEIVED,
            AuditEventType.PARTITION_CREATED,
            AuditEventType.BLOCK_CREATED,
            AuditEventType.TRANSACTION_APPENDED,
            AuditEventType.SUBMISSION_COMPLETED,
        ]
        correlation_ids = {event.correlation_id for event in audit_storage.events}
        assert len(correlation_ids) == 1
        appended = audit_storage.events[3]
        assert appended.details["row"] == 5
        assert appended.details["block_total"] == "100"

    def test_rejected_submission(self, purchase_flow, audit_storage):
        with pytest.raises(InvalidTransaction):
            purchase_flow.submit([purchase(date(2025, 1, 6), store="")])

        rejected = audit_storage.events[-1]
        assert rejected.event_type == AuditEventType.SUBMISSION_REJECTED
        assert rejected.details == {"field": "store", "index": 0}

    def test_audit_storage_failure_does_not_break_flow(self, store):
        class BrokenStorage(InMemoryAuditStorage):
            def append_event(self, event):
                raise RuntimeError("sheet unavailable")

        from expense_ledger.orchestrator import PurchaseFlow

        flow = PurchaseFlow(store, audit_logger=AuditLogger(BrokenStorage()))
        result = flow.submit([purchase(date(2025, 1, 6))])
        assert result.added == 1


class TestReportFlow:
    """Charts, overview and e-mailed reports."""

    def test_list_periods_excludes_helpers(self, store, report_flow, january):
        report_flow.weekly_chart(january)
        store.create_partition("Dashboard")
        store.create_partition("AuditLog")
        assert store.has_partition("Chart_Data")
        assert report_flow.list_periods() == [january]

    def test_weekly_chart_writes_helper_sheet(self, store, report_flow, january):
        weeks = report_flow.weekly_chart(january)
        assert [w.total for w in weeks] == [Decimal(2500), Decimal(600)]
        assert store.read_column("Chart_Data", 1) == ["Week", "Week 1", "Week 2"]
        assert store.read_column("Chart_Data", 2) == ["Total", 2500, 600]

    def test_store_chart(self, store, report_flow, january):
        assert report_flow.store_chart(january) == {"A": Decimal(2500), "B": Decimal(600)}
        assert store.read_column("Chart_Data", 3) == ["Store", "A", "B"]

    def test_yearly_overview(self, store, purchase_flow, report_flow, january):
        purchase_flow.submit([purchase(date(2025, 2, 3), price=400)])
        periods = report_flow.yearly_overview()
        assert [(p.period_key, p.total) for p in periods] == [
            ("January 2025", Decimal(3100)),
            ("February 2025", Decimal(400)),
        ]
        assert store.read_column("Chart_Data", 6) == ["Month", "January 2025", "February 2025"]

    def test_no_data_is_not_an_error(self, store, report_flow):
        store.create_partition("April 2025")
        store.write_row("April 2025", 1, LABEL_COLUMN, ["April 2025"])
        assert report_flow.weekly_chart("April 2025") == []
        assert report_flow.store_chart("April 2025") == {}
        assert report_flow.yearly_overview() == []
        assert not store.has_partition("Chart_Data")

    @pytest.mark.parametrize("key", ["March 2031", "Chart_Data"])
    def test_unknown_period(self, store, report_flow, key):
        store.create_partition("Chart_Data")
        with pytest.raises(PartitionNotFound):
            report_flow.weekly_chart(key)

    def test_send_report(self, store, ledger_settings, email_settings, fake_smtp, january):
        formatter = ReportFormatter.from_settings(ledger_settings)
        flow = ReportFlow(
            store,
            ledger_settings=ledger_settings,
            mailer=ReportMailer(email_settings, formatter, smtp_factory=fake_smtp),
        )

        delivery = flow.send_report(january, " me@example.com ")

        assert delivery.to_address == "me@example.com"
        assert delivery.subject == "Expense Report: January 2025 ($3.100)"
        message = fake_smtp.instances[0].sent[0]
        assert message["To"] == "me@example.com"
        html = message.get_body(preferencelist=("html",)).get_content()
        assert "Week 2" in html and "$600" in html

    @pytest.mark.parametrize("period_key, email, error", [
        ("", "me@example.com", InvalidArgument),
        ("January 2025", "", InvalidArgument),
        ("January 2025", "not-an-address", InvalidArgument),
        ("March 2031", "me@example.com", PartitionNotFound),
    ])
    def test_send_report_rejects(self, report_flow, january, fake_smtp, period_key, email, error):
        with pytest.raises(error):
            report_flow.send_report(period_key, email)
        assert fake_smtp.instances == []

    def test_send_report_without_smtp_settings(self, monkeypatch, report_flow, january):
        monkeypatch.delenv("SMTP_HOST", raising=False)
        monkeypatch.delenv("SMTP_SENDER", raising=False)
        with pytest.raises(DeliveryError):
            report_flow.send_report(january, "me@example.com")


class TestComponentFactory:
    """Application wiring."""

    def test_without_storage_uses_memory(self):
        purchase_flow, report_flow, store = create_app_components(use_storage=False)
        assert isinstance(store, InMemoryGridStore)
        purchase_flow.submit([purchase(date(2025, 1, 6))])
        assert report_flow.list_periods() == ["January 2025"]


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
