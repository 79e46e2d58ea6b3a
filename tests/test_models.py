"""
Tests for Expense Ledger models

Test strategy:
1. Unit tests for individual components (models, layout, validators)
2. Integration tests for flows against the in-memory grid
3. No real API calls in tests (fake SMTP, no Google Sheets)
"""

import pytest
from datetime import date
from decimal import Decimal
from uuid import uuid4

from pydantic import ValidationError

from expense_ledger.models.ledger import (
    BlockCoordinates,
    PartitionHandle,
    ReportPayload,
    SubmissionResult,
    Transaction,
    WeekTotal,
)
from expense_ledger.models.audit import (
    AUDIT_COLUMNS,
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)


class TestTransaction:
    """Tests for the Transaction model."""

    def test_total_is_quantity_times_price(self):
        """Line total is derived, never entered."""
        tx = Transaction(
            date=date(2025, 1, 6),
            store="A",
            product="X",
            quantity=Decimal("2"),
            price=Decimal("1000"),
        )
        assert tx.total == Decimal("2000")

    def test_strips_whitespace(self):
        """Store and product are trimmed."""
        tx = Transaction(
            date=date(2025, 1, 6),
            store="  Corner Shop ",
            product=" Milk ",
            quantity=Decimal("1"),
            price=Decimal("3"),
        )
        assert tx.store == "Corner Shop"
        assert tx.product == "Milk"

    def test_rejects_zero_quantity(self):
        """Quantity must be positive."""
        with pytest.raises(ValidationError):
            Transaction(
                date=date(2025, 1, 6),
                store="A",
                product="X",
                quantity=Decimal("0"),
                price=Decimal("1"),
            )

    def test_accepts_free_items(self):
        """A zero price is allowed."""
        tx = Transaction(
            date=date(2025, 1, 6),
            store="A",
            product="Sample",
            quantity=Decimal("1"),
            price=Decimal("0"),
        )
        assert tx.total == 0

    def test_is_immutable(self):
        """Written purchases never change."""
        tx = Transaction(
            date=date(2025, 1, 6),
            store="A",
            product="X",
            quantity=Decimal("1"),
            price=Decimal("1"),
        )
        with pytest.raises(ValidationError):
            tx.store = "B"

    def test_submission_result_default_message(self):
        result = SubmissionResult(added=2, periods=["January 2025"])
        assert result.message == "Purchase(s) added successfully!"


class TestLayoutModels:
    """Tests for coordinates and partition handles."""

    def test_block_coordinates_order(self):
        """Rows must run label, header, data, total."""
        with pytest.raises(ValidationError):
            BlockCoordinates(
                week_label="Week 1",
                label_row=3,
                header_row=5,
                first_data_row=6,
                total_row=6,
            )

    def test_empty_block_has_no_data_rows(self):
        block = BlockCoordinates(
            week_label="Week 1",
            label_row=3,
            header_row=4,
            first_data_row=5,
            total_row=5,
        )
        assert block.data_row_count == 0

    def test_shifted(self):
        """Shifting moves every row by the same amount."""
        block = BlockCoordinates(
            week_label="Week 1",
            label_row=3,
            header_row=4,
            first_data_row=5,
            total_row=7,
        )
        moved = block.shifted(1)
        assert (moved.label_row, moved.total_row) == (4, 8)
        assert moved.data_row_count == block.data_row_count

    def test_partition_handle_requires_key(self):
        with pytest.raises(ValidationError):
            PartitionHandle(key="")


class TestReportModels:
    """Tests for aggregate and report models."""

    def test_week_total_label(self):
        assert WeekTotal(index=2, total=Decimal("10")).label == "Week 2"

    def test_payload_without_data(self):
        payload = ReportPayload(period_key="January 2025", total_spent=Decimal(0))
        assert not payload.has_data


class TestAuditModels:
    """Tests for audit models."""

    def test_audit_event_creation(self):
        """Test AuditEvent model creation."""
        event = AuditEvent(
            event_type=AuditEventType.BLOCK_CREATED,
            description="Week block created",
        )
        assert event.severity == AuditSeverity.INFO
        assert event.timestamp.tzinfo is not None

    def test_to_sheets_row_matches_columns(self):
        """Audit rows line up with the audit sheet header."""
        event = AuditEventBuilder.transaction_appended(
            period_key="January 2025",
            week_label="Week 2 (06/01 - 12/01)",
            row=5,
            amount="2000",
            block_total="2000",
            correlation_id=uuid4(),
        )
        row = event.to_sheets_row()
        assert len(row) == len(AUDIT_COLUMNS)
        assert row[2] == "transaction_appended"
        assert row[4] == "January 2025"

    def test_to_log_dict(self):
        event = AuditEventBuilder.partition_created("January 2025")
        log_dict = event.to_log_dict()
        assert log_dict["event_type"] == "partition_created"
        assert log_dict["correlation_id"] is None

    def test_rejection_is_warning(self):
        event = AuditEventBuilder.submission_rejected(
            reason="Store is required",
            field="store",
            index=1,
            correlation_id=uuid4(),
        )
        assert event.severity == AuditSeverity.WARNING
        assert event.details == {"field": "store", "index": 1}


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
