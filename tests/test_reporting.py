"""
Tests for aggregation, formatting and chart data.
"""

import pytest
from decimal import Decimal

from expense_ledger.ledger.layout import LABEL_COLUMN, STORE_HEADER
from expense_ledger.models.ledger import PeriodSummary, WeekTotal
from expense_ledger.reporting import (
    Aggregator,
    ChartDataWriter,
    ReportFormatter,
    data_rows,
    fold_weekly_totals,
    format_currency,
    sum_by_store,
)


def write_sheet(store, key, rows):
    """Write rows starting at column A, row 1."""
    store.create_partition(key)
    store.write_rows(key, 1, 1, rows)


class TestStoreTotals:
    """Per-store folding and its exclusion rules."""

    def test_skips_non_positive_and_blank_store(self):
        assert sum_by_store([("A", 400), ("B", -100), ("", 200)]) == {"A": Decimal(400)}

    def test_skips_header_and_non_numeric(self):
        rows = [(STORE_HEADER, "Total"), ("A", "abc"), ("A", 0), (None, 50), ("B", "150")]
        assert sum_by_store(rows) == {"B": Decimal(150)}

    def test_counts_every_valid_row_once(self):
        rows = [("A", 100), ("B", 20), ("A", 5), ("C", 1)]
        totals = sum_by_store(rows)
        assert totals == {"A": Decimal(105), "B": Decimal(20), "C": Decimal(1)}
        assert list(totals) == ["A", "B", "C"]

    def test_data_rows_skip_sentinels_and_blank_labels(self):
        labels = ["Week 1", "Date", "2025-01-06", "WEEK TOTAL:", ""]
        stores = ["", "Store", "A", "", "Z"]
        values = ["", "Total", 400, 400, 999]
        assert list(data_rows(labels, stores, values)) == [
            ("", ""),
            ("Store", "Total"),
            ("A", 400),
        ]


class TestWeeklyTotals:
    """Weekly folding."""

    def test_numbered_in_row_order(self):
        labels = ["", "", "Week 3", "Date", "WEEK TOTAL:", "", "Week 1", "Date", "WEEK TOTAL:"]
        values = ["", "", "", "Total", 70, "", "", "Total", "30"]
        weeks = fold_weekly_totals(labels, values)
        assert [(w.label, w.total) for w in weeks] == [("Week 1", Decimal(70)), ("Week 2", Decimal(30))]

    def test_empty_sheet(self):
        assert fold_weekly_totals([], []) == []


class TestAggregator:
    """Aggregation over a grid."""

    def test_scenario_weekly_totals(self, store, january):
        weeks = Aggregator(store).weekly_totals(january)
        assert [(w.label, w.total) for w in weeks] == [
            ("Week 1", Decimal(2500)),
            ("Week 2", Decimal(600)),
        ]

    def test_store_totals(self, store, january):
        assert Aggregator(store).store_totals(january) == {
            "A": Decimal(2500),
            "B": Decimal(600),
        }

    def test_period_totals_skip_helpers(self, store, january):
        store.create_partition("Chart_Data")
        store.write_row("Chart_Data", 1, 1, ["Week", "Total"])
        aggregator = Aggregator(store, ["Chart_Data"])
        assert aggregator.period_totals() == [PeriodSummary(period_key=january, total=Decimal(3100))]

    def test_period_total_falls_back_to_week_rows(self, store):
        write_sheet(store, "March 2025", [
            ["", "March 2025", "", "", "", "", "", "", "MONTH TOTAL:", 0],
            [],
            ["", "Week 1"],
            ["", "Date", "Product", "Store", "Quantity", "Price", "Total"],
            ["", "2025-03-03", "X", "A", 1, 250, 250],
            ["", "WEEK TOTAL:", "", "", "", "", 250],
        ])
        assert Aggregator(store).period_total("March 2025") == Decimal(250)

    def test_hand_edited_month_total_label(self, store):
        write_sheet(store, "March 2025", [
            ["", "March 2025"],
            ["", "", "", "", "", "", "", "", "Month Total:", 999],
            ["", "Week 1"],
            ["", "Date", "Product", "Store", "Quantity", "Price", "Total"],
            ["", "2025-03-03", "X", "A", 1, 250, 250],
            ["", "WEEK TOTAL:", "", "", "", "", 250],
        ])
        assert Aggregator(store).period_total("March 2025") == Decimal(999)

    def test_sheet_without_ledger_data_is_skipped(self, store, january):
        write_sheet(store, "Notes", [["remember the milk"]])
        periods = Aggregator(store).period_totals()
        assert [p.period_key for p in periods] == [january]

    def test_empty_month_sheet(self, store):
        store.create_partition("April 2025")
        store.write_row("April 2025", 1, LABEL_COLUMN, ["April 2025"])
        aggregator = Aggregator(store)
        assert aggregator.weekly_totals("April 2025") == []
        assert aggregator.store_totals("April 2025") == {}
        assert aggregator.period_totals() == []


class TestFormatter:
    """Currency strings, report bodies and chart tables."""

    @pytest.mark.parametrize("amount, expected", [
        (0, "$0"),
        (999, "$999"),
        (1234567, "$1.234.567"),
        (Decimal("2499.5"), "$2.500"),
        (Decimal("-1000"), "-$1.000"),
    ])
    def test_format_currency(self, amount, expected):
        assert format_currency(amount) == expected

    def test_custom_currency(self):
        assert format_currency(1500000, "COP ", ",") == "COP 1,500,000"

    def _payload(self, stores=None):
        return ReportFormatter.build_report(
            period_key="January 2025",
            total_spent=Decimal(3100),
            weekly=[WeekTotal(index=1, total=Decimal(2500)), WeekTotal(index=2, total=Decimal(600))],
            stores=stores if stores is not None else {"A": Decimal(2500), "B": Decimal(600)},
        )

    def test_subject(self):
        assert ReportFormatter().subject(self._payload()) == "Expense Report: January 2025 ($3.100)"

    def test_render_text(self):
        text = ReportFormatter().render_text(self._payload())
        assert "Total spent: $3.100" in text
        assert "  Week 2: $600" in text
        assert "  A: $2.500" in text

    def test_render_html_escapes_store_names(self):
        html = ReportFormatter().render_html(self._payload({"<b>Shop</b>": Decimal(10)}))
        assert "&lt;b&gt;Shop&lt;/b&gt;" in html
        assert "<b>Shop</b>" not in html
        assert "$3.100" in html

    def test_render_empty_report(self):
        payload = ReportFormatter.build_report("May 2025", Decimal(0), [], {})
        assert "No purchases recorded" in ReportFormatter().render_text(payload)
        assert "No purchases recorded" in ReportFormatter().render_html(payload)

    def test_chart_tables(self):
        formatter = ReportFormatter()
        payload = self._payload()
        assert formatter.weekly_chart_table(payload.weekly_breakdown) == [
            ["Week", "Total"], ["Week 1", 2500], ["Week 2", 600],
        ]
        assert formatter.store_chart_table({"A": Decimal("12.5")}) == [["Store", "Total"], ["A", 12.5]]
        assert formatter.period_chart_table(
            [PeriodSummary(period_key="January 2025", total=Decimal(3100))]
        ) == [["Month", "Total Spent"], ["January 2025", 3100]]


class TestChartDataWriter:
    """Helper sheet updates."""

    def test_creates_sheet_and_replaces_columns(self, store):
        writer = ChartDataWriter(store, "Chart_Data")
        assert writer.write_weekly([["Week", "Total"], ["Week 1", 10], ["Week 2", 20]]) == 2
        assert writer.write_weekly([["Week", "Total"], ["Week 1", 5]]) == 1
        assert store.read_column("Chart_Data", 1) == ["Week", "Week 1"]

    def test_tables_use_their_own_columns(self, store):
        writer = ChartDataWriter(store, "Chart_Data")
        writer.write_weekly([["Week", "Total"], ["Week 1", 10]])
        writer.write_stores([["Store", "Total"], ["A", 10]])
        writer.write_periods([["Month", "Total Spent"], ["January 2025", 10]])
        assert store.dump("Chart_Data")[0] == ["Week", "Total", "Store", "Total", "", "Month", "Total Spent"]


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
