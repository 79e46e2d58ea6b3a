"""
Report Formatting

Turns aggregates into what people read: currency strings, the e-mail
body (HTML and plain text) and the small tables the charts are drawn
from.

DESIGN DECISION: The HTML body is a jinja2 template with autoescaping
on. Store names come straight from user input and end up in markup.
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Iterable, Mapping, Sequence, Union

from jinja2 import Environment

from expense_ledger.config import LedgerSettings
from expense_ledger.ledger.layout import to_cell_number
from expense_ledger.models.ledger import (
    PeriodSummary,
    ReportPayload,
    StoreTotal,
    WeekTotal,
)


Number = Union[Decimal, int, float]

WEEKLY_CHART_HEADER = ["Week", "Total"]
STORE_CHART_HEADER = ["Store", "Total"]
PERIOD_CHART_HEADER = ["Month", "Total Spent"]


_HTML_TEMPLATE = """\
<html>
  <body>
    <h1>Monthly Expense Report</h1>
    <h2>{{ period_key }}</h2>
    <p><strong>Total spent:</strong> {{ total }}</p>
    {% if weeks %}
    <h3>Weekly breakdown</h3>
    <table>
      <tr><th>Week</th><th>Total</th></tr>
      {% for label, amount in weeks %}
      <tr><td>{{ label }}</td><td>{{ amount }}</td></tr>
      {% endfor %}
    </table>
    {% endif %}
    {% if stores %}
    <h3>Spending by store</h3>
    <table>
      <tr><th>Store</th><th>Total</th></tr>
      {% for store, amount in stores %}
      <tr><td>{{ store }}</td><td>{{ amount }}</td></tr>
      {% endfor %}
    </table>
    {% endif %}
    {% if not weeks and not stores %}
    <p>No purchases recorded for this month.</p>
    {% endif %}
  </body>
</html>
"""

_environment = Environment(autoescape=True, trim_blocks=True, lstrip_blocks=True)
_html_template = _environment.from_string(_HTML_TEMPLATE)


def format_currency(
    amount: Number,
    symbol: str = "$",
    thousands_separator: str = ".",
) -> str:
    """
    Whole-unit currency string: 1234567 -> "$1.234.567".

    Rounds half away from zero. Negative amounts keep their sign in
    front of the symbol.
    """
    rounded = Decimal(str(amount)).quantize(Decimal(1), rounding=ROUND_HALF_UP)
    sign = "-" if rounded < 0 else ""
    digits = f"{abs(int(rounded)):,}".replace(",", thousands_separator)
    return f"{sign}{symbol}{digits}"


class ReportFormatter:
    """Currency-aware rendering of report aggregates."""

    def __init__(self, symbol: str = "$", thousands_separator: str = "."):
        self.symbol = symbol
        self.thousands_separator = thousands_separator

    @classmethod
    def from_settings(cls, settings: LedgerSettings) -> "ReportFormatter":
        return cls(
            symbol=settings.currency_symbol,
            thousands_separator=settings.thousands_separator,
        )

    def currency(self, amount: Number) -> str:
        return format_currency(amount, self.symbol, self.thousands_separator)

    # ------------------------------------------------------------------
    # Report
    # ------------------------------------------------------------------

    @staticmethod
    def build_report(
        period_key: str,
        total_spent: Decimal,
        weekly: Sequence[WeekTotal],
        stores: Mapping[str, Decimal],
    ) -> ReportPayload:
        return ReportPayload(
            period_key=period_key,
            total_spent=total_spent,
            weekly_breakdown=list(weekly),
            store_breakdown=[
                StoreTotal(store=store, total=total)
                for store, total in stores.items()
            ],
        )

    def subject(self, payload: ReportPayload) -> str:
        return (
            f"Expense Report: {payload.period_key} "
            f"({self.currency(payload.total_spent)})"
        )

    def render_html(self, payload: ReportPayload) -> str:
        return _html_template.render(
            period_key=payload.period_key,
            total=self.currency(payload.total_spent),
            weeks=[
                (week.label, self.currency(week.total))
                for week in payload.weekly_breakdown
            ],
            stores=[
                (item.store, self.currency(item.total))
                for item in payload.store_breakdown
            ],
        )

    def render_text(self, payload: ReportPayload) -> str:
        lines = [
            f"Monthly Expense Report - {payload.period_key}",
            "",
            f"Total spent: {self.currency(payload.total_spent)}",
        ]
        if payload.weekly_breakdown:
            lines += ["", "Weekly breakdown:"]
            lines += [
                f"  {week.label}: {self.currency(week.total)}"
                for week in payload.weekly_breakdown
            ]
        if payload.store_breakdown:
            lines += ["", "Spending by store:"]
            lines += [
                f"  {item.store}: {self.currency(item.total)}"
                for item in payload.store_breakdown
            ]
        if not payload.has_data:
            lines += ["", "No purchases recorded for this month."]
        return "\n".join(lines) + "\n"

    # ------------------------------------------------------------------
    # Chart tables (header row first, plain numbers)
    # ------------------------------------------------------------------

    @staticmethod
    def weekly_chart_table(weekly: Iterable[WeekTotal]) -> list[list[Any]]:
        return [WEEKLY_CHART_HEADER] + [
            [week.label, to_cell_number(week.total)] for week in weekly
        ]

    @staticmethod
    def store_chart_table(stores: Mapping[str, Decimal]) -> list[list[Any]]:
        return [STORE_CHART_HEADER] + [
            [store, to_cell_number(total)] for store, total in stores.items()
        ]

    @staticmethod
    def period_chart_table(periods: Iterable[PeriodSummary]) -> list[list[Any]]:
        return [PERIOD_CHART_HEADER] + [
            [summary.period_key, to_cell_number(summary.total)]
            for summary in periods
        ]
