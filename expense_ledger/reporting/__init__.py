"""
Reporting Package

Read-side of the ledger: aggregation, formatting and chart data.
"""

from expense_ledger.reporting.aggregator import (
    Aggregator,
    data_rows,
    fold_weekly_totals,
    sum_by_store,
)
from expense_ledger.reporting.charts import ChartDataWriter
from expense_ledger.reporting.formatter import ReportFormatter, format_currency

__all__ = [
    "Aggregator",
    "ChartDataWriter",
    "ReportFormatter",
    "data_rows",
    "fold_weekly_totals",
    "format_currency",
    "sum_by_store",
]
