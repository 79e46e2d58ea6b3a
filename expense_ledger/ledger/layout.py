"""
Month Sheet Layout

The layout below is the persisted contract of the ledger. Existing
spreadsheets were written with it, so none of these values may change:

    B1      month title ("January 2025")
    I2:J2   "MONTH TOTAL:" label and the month total
    B3...   week blocks, each:
              label row     "Week 2 (06/01 - 12/01)"
              header row    Date | Product | Store | Quantity | Price | Total
              data rows     one per purchase, in entry order
              total row     "WEEK TOTAL:" ... total in column G
              spacer row    blank

Rows and columns are 1-based, as in the spreadsheet.
"""

import re
from datetime import date, datetime, timedelta
from decimal import Decimal, InvalidOperation
from typing import Any, Iterator, Sequence, Union

from expense_ledger.ledger.errors import InvalidArgument


# Columns (1-based)
LABEL_COLUMN = 2        # B
STORE_COLUMN = 4        # D
VALUE_COLUMN = 7        # G
PERIOD_LABEL_COLUMN = 9     # I
PERIOD_VALUE_COLUMN = 10    # J

# Fixed rows
TITLE_ROW = 1
PERIOD_TOTAL_ROW = 2
FIRST_BLOCK_ROW = 3

# Sentinel labels
WEEK_TOTAL_LABEL = "WEEK TOTAL:"
MONTH_TOTAL_LABEL = "MONTH TOTAL:"

BLOCK_HEADER = ["Date", "Product", "Store", "Quantity", "Price", "Total"]
STORE_HEADER = BLOCK_HEADER[2]
BLOCK_WIDTH = len(BLOCK_HEADER)

PERIOD_KEY_FORMAT = "%B %Y"
ROW_DATE_FORMAT = "%Y-%m-%d"
WEEK_RANGE_FORMAT = "%d/%m"

_NON_NUMERIC = re.compile(r"[^\d.\-]")

# Largest quantity or unit price accepted into a month sheet
MAX_AMOUNT = Decimal(10) ** 15


def to_date(value: Union[date, datetime, str]) -> date:
    """
    Coerce form input into a calendar date.

    Accepts date, datetime, an ISO "YYYY-MM-DD" string or a full ISO
    datetime string. Any other trailing text is rejected.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str) and value.strip():
        text = value.strip()
        try:
            return date.fromisoformat(text)
        except ValueError:
            pass
        try:
            return datetime.fromisoformat(text).date()
        except ValueError:
            pass
    raise InvalidArgument(f"Invalid date: {value!r}")


def period_key(day: date) -> str:
    """Month sheet key and title for a date, e.g. "January 2025"."""
    return day.strftime(PERIOD_KEY_FORMAT)


def week_of_month(day: date) -> int:
    """
    Week number within the month, weeks starting on Monday.

    Week 1 runs from the 1st to the first Sunday, so a month can have
    up to six weeks.
    """
    first_weekday = day.replace(day=1).isoweekday()
    return (day.day + first_weekday - 2) // 7 + 1


def week_date_range(day: date) -> tuple[date, date]:
    """Monday and Sunday of the week containing the date."""
    start = day - timedelta(days=day.isoweekday() - 1)
    return start, start + timedelta(days=6)


def week_label(day: date) -> str:
    """Block label for a date, e.g. "Week 2 (06/01 - 12/01)"."""
    start, end = week_date_range(day)
    return (
        f"Week {week_of_month(day)} "
        f"({start.strftime(WEEK_RANGE_FORMAT)} - {end.strftime(WEEK_RANGE_FORMAT)})"
    )


def is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def is_week_total(value: Any) -> bool:
    """True for the sentinel cell closing a week block."""
    return (
        isinstance(value, str)
        and value.strip().upper().startswith(WEEK_TOTAL_LABEL)
    )


def is_month_total(value: Any) -> bool:
    return (
        isinstance(value, str)
        and value.strip().upper().startswith(MONTH_TOTAL_LABEL)
    )


def is_sentinel(value: Any) -> bool:
    return is_week_total(value) or is_month_total(value)


def week_total_rows(labels: Sequence[Any]) -> Iterator[int]:
    """Rows (1-based) of every week-total sentinel, top to bottom."""
    for index, value in enumerate(labels):
        if is_week_total(value):
            yield index + 1


def sum_week_totals(labels: Sequence[Any], values: Sequence[Any]) -> Decimal:
    """Month total: the sum of the value cells on every week-total row."""
    total = Decimal(0)
    for row in week_total_rows(labels):
        if row <= len(values):
            total += parse_amount(values[row - 1])
    return total


def parse_amount(value: Any) -> Decimal:
    """
    Read a money cell as a Decimal.

    Numbers pass through. Strings lose every character that is not a
    digit, "." or "-" (currency symbols, separators), so "COP 1500" reads
    as 1500. Anything unparseable reads as zero.
    """
    if isinstance(value, bool) or value is None:
        return Decimal(0)
    if isinstance(value, Decimal):
        return value
    if isinstance(value, int):
        return Decimal(value)
    if isinstance(value, float):
        return Decimal(str(value))
    if isinstance(value, str):
        cleaned = _NON_NUMERIC.sub("", value)
        if not cleaned:
            return Decimal(0)
        try:
            return Decimal(cleaned)
        except InvalidOperation:
            return Decimal(0)
    return Decimal(0)


def to_cell_number(amount: Decimal) -> Union[int, float]:
    """Plain number for writing to the grid (whole amounts stay ints)."""
    if amount == amount.to_integral_value():
        return int(amount)
    return float(amount)
