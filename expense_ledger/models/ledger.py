"""
Core Data Models for Expense Ledger

These models define the schemas for data flowing through the system:
purchases on their way into a month sheet, the coordinates of the
blocks they land in, and the aggregates read back out for reports.

DESIGN DECISION: We use Pydantic v2. A Transaction that exists has
already passed validation, so the ledger engine never re-checks field
presence or types, only the invariants it owns.
"""

import datetime as dt
from decimal import Decimal
from typing import Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    computed_field,
    model_validator,
)


# =============================================================================
# TRANSACTIONS
# =============================================================================

class Transaction(BaseModel):
    """
    A single purchase.

    Immutable once written: the ledger only ever appends rows.
    """
    model_config = ConfigDict(str_strip_whitespace=True, frozen=True)

    date: dt.date = Field(
        ...,
        description="Purchase date"
    )
    store: str = Field(
        ...,
        min_length=1,
        max_length=200,
        description="Where the purchase was made"
    )
    product: str = Field(
        ...,
        min_length=1,
        max_length=200,
        description="What was bought"
    )
    quantity: Decimal = Field(
        ...,
        gt=0,
        description="How many units"
    )
    price: Decimal = Field(
        ...,
        ge=0,
        description="Unit price"
    )

    @computed_field
    @property
    def total(self) -> Decimal:
        """Line total (quantity x price)."""
        return self.quantity * self.price


class SubmissionResult(BaseModel):
    """Outcome of a purchase batch submission."""

    added: int = Field(
        ...,
        ge=0,
        description="Number of purchases written"
    )
    periods: list[str] = Field(
        default_factory=list,
        description="Month sheets touched, in first-touched order"
    )
    message: str = Field(
        default="Purchase(s) added successfully!",
        description="Message shown to the user"
    )


# =============================================================================
# LAYOUT
# =============================================================================

class PartitionHandle(BaseModel):
    """
    Reference to a month sheet.

    Carries only the key; positions inside the sheet are always
    re-derived by scanning.
    """
    model_config = ConfigDict(frozen=True)

    key: str = Field(
        ...,
        min_length=1,
        description="Period key, also the sheet title (e.g. 'January 2025')"
    )
    created: bool = Field(
        default=False,
        description="True when this resolve call created the sheet"
    )


class BlockCoordinates(BaseModel):
    """
    Row positions of one week block (1-based).

    Valid only until the next write to the same sheet.
    """
    model_config = ConfigDict(frozen=True)

    week_label: str
    label_row: int = Field(ge=1)
    header_row: int = Field(ge=1)
    first_data_row: int = Field(ge=1)
    total_row: int = Field(ge=1)

    @model_validator(mode='after')
    def validate_order(self) -> 'BlockCoordinates':
        """Rows must follow the label/header/data/total order."""
        if self.header_row != self.label_row + 1:
            raise ValueError("Header row must follow the label row")
        if self.first_data_row != self.header_row + 1:
            raise ValueError("Data must start right after the header row")
        if self.total_row < self.first_data_row:
            raise ValueError("Total row cannot come before the first data row")
        return self

    @property
    def data_row_count(self) -> int:
        return self.total_row - self.first_data_row

    def shifted(self, rows: int) -> 'BlockCoordinates':
        """Same block moved down by `rows`."""
        return BlockCoordinates(
            week_label=self.week_label,
            label_row=self.label_row + rows,
            header_row=self.header_row + rows,
            first_data_row=self.first_data_row + rows,
            total_row=self.total_row + rows,
        )


# =============================================================================
# AGGREGATES
# =============================================================================

class WeekTotal(BaseModel):
    """One week block's total, numbered by position in the sheet."""

    index: int = Field(ge=1)
    total: Decimal

    @property
    def label(self) -> str:
        return f"Week {self.index}"


class StoreTotal(BaseModel):
    """Spend at one store."""

    store: str
    total: Decimal


class PeriodSummary(BaseModel):
    """Grand total of one month sheet."""

    period_key: str
    total: Decimal


class ReportPayload(BaseModel):
    """
    Everything a monthly report needs.

    Handed to the formatter and the mailer; the ledger has no
    dependency on delivery succeeding.
    """

    period_key: str
    total_spent: Decimal
    weekly_breakdown: list[WeekTotal] = Field(default_factory=list)
    store_breakdown: list[StoreTotal] = Field(default_factory=list)

    @property
    def has_data(self) -> bool:
        return bool(self.weekly_breakdown or self.store_breakdown or self.total_spent)


class ReportDelivery(BaseModel):
    """Record of a sent report."""

    period_key: str
    to_address: str
    subject: str
    message_id: Optional[str] = None
