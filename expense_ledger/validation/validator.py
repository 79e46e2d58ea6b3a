"""
Purchase Validation

DESIGN DECISION: A submission is validated as a whole before the first
write. The spreadsheet cannot roll back, so a batch with one bad row is
rejected without touching the ledger.

Raw form rows arrive as mappings of strings (or already-typed values
from the date/number widgets). Each one becomes a Transaction or an
InvalidTransaction naming the field and the row position.

IMPORTANT: Validation NEVER silently fixes values. Whitespace is trimmed;
everything else is reported back.
"""

from decimal import Decimal, InvalidOperation
from typing import Any, Iterable, Mapping, Optional

from pydantic import ValidationError

from expense_ledger.config import get_settings
from expense_ledger.ledger.errors import InvalidArgument, InvalidTransaction
from expense_ledger.ledger.layout import MAX_AMOUNT, is_blank, to_date
from expense_ledger.models.ledger import Transaction


REQUIRED_FIELDS = ("date", "store", "product", "quantity", "price")

_FIELD_NAMES = {
    "date": "Date",
    "store": "Store",
    "product": "Product",
    "quantity": "Quantity",
    "price": "Price",
}


def _to_decimal(value: Any, field: str, index: int) -> Decimal:
    if isinstance(value, bool):
        raise InvalidTransaction(f"{_FIELD_NAMES[field]} must be a number", field, index)
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, (int, float)):
        result = Decimal(str(value))
    else:
        try:
            result = Decimal(str(value).strip())
        except InvalidOperation:
            raise InvalidTransaction(
                f"{_FIELD_NAMES[field]} must be a number, got {value!r}",
                field,
                index,
            )
    if not result.is_finite():
        raise InvalidTransaction(f"{_FIELD_NAMES[field]} must be a finite number", field, index)
    if abs(result) >= MAX_AMOUNT:
        raise InvalidTransaction(
            f"{_FIELD_NAMES[field]} must be less than {MAX_AMOUNT:,}",
            field,
            index,
        )
    return result


class TransactionValidator:
    """
    Turns raw purchase rows into Transactions.

    Usage:
        validator = TransactionValidator()
        purchases = validator.parse_batch(form_rows)
    """

    def __init__(self, max_batch_size: Optional[int] = None):
        """
        Args:
            max_batch_size: Largest accepted batch. Defaults to the
                            app setting.
        """
        if max_batch_size is None:
            max_batch_size = get_settings().app.max_batch_size
        self.max_batch_size = max_batch_size

    def parse(self, raw: Mapping[str, Any], index: int = 0) -> Transaction:
        """
        Validate one purchase row.

        Raises:
            InvalidTransaction: With the failing field and `index`
        """
        if not isinstance(raw, Mapping):
            raise InvalidTransaction("Purchase must be a set of fields", index=index)

        for field in REQUIRED_FIELDS:
            if is_blank(raw.get(field)):
                raise InvalidTransaction(f"{_FIELD_NAMES[field]} is required", field, index)

        try:
            day = to_date(raw["date"])
        except InvalidArgument as e:
            raise InvalidTransaction(str(e), "date", index)

        quantity = _to_decimal(raw["quantity"], "quantity", index)
        if quantity <= 0:
            raise InvalidTransaction("Quantity must be greater than zero", "quantity", index)

        price = _to_decimal(raw["price"], "price", index)
        if price < 0:
            raise InvalidTransaction("Price cannot be negative", "price", index)

        try:
            return Transaction(
                date=day,
                store=str(raw["store"]),
                product=str(raw["product"]),
                quantity=quantity,
                price=price,
            )
        except ValidationError as e:
            error = e.errors()[0]
            field = str(error["loc"][0]) if error.get("loc") else ""
            raise InvalidTransaction(error["msg"], field, index)

    def parse_batch(self, raws: Iterable[Mapping[str, Any]]) -> list[Transaction]:
        """
        Validate a whole submission. All or nothing.

        Raises:
            InvalidArgument: If the batch is empty or too large
            InvalidTransaction: At the first invalid row
        """
        rows = list(raws)
        if not rows:
            raise InvalidArgument("No purchases to add")
        if len(rows) > self.max_batch_size:
            raise InvalidArgument(
                f"Too many purchases in one submission "
                f"({len(rows)}, limit {self.max_batch_size})"
            )
        return [self.parse(raw, index) for index, raw in enumerate(rows)]
