"""Order-line fact rows and the contract that produces them.

The order-line contract captures the minimum pieces of information every
measure relies on. It accepts records keyed either by snake_case field
names or by the column headers of the Superstore extract ("Order ID",
"Customer ID", "Sub-Category", ...) and turns them into immutable
:class:`OrderLine` rows.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable, Mapping

from superstore_metrics.foundation.errors import InvariantViolationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OrderLine:
    """A single order-line item from the Superstore fact table.

    Attributes
    ----------
    order_id:
        Order identifier shared by all lines of an order.
    customer_id:
        Customer placing the order.
    order_date:
        Date the order was placed. Joins to the calendar dimension.
    ship_date:
        Date the order shipped; never before ``order_date``.
    category, sub_category:
        Product hierarchy (e.g. "Furniture" / "Chairs").
    region:
        Sales region (e.g. "West").
    sales:
        Line revenue after discount, non-negative.
    profit:
        Line profit, negative for loss-making lines.
    quantity:
        Units sold, strictly positive.
    discount:
        Discount fraction in [0, 1].
    row_id:
        Optional line identity. ``(order_id, row_id)`` is unique within a
        fact table when provided.
    product_id, product_name:
        Product identifiers. ``product_name`` is the grouping key for the
        top-product measure, falling back to ``product_id``.
    segment, customer_name, ship_mode:
        Descriptive attributes carried through from the extract.
    """

    order_id: str
    customer_id: str
    order_date: date
    ship_date: date
    category: str
    sub_category: str
    region: str
    sales: Decimal
    profit: Decimal
    quantity: int
    discount: Decimal
    row_id: int | None = None
    product_id: str = ""
    product_name: str = ""
    segment: str = ""
    customer_name: str = ""
    ship_mode: str = ""

    def __post_init__(self) -> None:
        """Validate order-line invariants."""
        if self.ship_date < self.order_date:
            raise InvariantViolationError(
                f"Ship date {self.ship_date} precedes order date {self.order_date} "
                f"(order_id={self.order_id})"
            )
        if not Decimal("0") <= self.discount <= Decimal("1"):
            raise InvariantViolationError(
                f"Discount must be within [0, 1]: {self.discount} (order_id={self.order_id})"
            )
        if self.quantity <= 0:
            raise InvariantViolationError(
                f"Quantity must be positive: {self.quantity} (order_id={self.order_id})"
            )
        if self.sales < 0:
            raise InvariantViolationError(
                f"Sales cannot be negative: {self.sales} (order_id={self.order_id})"
            )

    @property
    def product_key(self) -> str:
        """Grouping key used to rank products."""
        return self.product_name or self.product_id

    @property
    def line_key(self) -> tuple[str, int] | None:
        """Line identity, or ``None`` when the extract carries no row id."""
        if self.row_id is None:
            return None
        return (self.order_id, self.row_id)


# Superstore extract headers mapped onto OrderLine field names.
SUPERSTORE_COLUMNS: dict[str, str] = {
    "Row ID": "row_id",
    "Order ID": "order_id",
    "Order Date": "order_date",
    "Ship Date": "ship_date",
    "Ship Mode": "ship_mode",
    "Customer ID": "customer_id",
    "Customer Name": "customer_name",
    "Segment": "segment",
    "Region": "region",
    "Product ID": "product_id",
    "Category": "category",
    "Sub-Category": "sub_category",
    "Product Name": "product_name",
    "Sales": "sales",
    "Quantity": "quantity",
    "Discount": "discount",
    "Profit": "profit",
}

_DATE_FIELDS = ("order_date", "ship_date")
_DECIMAL_FIELDS = ("sales", "profit", "discount")
_TEXT_FIELDS = (
    "product_id",
    "product_name",
    "segment",
    "customer_name",
    "ship_mode",
)


def _parse_date(value: Any, *, field_name: str, idx: int) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value.strip()[:10])
        except ValueError as exc:
            raise ValueError(
                f"{field_name} is not an ISO date",
                {"record_index": idx, "value": value},
            ) from exc
    raise TypeError(
        f"{field_name} must be a date, datetime or ISO string",
        {"record_index": idx, "value": value},
    )


def _parse_decimal(value: Any, *, field_name: str, idx: int) -> Decimal:
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool) or not isinstance(value, (int, float, str)):
        raise TypeError(
            f"{field_name} must be numeric",
            {"record_index": idx, "value": value},
        )
    try:
        return Decimal(str(value).strip())
    except InvalidOperation as exc:
        raise ValueError(
            f"{field_name} is not a number",
            {"record_index": idx, "value": value},
        ) from exc


class OrderLineContract:
    """Validate raw order-line records and return typed fact rows."""

    #: Fields that must be populated for a record to be accepted.
    REQUIRED_FIELDS = (
        "order_id",
        "customer_id",
        "order_date",
        "ship_date",
        "category",
        "sub_category",
        "region",
        "sales",
        "profit",
        "quantity",
        "discount",
    )

    def __init__(self, drop_duplicates: bool = False) -> None:
        self.drop_duplicates = drop_duplicates

    @staticmethod
    def normalise_keys(record: Mapping[str, Any]) -> dict[str, Any]:
        """Return a copy of ``record`` keyed by OrderLine field names."""
        return {SUPERSTORE_COLUMNS.get(str(key), str(key)): value for key, value in record.items()}

    def validate_records(self, records: Iterable[Mapping[str, Any]]) -> list[OrderLine]:
        """Validate raw records and return canonical order lines.

        Parameters
        ----------
        records:
            Iterable of raw dictionaries, keyed by snake_case field names or
            Superstore headers. Dates may be ``date``/``datetime`` objects or
            ISO strings; numerics may be numbers or numeric strings.

        Raises
        ------
        ValueError
            If a record misses a required field or carries unparseable values.
        TypeError
            If a field has an unsupported type.
        InvariantViolationError
            If a parsed row breaks an OrderLine invariant.
        """
        lines: list[OrderLine] = []
        seen: set[OrderLine] = set()
        duplicates = 0
        for idx, record in enumerate(records):
            data = self.normalise_keys(record)

            missing = [
                name
                for name in self.REQUIRED_FIELDS
                if data.get(name) is None or data.get(name) == ""
            ]
            if missing:
                raise ValueError(
                    "Record missing required order-line fields",
                    {"missing_fields": missing, "record_index": idx},
                )

            kwargs: dict[str, Any] = {
                "order_id": str(data["order_id"]),
                "customer_id": str(data["customer_id"]),
                "category": str(data["category"]),
                "sub_category": str(data["sub_category"]),
                "region": str(data["region"]),
            }
            for name in _DATE_FIELDS:
                kwargs[name] = _parse_date(data[name], field_name=name, idx=idx)
            for name in _DECIMAL_FIELDS:
                kwargs[name] = _parse_decimal(data[name], field_name=name, idx=idx)

            quantity = _parse_decimal(data["quantity"], field_name="quantity", idx=idx)
            if quantity != quantity.to_integral_value():
                raise ValueError(
                    "quantity must be a whole number",
                    {"record_index": idx, "value": data["quantity"]},
                )
            kwargs["quantity"] = int(quantity)

            row_id = data.get("row_id")
            if row_id is not None and row_id != "":
                kwargs["row_id"] = int(row_id)
            for name in _TEXT_FIELDS:
                value = data.get(name)
                if value is not None:
                    kwargs[name] = str(value)

            line = OrderLine(**kwargs)
            if self.drop_duplicates:
                if line in seen:
                    duplicates += 1
                    continue
                seen.add(line)
            lines.append(line)

        if duplicates:
            logger.warning("Dropped %d exact duplicate order lines", duplicates)
        return lines

    @staticmethod
    def to_serialisable(lines: Iterable[OrderLine]) -> list[dict[str, Any]]:
        """Convert order lines into JSON-serialisable dictionaries."""
        payload: list[dict[str, Any]] = []
        for line in lines:
            payload.append(
                {
                    "row_id": line.row_id,
                    "order_id": line.order_id,
                    "customer_id": line.customer_id,
                    "order_date": line.order_date.isoformat(),
                    "ship_date": line.ship_date.isoformat(),
                    "category": line.category,
                    "sub_category": line.sub_category,
                    "region": line.region,
                    "sales": str(line.sales),
                    "profit": str(line.profit),
                    "quantity": line.quantity,
                    "discount": str(line.discount),
                    "product_id": line.product_id,
                    "product_name": line.product_name,
                    "segment": line.segment,
                    "customer_name": line.customer_name,
                    "ship_mode": line.ship_mode,
                }
            )
        return payload
