"""Core aggregate measures: sales, profit, orders, customers and ratios.

Each measure takes the fact table and an explicit filter context and reads
the filtered view only. Ratios follow safe-divide semantics: a zero or
blank denominator yields :data:`NO_VALUE` instead of raising.

Additive measures (sums, means) evaluated over an empty row set are blank
as well, mirroring how the source report renders an empty slice. Counts of
distinct orders and customers are zero for an empty slice.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Sequence, Union

from superstore_metrics.foundation.fact_table import ALL_ROWS, FactTable, FilterContext
from superstore_metrics.foundation.order_lines import OrderLine

# Per-customer money averages are reported in cents.
CURRENCY_PRECISION = Decimal("0.01")
# Fractions (discount, growth, shares) keep four decimal places, e.g. 0.1234.
RATIO_PRECISION = Decimal("0.0001")


class _NoValue:
    """Blank result of a measure that has no defined value."""

    _instance: "_NoValue | None" = None

    def __new__(cls) -> "_NoValue":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "NO_VALUE"

    def __reduce__(self):
        return (_NoValue, ())


#: Singleton returned for undefined measures. Presentation renders it blank.
NO_VALUE = _NoValue()

MeasureValue = Union[Decimal, int, _NoValue]


def is_blank(value: object) -> bool:
    """Return True when ``value`` is the blank sentinel."""
    return value is NO_VALUE


def safe_divide(
    numerator: MeasureValue,
    denominator: MeasureValue,
    precision: Decimal | None = None,
) -> Decimal | _NoValue:
    """Divide, returning :data:`NO_VALUE` for a blank or zero denominator.

    A blank numerator over a valid denominator is treated as zero.

    >>> safe_divide(Decimal("1"), 0)
    NO_VALUE
    >>> safe_divide(Decimal("1"), 4)
    Decimal('0.25')
    """
    if is_blank(denominator) or denominator == 0:
        return NO_VALUE
    if is_blank(numerator):
        numerator = Decimal("0")
    result = Decimal(numerator) / Decimal(denominator)
    if precision is not None:
        result = result.quantize(precision, rounding=ROUND_HALF_UP)
    return result


def _sum_or_blank(values: Sequence[Decimal]) -> Decimal | _NoValue:
    if not values:
        return NO_VALUE
    return sum(values, Decimal("0"))


def sum_sales(rows: Sequence[OrderLine]) -> Decimal | _NoValue:
    """Sum of sales over ``rows``; blank when ``rows`` is empty."""
    return _sum_or_blank([line.sales for line in rows])


def sum_profit(rows: Sequence[OrderLine]) -> Decimal | _NoValue:
    """Sum of profit over ``rows``; blank when ``rows`` is empty."""
    return _sum_or_blank([line.profit for line in rows])


def distinct_orders(rows: Sequence[OrderLine]) -> int:
    return len({line.order_id for line in rows})


def distinct_customers(rows: Sequence[OrderLine]) -> int:
    return len({line.customer_id for line in rows})


def mean_discount(rows: Sequence[OrderLine]) -> Decimal | _NoValue:
    if not rows:
        return NO_VALUE
    total = sum((line.discount for line in rows), Decimal("0"))
    return safe_divide(total, len(rows), RATIO_PRECISION)


def product_sales(rows: Sequence[OrderLine]) -> dict[str, Decimal]:
    """Summed sales per product key.

    Lines with neither a product name nor a product id are left out.
    """
    totals: dict[str, Decimal] = {}
    for line in rows:
        if not line.product_key:
            continue
        totals[line.product_key] = totals.get(line.product_key, Decimal("0")) + line.sales
    return totals


def top_product(rows: Sequence[OrderLine]) -> tuple[str, Decimal] | None:
    """Return ``(product_key, sales)`` of the best-selling product.

    Ties on sales resolve to the lexicographically smallest product key.
    Returns ``None`` when no row identifies a product.
    """
    totals = product_sales(rows)
    if not totals:
        return None
    return min(totals.items(), key=lambda item: (-item[1], item[0]))


# Public measures ------------------------------------------------------------


def total_sales(table: FactTable, context: FilterContext = ALL_ROWS) -> Decimal | _NoValue:
    """Sum of sales in context."""
    return sum_sales(table.filtered(context))


def total_profit(table: FactTable, context: FilterContext = ALL_ROWS) -> Decimal | _NoValue:
    """Sum of profit in context."""
    return sum_profit(table.filtered(context))


def total_orders(table: FactTable, context: FilterContext = ALL_ROWS) -> int:
    """Count of distinct order IDs in context."""
    return distinct_orders(table.filtered(context))


def total_customers(table: FactTable, context: FilterContext = ALL_ROWS) -> int:
    """Count of distinct customer IDs in context."""
    return distinct_customers(table.filtered(context))


def avg_sales_per_customer(
    table: FactTable, context: FilterContext = ALL_ROWS
) -> Decimal | _NoValue:
    rows = table.filtered(context)
    return safe_divide(sum_sales(rows), distinct_customers(rows), CURRENCY_PRECISION)


def avg_profit_per_customer(
    table: FactTable, context: FilterContext = ALL_ROWS
) -> Decimal | _NoValue:
    rows = table.filtered(context)
    return safe_divide(sum_profit(rows), distinct_customers(rows), CURRENCY_PRECISION)


def avg_discount_pct(table: FactTable, context: FilterContext = ALL_ROWS) -> Decimal | _NoValue:
    """Mean discount fraction over the order lines in context."""
    return mean_discount(table.filtered(context))


def top_product_sales(table: FactTable, context: FilterContext = ALL_ROWS) -> Decimal | _NoValue:
    """Summed sales of the best-selling product in context."""
    best = top_product(table.filtered(context))
    return NO_VALUE if best is None else best[1]


@dataclass(frozen=True)
class CoreMeasures:
    """Core aggregate measures for one filter context.

    Attributes
    ----------
    total_sales, total_profit:
        Sums over the context; blank for an empty context.
    total_orders, total_customers:
        Distinct counts.
    avg_sales_per_customer, avg_profit_per_customer:
        Money per distinct customer, rounded to cents.
    avg_discount_pct:
        Mean discount fraction.
    top_product, top_product_sales:
        Best-selling product key and its sales.
    profit_margin:
        total_profit / total_sales.
    """

    total_sales: Decimal | _NoValue
    total_profit: Decimal | _NoValue
    total_orders: int
    total_customers: int
    avg_sales_per_customer: Decimal | _NoValue
    avg_profit_per_customer: Decimal | _NoValue
    avg_discount_pct: Decimal | _NoValue
    top_product: str | None
    top_product_sales: Decimal | _NoValue
    profit_margin: Decimal | _NoValue

    def __post_init__(self) -> None:
        """Validate core measures."""
        if self.total_orders < 0 or self.total_customers < 0:
            raise ValueError(
                f"Counts cannot be negative: orders={self.total_orders}, "
                f"customers={self.total_customers}"
            )
        if self.avg_discount_pct is not NO_VALUE and not 0 <= self.avg_discount_pct <= 1:
            raise ValueError(f"Average discount must be 0-1: {self.avg_discount_pct}")

    def as_dict(self) -> dict[str, object]:
        return {
            "TotalSales": self.total_sales,
            "TotalProfit": self.total_profit,
            "TotalOrders": self.total_orders,
            "TotalCustomers": self.total_customers,
            "AvgSalesPerCustomer": self.avg_sales_per_customer,
            "AvgProfitPerCustomer": self.avg_profit_per_customer,
            "AvgDiscountPct": self.avg_discount_pct,
            "TopProduct": self.top_product,
            "TopProductSales": self.top_product_sales,
            "ProfitMargin": self.profit_margin,
        }


def calculate_core_measures(rows: Sequence[OrderLine]) -> CoreMeasures:
    """Compute every core measure in a single pass over an already filtered view.

    Examples
    --------
    >>> from superstore_metrics.foundation import FactTable
    >>> measures = calculate_core_measures(FactTable([]).all_rows())
    >>> measures.total_sales
    NO_VALUE
    >>> measures.total_customers
    0
    """
    sales = sum_sales(rows)
    profit = sum_profit(rows)
    customers = distinct_customers(rows)
    best = top_product(rows)
    return CoreMeasures(
        total_sales=sales,
        total_profit=profit,
        total_orders=distinct_orders(rows),
        total_customers=customers,
        avg_sales_per_customer=safe_divide(sales, customers, CURRENCY_PRECISION),
        avg_profit_per_customer=safe_divide(profit, customers, CURRENCY_PRECISION),
        avg_discount_pct=mean_discount(rows),
        top_product=None if best is None else best[0],
        top_product_sales=NO_VALUE if best is None else best[1],
        profit_margin=safe_divide(profit, sales, RATIO_PRECISION),
    )
