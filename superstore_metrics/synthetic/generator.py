from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal, ROUND_HALF_UP
import math
import random
from typing import Dict, List, Optional, Sequence, Tuple

from superstore_metrics.foundation.order_lines import OrderLine

REGIONS = ("Central", "East", "South", "West")
SEGMENTS = ("Consumer", "Corporate", "Home Office")
SHIP_MODES = ("Standard Class", "Second Class", "First Class", "Same Day")

# Category -> sub-categories, as in the Superstore extract.
PRODUCT_HIERARCHY: Dict[str, Tuple[str, ...]] = {
    "Furniture": ("Bookcases", "Chairs", "Furnishings", "Tables"),
    "Office Supplies": (
        "Appliances",
        "Art",
        "Binders",
        "Envelopes",
        "Fasteners",
        "Labels",
        "Paper",
        "Storage",
        "Supplies",
    ),
    "Technology": ("Accessories", "Copiers", "Machines", "Phones"),
}

DISCOUNT_LEVELS = ("0", "0", "0", "0.1", "0.2", "0.2", "0.3", "0.5", "0.7", "0.8")

_CENTS = Decimal("0.01")


@dataclass(frozen=True)
class Customer:
    customer_id: str
    customer_name: str
    segment: str
    region: str
    first_order_date: date


@dataclass(frozen=True)
class Product:
    product_id: str
    product_name: str
    category: str
    sub_category: str
    list_price: float


@dataclass(frozen=True)
class StoreConfig:
    """Configuration for the synthetic Superstore generator.

    Attributes
    ----------
    orders_per_customer_year: Average orders each customer places per year.
    lines_per_order_max: Upper bound on line items per order.
    products_per_sub_category: Catalog depth per sub-category.
    mean_list_price: Average product list price.
    base_margin: Profit margin of an undiscounted line.
    yearly_growth: Multiplicative growth in order volume per calendar year.
    seed: Optional RNG seed for reproducibility.
    """

    orders_per_customer_year: float = 3.0
    lines_per_order_max: int = 4
    products_per_sub_category: int = 5
    mean_list_price: float = 120.0
    base_margin: float = 0.25
    yearly_growth: float = 1.1
    seed: Optional[int] = None


def generate_customers(
    n: int,
    start: date,
    end: date,
    *,
    seed: Optional[int] = None,
) -> List[Customer]:
    """Generate ``n`` customers with first orders uniformly between start/end."""

    if n <= 0:
        return []
    if start > end:
        raise ValueError("start date must be <= end date")

    rng = random.Random(seed)
    total_days = (end - start).days + 1

    customers: List[Customer] = []
    for i in range(n):
        initials = "".join(rng.choice("ABCDEFGHJKLMNPRSTW") for _ in range(2))
        customers.append(
            Customer(
                customer_id=f"{initials}-{10000 + i + 1}",
                customer_name=f"Customer {i + 1}",
                segment=rng.choice(SEGMENTS),
                region=rng.choice(REGIONS),
                first_order_date=start + timedelta(days=rng.randrange(total_days)),
            )
        )
    return customers


def generate_catalog(config: Optional[StoreConfig] = None) -> List[Product]:
    """Build a product catalog covering every category and sub-category."""

    config = config or StoreConfig()
    rng = random.Random(config.seed)
    catalog: List[Product] = []
    for category, sub_categories in PRODUCT_HIERARCHY.items():
        prefix = category[:3].upper()
        for sub_category in sub_categories:
            for i in range(config.products_per_sub_category):
                price = math.exp(rng.normalvariate(math.log(config.mean_list_price), 0.8))
                catalog.append(
                    Product(
                        product_id=f"{prefix}-{sub_category[:2].upper()}-{1000 + i}",
                        product_name=f"{sub_category} model {i + 1}",
                        category=category,
                        sub_category=sub_category,
                        list_price=round(max(price, 1.0), 2),
                    )
                )
    return catalog


def _order_count(rng: random.Random, lam: float) -> int:
    # Knuth's Poisson draw; lambdas stay small
    if lam <= 0:
        return 0
    limit = math.exp(-lam)
    k = 0
    p = 1.0
    while p > limit:
        k += 1
        p *= rng.random()
    return k - 1


def _money(value: float) -> Decimal:
    return Decimal(str(value)).quantize(_CENTS, rounding=ROUND_HALF_UP)


def generate_order_lines(
    customers: Sequence[Customer],
    start: date,
    end: date,
    *,
    config: Optional[StoreConfig] = None,
    catalog: Optional[Sequence[Product]] = None,
) -> List[OrderLine]:
    """Generate Superstore order lines for ``customers`` between ``start`` and ``end``.

    Each customer orders at a Poisson rate from their first order date on,
    growing by ``yearly_growth`` per calendar year after ``start``. Every
    customer places at least the first order when it falls in range. Deep
    discounts turn lines loss-making, as in the real extract.
    """

    if start > end:
        raise ValueError("start date must be <= end date")
    config = config or StoreConfig()
    rng = random.Random(config.seed)
    products = list(catalog) if catalog else generate_catalog(config)

    lines: List[OrderLine] = []
    order_seq = 1
    row_id = 1

    for cust in customers:
        if cust.first_order_date > end:
            continue
        first = max(cust.first_order_date, start)
        order_dates = [first]
        for year in range(first.year, end.year + 1):
            year_start = max(first, date(year, 1, 1))
            year_end = min(end, date(year, 12, 31))
            if year_end < year_start:
                continue
            share = ((year_end - year_start).days + 1) / 365.0
            growth = config.yearly_growth ** (year - start.year)
            for _ in range(_order_count(rng, config.orders_per_customer_year * share * growth)):
                offset = rng.randrange((year_end - year_start).days + 1)
                order_dates.append(year_start + timedelta(days=offset))

        for order_date in sorted(order_dates):
            order_id = f"CA-{order_date.year}-{100000 + order_seq}"
            order_seq += 1
            ship_mode = rng.choice(SHIP_MODES)
            ship_date = order_date + timedelta(
                days=0 if ship_mode == "Same Day" else rng.randrange(1, 7)
            )
            for _line in range(1 + rng.randrange(config.lines_per_order_max)):
                product = rng.choice(products)
                quantity = 1 + rng.randrange(7)
                discount = Decimal(rng.choice(DISCOUNT_LEVELS))
                gross = product.list_price * quantity
                sales = _money(gross * (1 - float(discount)))
                profit = _money(float(sales) - gross * (1 - config.base_margin))
                lines.append(
                    OrderLine(
                        order_id=order_id,
                        customer_id=cust.customer_id,
                        order_date=order_date,
                        ship_date=ship_date,
                        category=product.category,
                        sub_category=product.sub_category,
                        region=cust.region,
                        sales=sales,
                        profit=profit,
                        quantity=quantity,
                        discount=discount,
                        row_id=row_id,
                        product_id=product.product_id,
                        product_name=product.product_name,
                        segment=cust.segment,
                        customer_name=cust.customer_name,
                        ship_mode=ship_mode,
                    )
                )
                row_id += 1

    lines.sort(key=lambda line: (line.order_date, line.order_id, line.row_id))
    return lines
