"""Shared fixtures for Superstore metrics tests."""

from datetime import date
from decimal import Decimal

import pytest

from superstore_metrics.foundation import OrderLine


def make_line(
    order_id="O1",
    customer_id="A",
    order_date=date(2023, 1, 5),
    sales="100",
    profit="10",
    region="West",
    category="Furniture",
    sub_category="Chairs",
    product_name="Chair",
    discount="0",
    quantity=1,
    segment="Consumer",
    row_id=None,
    ship_date=None,
):
    """Build an OrderLine with sensible defaults for tests."""
    return OrderLine(
        order_id=order_id,
        customer_id=customer_id,
        order_date=order_date,
        ship_date=ship_date or order_date,
        category=category,
        sub_category=sub_category,
        region=region,
        sales=Decimal(sales),
        profit=Decimal(profit),
        quantity=quantity,
        discount=Decimal(discount),
        row_id=row_id,
        product_name=product_name,
        segment=segment,
    )


@pytest.fixture
def line_factory():
    return make_line


@pytest.fixture
def example_lines():
    """Three-row example: customer A orders twice, customer B once."""
    return [
        make_line("O1", "A", date(2023, 1, 5), sales="100", profit="20", region="West"),
        make_line(
            "O2",
            "A",
            date(2023, 6, 1),
            sales="50",
            profit="-5",
            region="East",
            category="Technology",
            sub_category="Phones",
            product_name="Phone",
            discount="0.2",
        ),
        make_line("O3", "B", date(2023, 3, 1), sales="200", profit="40", region="West"),
    ]
