"""Tests for core aggregate measures."""

import pickle
from datetime import date
from decimal import Decimal

import pytest

from superstore_metrics.foundation import FactTable, FilterContext
from superstore_metrics.measures.core import (
    NO_VALUE,
    CoreMeasures,
    avg_discount_pct,
    avg_profit_per_customer,
    avg_sales_per_customer,
    calculate_core_measures,
    is_blank,
    safe_divide,
    top_product,
    top_product_sales,
    total_customers,
    total_orders,
    total_profit,
    total_sales,
)


class TestSafeDivide:
    """Test the blank sentinel and safe division."""

    def test_zero_denominator_returns_blank(self):
        assert safe_divide(Decimal("10"), 0) is NO_VALUE
        assert safe_divide(Decimal("10"), Decimal("0.00")) is NO_VALUE

    def test_blank_denominator_returns_blank(self):
        assert safe_divide(Decimal("10"), NO_VALUE) is NO_VALUE

    def test_blank_numerator_counts_as_zero(self):
        assert safe_divide(NO_VALUE, 5) == Decimal("0")

    def test_precision(self):
        assert safe_divide(Decimal("2"), 3, Decimal("0.01")) == Decimal("0.67")

    def test_sentinel_is_falsy_singleton(self):
        assert not NO_VALUE
        assert is_blank(NO_VALUE)
        assert not is_blank(Decimal("0"))
        assert repr(NO_VALUE) == "NO_VALUE"
        assert pickle.loads(pickle.dumps(NO_VALUE)) is NO_VALUE


class TestCoreMeasures:
    """Test measures over the three-row example."""

    def test_example_totals(self, example_lines):
        table = FactTable(example_lines)

        assert total_sales(table) == Decimal("350")
        assert total_profit(table) == Decimal("55")
        assert total_orders(table) == 3
        assert total_customers(table) == 2

    def test_example_ratios(self, example_lines):
        table = FactTable(example_lines)

        assert avg_sales_per_customer(table) == Decimal("175.00")
        assert avg_profit_per_customer(table) == Decimal("27.50")
        assert avg_discount_pct(table) == Decimal("0.0667")

    def test_filtered_context(self, example_lines):
        table = FactTable(example_lines)
        west = FilterContext(regions={"West"})

        assert total_sales(table, west) == Decimal("300")
        assert total_customers(table, west) == 2
        assert avg_sales_per_customer(table, west) == Decimal("150.00")

    def test_total_orders_counts_distinct_order_ids(self, line_factory):
        lines = [
            line_factory("O1", row_id=1),
            line_factory("O1", row_id=2, product_name="Desk"),
            line_factory("O2", row_id=3),
        ]
        table = FactTable(lines)
        assert total_orders(table) == 2
        assert total_orders(table) <= len(table)

    def test_empty_context_is_blank(self, example_lines):
        """An empty slice gives blank sums and ratios and zero counts."""
        table = FactTable(example_lines)
        nowhere = FilterContext(regions={"Central"})

        assert total_sales(table, nowhere) is NO_VALUE
        assert total_profit(table, nowhere) is NO_VALUE
        assert total_orders(table, nowhere) == 0
        assert total_customers(table, nowhere) == 0
        assert avg_sales_per_customer(table, nowhere) is NO_VALUE
        assert avg_profit_per_customer(table, nowhere) is NO_VALUE
        assert avg_discount_pct(table, nowhere) is NO_VALUE
        assert top_product_sales(table, nowhere) is NO_VALUE

    def test_total_sales_matches_sum_in_context(self, line_factory):
        lines = [
            line_factory(f"O{i}", customer_id=f"C{i % 3}", sales=f"{i}.25", region=region)
            for i, region in enumerate(["West", "East", "West", "South", "West"], start=1)
        ]
        table = FactTable(lines)
        west = FilterContext(regions={"West"})
        expected = sum((line.sales for line in lines if line.region == "West"), Decimal("0"))
        assert total_sales(table, west) == expected


class TestTopProduct:
    """Test top product selection."""

    def test_top_product_sales(self, example_lines):
        table = FactTable(example_lines)
        assert top_product(table.all_rows()) == ("Chair", Decimal("300"))
        assert top_product_sales(table) == Decimal("300")

    def test_tie_breaks_on_smallest_key(self, line_factory):
        lines = [
            line_factory("O1", product_name="Table", sales="100"),
            line_factory("O2", product_name="Bookcase", sales="60"),
            line_factory("O3", product_name="Bookcase", sales="40"),
            line_factory("O4", product_name="Lamp", sales="99"),
        ]
        assert top_product(lines) == ("Bookcase", Decimal("100"))

    def test_no_rows(self):
        assert top_product([]) is None

    def test_lines_without_product_key_are_not_ranked(self, line_factory):
        unnamed = [
            line_factory("O1", product_name="", sales="100"),
            line_factory("O2", product_name="", sales="200"),
        ]
        assert top_product(unnamed) is None
        assert top_product_sales(FactTable(unnamed)) is NO_VALUE

        named = line_factory("O3", product_name="Desk", sales="50")
        assert top_product(unnamed + [named]) == ("Desk", Decimal("50"))


class TestCalculateCoreMeasures:
    """Test the single-pass core measure bundle."""

    def test_bundle_matches_individual_measures(self, example_lines):
        table = FactTable(example_lines)
        measures = calculate_core_measures(table.all_rows())

        assert measures.total_sales == total_sales(table)
        assert measures.total_customers == total_customers(table)
        assert measures.top_product == "Chair"
        assert measures.profit_margin == Decimal("0.1571")

    def test_as_dict_uses_measure_names(self, example_lines):
        values = calculate_core_measures(example_lines).as_dict()
        assert values["TotalSales"] == Decimal("350")
        assert values["TotalCustomers"] == 2
        assert set(values) >= {
            "TotalSales",
            "TotalProfit",
            "TotalOrders",
            "TotalCustomers",
            "AvgSalesPerCustomer",
            "AvgProfitPerCustomer",
            "AvgDiscountPct",
            "TopProductSales",
        }

    def test_empty_bundle(self):
        measures = calculate_core_measures([])
        assert measures.total_sales is NO_VALUE
        assert measures.top_product is None
        assert measures.profit_margin is NO_VALUE

    def test_negative_counts_raise_error(self):
        with pytest.raises(ValueError, match="Counts cannot be negative"):
            CoreMeasures(
                total_sales=NO_VALUE,
                total_profit=NO_VALUE,
                total_orders=-1,
                total_customers=0,
                avg_sales_per_customer=NO_VALUE,
                avg_profit_per_customer=NO_VALUE,
                avg_discount_pct=NO_VALUE,
                top_product=None,
                top_product_sales=NO_VALUE,
                profit_margin=NO_VALUE,
            )

    def test_zero_sales_margin_is_blank(self, line_factory):
        measures = calculate_core_measures([line_factory(sales="0", profit="-5", order_date=date(2023, 1, 1))])
        assert measures.total_sales == Decimal("0")
        assert measures.profit_margin is NO_VALUE
