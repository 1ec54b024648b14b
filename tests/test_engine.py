"""Tests for the metrics engine."""

from datetime import date
from decimal import Decimal

import pytest

from superstore_metrics.engine import Dimension, MetricsEngine
from superstore_metrics.foundation import FactTable, FilterContext, PeriodGranularity
from superstore_metrics.measures.core import NO_VALUE


@pytest.fixture
def engine(line_factory):
    return MetricsEngine(
        [
            line_factory("O1", "A", date(2023, 1, 10), sales="100", category="Furniture"),
            line_factory(
                "O2",
                "B",
                date(2023, 2, 15),
                sales="50",
                region="East",
                category="Technology",
                product_name="Phone",
            ),
            line_factory("O3", "A", date(2024, 1, 20), sales="150", category="Furniture"),
            line_factory(
                "O4",
                "C",
                date(2024, 2, 10),
                sales="25",
                category="Technology",
                product_name="Phone",
            ),
            line_factory("O5", "B", date(2024, 4, 5), sales="80", category="Furniture"),
        ]
    )


class TestEvaluate:
    """Test scalar evaluation."""

    def test_example_scalars(self, example_lines):
        measures = MetricsEngine(example_lines).evaluate()

        assert measures["TotalSales"] == Decimal("350")
        assert measures["TotalCustomers"] == 2
        assert measures["TotalOrders"] == 3

    def test_accepts_fact_table(self, example_lines):
        table = FactTable(example_lines)
        assert MetricsEngine(table).table is table

    def test_period_measures_follow_context_dates(self, engine):
        context = FilterContext(start_date=date(2024, 1, 1), end_date=date(2024, 3, 31))
        measures = engine.evaluate(context)

        assert measures["TotalSales"] == Decimal("175")
        assert measures["SalesLY"] == Decimal("150")
        assert measures["YoYSalesGrowth"] == Decimal("0.1667")
        assert measures["CumulativeSales"] == Decimal("325")
        assert measures["ReturningCustomersPct"] == Decimal("0.5")

    def test_empty_engine_is_blank(self):
        measures = MetricsEngine([]).evaluate()

        assert measures["TotalSales"] is NO_VALUE
        assert measures["TotalCustomers"] == 0
        assert measures["CumulativeSales"] is NO_VALUE
        assert measures["SalesLY"] is NO_VALUE
        assert measures["YoYSalesGrowth"] is NO_VALUE
        assert measures["ReturningCustomersPct"] is NO_VALUE


class TestPerGroupTables:
    """Test per-period and per-dimension evaluation."""

    def test_by_quarter(self, engine):
        table = engine.evaluate_by_period(granularity=PeriodGranularity.QUARTER)

        assert list(table)[0] == "2023-Q1"
        assert table["2024-Q1"]["TotalSales"] == Decimal("175")
        assert table["2024-Q1"]["SalesLY"] == Decimal("150")
        assert table["2024-Q1"]["ReturningCustomersPct"] == Decimal("0.5")
        assert table["2023-Q3"]["TotalSales"] is NO_VALUE
        assert table["2023-Q3"]["ReturningCustomersPct"] is NO_VALUE

    def test_by_dimension(self, engine):
        table = engine.evaluate_by_dimension(Dimension.CATEGORY)

        assert list(table) == ["Furniture", "Technology"]
        assert table["Furniture"]["TotalSales"] == Decimal("330")
        assert table["Technology"]["TotalSales"] == Decimal("75")
        assert table["Technology"]["TopProductSales"] == Decimal("75")

    def test_by_dimension_respects_context(self, engine):
        table = engine.evaluate_by_dimension("region", FilterContext(categories={"Technology"}))
        assert table["East"]["TotalSales"] == Decimal("50")
        assert table["West"]["TotalSales"] == Decimal("25")

    def test_dimension_context_field(self):
        assert Dimension.SUB_CATEGORY.context_field == "sub_categories"


class TestCompute:
    """Test the full catalog."""

    def test_compute_holds_scalars_and_tables(self, engine):
        result = engine.compute(granularity=PeriodGranularity.YEAR)

        assert result["TotalSales"] == Decimal("405")
        assert list(result["ByPeriod"]) == ["2023", "2024"]
        assert result["ByPeriod"]["2024"]["SalesLY"] == Decimal("150")
        assert sum(result["FrequencyBands"].values()) == 3
        assert sum(result["RecencyBands"].values()) == 3

    def test_customers(self, engine):
        profiles = engine.evaluate_customers(FilterContext(regions={"East"}))
        assert [p.customer_id for p in profiles] == ["B"]
        assert profiles[0].frequency == 2


class TestContextsOutsideCalendar:
    """Contexts whose dates miss the fact table entirely."""

    @pytest.mark.parametrize(
        "context",
        [
            FilterContext(start_date=date(2030, 1, 1)),
            FilterContext(end_date=date(2022, 12, 31)),
            FilterContext(start_date=date(2020, 1, 1), end_date=date(2020, 12, 31)),
        ],
    )
    def test_evaluate_is_blank(self, engine, context):
        measures = engine.evaluate(context)

        assert measures["TotalSales"] is NO_VALUE
        assert measures["TotalOrders"] == 0
        assert measures["CumulativeSales"] is NO_VALUE
        assert measures["SalesLY"] is NO_VALUE
        assert measures["YoYSalesGrowth"] is NO_VALUE
        assert measures["ReturningCustomersPct"] is NO_VALUE

    def test_compute_after_last_order(self, engine):
        result = engine.compute(FilterContext(start_date=date(2030, 1, 1)))

        assert result["CumulativeSales"] is NO_VALUE
        assert result["ByPeriod"] == {}
        assert sum(result["FrequencyBands"].values()) == 0

    def test_open_start_keeps_running_total(self, engine):
        measures = engine.evaluate(FilterContext(end_date=date(2023, 12, 31)))
        assert measures["CumulativeSales"] == Decimal("150")
