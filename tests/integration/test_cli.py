"""Integration tests for the command line entry points.

Runs the complete workflow from raw order lines through the CLI commands
to the JSON measure document and the customer profile CSV.
"""

import json

import pandas as pd
import pytest

from superstore_metrics.cli import compute_metrics_cli, profile_customers_cli


@pytest.fixture
def order_lines_json(tmp_path):
    """Order lines for three customers over two years."""
    records = [
        {"order_id": "O1", "customer_id": "A", "order_date": "2023-01-10", "sales": "100"},
        {
            "order_id": "O2",
            "customer_id": "B",
            "order_date": "2023-02-15",
            "sales": "50",
            "region": "East",
        },
        {"order_id": "O3", "customer_id": "A", "order_date": "2024-01-20", "sales": "150"},
        {"order_id": "O4", "customer_id": "C", "order_date": "2024-02-10", "sales": "25"},
        {"order_id": "O5", "customer_id": "B", "order_date": "2024-04-05", "sales": "80"},
    ]
    defaults = {
        "category": "Furniture",
        "sub_category": "Chairs",
        "region": "West",
        "profit": "10",
        "quantity": 1,
        "discount": "0",
        "product_name": "Chair",
    }
    for row_id, record in enumerate(records, start=1):
        record.setdefault("ship_date", record["order_date"])
        record["row_id"] = row_id
        for key, value in defaults.items():
            record.setdefault(key, value)

    path = tmp_path / "order_lines.json"
    path.write_text(json.dumps(records))
    return path


@pytest.fixture
def superstore_csv(tmp_path):
    path = tmp_path / "superstore.csv"
    pd.DataFrame(
        {
            "Row ID": [1, 2],
            "Order ID": ["CA-2016-152156", "US-2015-108966"],
            "Order Date": ["11/8/2016", "10/11/2015"],
            "Ship Date": ["11/11/2016", "10/18/2015"],
            "Customer ID": ["CG-12520", "SO-20335"],
            "Segment": ["Consumer", "Corporate"],
            "Region": ["South", "South"],
            "Category": ["Furniture", "Furniture"],
            "Sub-Category": ["Bookcases", "Tables"],
            "Product Name": ["Bookcase", "Table"],
            "Sales": [261.96, 957.5775],
            "Quantity": [2, 5],
            "Discount": [0.0, 0.45],
            "Profit": [41.9136, -383.031],
        }
    ).to_csv(path, index=False)
    return path


class TestComputeMetricsCLI:
    """Test the superstore-metrics command."""

    def test_whole_table(self, order_lines_json, tmp_path):
        output = tmp_path / "out" / "metrics.json"
        exit_code = compute_metrics_cli(
            [str(order_lines_json), "--granularity", "year", "--output", str(output)]
        )

        assert exit_code == 0
        result = json.loads(output.read_text())
        assert result["TotalSales"] == pytest.approx(405.0)
        assert result["TotalCustomers"] == 3
        assert sorted(result["ByPeriod"]) == ["2023", "2024"]
        assert result["ByPeriod"]["2023"]["SalesLY"] is None
        assert result["ByPeriod"]["2024"]["SalesLY"] == pytest.approx(150.0)
        assert sum(result["FrequencyBands"].values()) == 3

    def test_filters(self, order_lines_json, tmp_path):
        output = tmp_path / "metrics.json"
        exit_code = compute_metrics_cli(
            [
                str(order_lines_json),
                "--start",
                "2024-01-01",
                "--end",
                "2024-03-31",
                "--output",
                str(output),
            ]
        )

        assert exit_code == 0
        result = json.loads(output.read_text())
        assert result["TotalSales"] == pytest.approx(175.0)
        assert result["YoYSalesGrowth"] == pytest.approx(0.1667)
        assert result["ReturningCustomersPct"] == pytest.approx(0.5)

    def test_query_file_with_flag_override(self, order_lines_json, tmp_path):
        query = tmp_path / "query.json"
        query.write_text(json.dumps({"regions": ["East"], "granularity": "quarter"}))
        output = tmp_path / "metrics.json"

        exit_code = compute_metrics_cli(
            [
                str(order_lines_json),
                "--query",
                str(query),
                "--region",
                "West",
                "--output",
                str(output),
            ]
        )

        assert exit_code == 0
        result = json.loads(output.read_text())
        assert result["TotalSales"] == pytest.approx(355.0)
        assert "2023-Q1" in result["ByPeriod"]

    def test_empty_context_writes_nulls(self, order_lines_json, tmp_path):
        output = tmp_path / "metrics.json"
        exit_code = compute_metrics_cli(
            [str(order_lines_json), "--region", "Central", "--output", str(output)]
        )

        assert exit_code == 0
        result = json.loads(output.read_text())
        assert result["TotalSales"] is None
        assert result["TotalOrders"] == 0

    def test_reversed_range_fails(self, order_lines_json):
        exit_code = compute_metrics_cli(
            [str(order_lines_json), "--start", "2024-03-31", "--end", "2024-01-01"]
        )
        assert exit_code == 2

    def test_empty_input_fails(self, tmp_path):
        path = tmp_path / "empty.json"
        path.write_text("[]")
        assert compute_metrics_cli([str(path)]) == 1

    def test_start_after_last_order(self, order_lines_json, tmp_path):
        output = tmp_path / "metrics.json"
        exit_code = compute_metrics_cli(
            [str(order_lines_json), "--start", "2030-01-01", "--output", str(output)]
        )

        assert exit_code == 0
        result = json.loads(output.read_text())
        assert result["TotalSales"] is None
        assert result["CumulativeSales"] is None
        assert result["ByPeriod"] == {}

    def test_invalid_record_fails(self, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text(json.dumps([{"order_id": "O1", "customer_id": "A"}]))
        assert compute_metrics_cli([str(path)]) == 1

    def test_superstore_csv(self, superstore_csv, tmp_path):
        output = tmp_path / "metrics.json"
        exit_code = compute_metrics_cli(
            [str(superstore_csv), "--date-format", "%m/%d/%Y", "--output", str(output)]
        )

        assert exit_code == 0
        result = json.loads(output.read_text())
        assert result["TotalSales"] == pytest.approx(1219.5375)
        assert result["TotalProfit"] == pytest.approx(-341.1174)


class TestProfileCustomersCLI:
    """Test the superstore-profiles command."""

    def test_profiles_csv(self, order_lines_json, tmp_path):
        output = tmp_path / "profiles.csv"
        exit_code = profile_customers_cli([str(order_lines_json), "--output", str(output)])

        assert exit_code == 0
        df = pd.read_csv(output)
        assert df["customer_id"].tolist() == ["A", "B", "C"]
        assert df["frequency"].tolist() == [2, 2, 1]
        assert df["recency_days"].tolist() == [76, 0, 55]

    def test_region_selects_customers(self, order_lines_json, tmp_path):
        output = tmp_path / "profiles.csv"
        exit_code = profile_customers_cli(
            [str(order_lines_json), "--region", "East", "--output", str(output)]
        )

        assert exit_code == 0
        df = pd.read_csv(output)
        assert df["customer_id"].tolist() == ["B"]
        assert df["frequency"].tolist() == [2]

    def test_as_of_before_last_order_fails(self, order_lines_json, tmp_path):
        output = tmp_path / "profiles.csv"
        exit_code = profile_customers_cli(
            [str(order_lines_json), "--as-of", "2024-01-01", "--output", str(output)]
        )

        assert exit_code == 1
        assert not output.exists()
