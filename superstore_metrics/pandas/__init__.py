"""Pandas DataFrame adapters for Superstore metrics components."""

from .order_lines import (
    calendar_to_dataframe,
    dataframe_to_order_lines,
    order_lines_to_dataframe,
    read_order_lines_csv,
)
from .measures import (
    customer_profiles_to_dataframe,
    group_table_to_dataframe,
    measures_to_dataframe,
    period_sales_to_dataframe,
)

__all__ = [
    # Order line adapters
    "calendar_to_dataframe",
    "dataframe_to_order_lines",
    "order_lines_to_dataframe",
    "read_order_lines_csv",
    # Measure adapters
    "customer_profiles_to_dataframe",
    "group_table_to_dataframe",
    "measures_to_dataframe",
    "period_sales_to_dataframe",
]
