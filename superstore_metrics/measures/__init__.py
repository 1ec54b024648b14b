"""Measure layer of the Superstore report.

1. Core aggregates - sales, profit, orders, customers and safe ratios
2. Time intelligence - running totals and year-over-year comparisons
3. Customer segmentation - frequency/recency bands and returning customers
"""

from .core import (
    NO_VALUE,
    CoreMeasures,
    avg_discount_pct,
    avg_profit_per_customer,
    avg_sales_per_customer,
    calculate_core_measures,
    is_blank,
    safe_divide,
    top_product_sales,
    total_customers,
    total_orders,
    total_profit,
    total_sales,
)
from .rfm import (
    CustomerProfile,
    ReturningCustomers,
    analyze_returning_customers,
    band_distribution,
    build_customer_profiles,
    frequency,
    frequency_band,
    recency,
    recency_band,
    returning_customers_pct,
    row_recency,
)
from .time_intelligence import (
    PeriodSales,
    calculate_period_sales,
    cumulative_sales,
    sales_last_year,
    yoy_sales_growth,
)

__all__ = [
    # Core aggregates
    "NO_VALUE",
    "CoreMeasures",
    "avg_discount_pct",
    "avg_profit_per_customer",
    "avg_sales_per_customer",
    "calculate_core_measures",
    "is_blank",
    "safe_divide",
    "top_product_sales",
    "total_customers",
    "total_orders",
    "total_profit",
    "total_sales",
    # Time intelligence
    "PeriodSales",
    "calculate_period_sales",
    "cumulative_sales",
    "sales_last_year",
    "yoy_sales_growth",
    # Customer segmentation
    "CustomerProfile",
    "ReturningCustomers",
    "analyze_returning_customers",
    "band_distribution",
    "build_customer_profiles",
    "frequency",
    "frequency_band",
    "recency",
    "recency_band",
    "returning_customers_pct",
    "row_recency",
]
