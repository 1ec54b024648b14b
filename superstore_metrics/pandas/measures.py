"""Pandas DataFrame adapters for measure results.

Blank measures become NaN so that downstream tables render them empty.
"""

from typing import Mapping, Sequence

import pandas as pd  # type: ignore

from superstore_metrics.measures.rfm import CustomerProfile
from superstore_metrics.measures.time_intelligence import PeriodSales
from ._utils import decimal_to_float, measure_to_float

PERIOD_COLUMNS = [
    "period",
    "period_start",
    "period_end",
    "total_sales",
    "cumulative_sales",
    "sales_ly",
    "yoy_sales_growth",
]

PROFILE_COLUMNS = [
    "customer_id",
    "frequency",
    "recency_days",
    "frequency_band",
    "recency_band",
    "last_order_date",
    "reference_date",
    "total_sales",
    "total_profit",
]


def _convert(value: object) -> object:
    if isinstance(value, str):
        return value
    return measure_to_float(value)


def measures_to_dataframe(measures: Mapping[str, object]) -> pd.DataFrame:
    """Convert a scalar measure mapping to a single-row DataFrame.

    Nested per-group tables (dict values) are skipped; convert them with
    :func:`group_table_to_dataframe`.

    Example:
        >>> measures_df = measures_to_dataframe(engine.evaluate(context))
        >>> print(measures_df["TotalSales"].iloc[0])
    """
    row = {
        name: _convert(value)
        for name, value in measures.items()
        if not isinstance(value, Mapping)
    }
    return pd.DataFrame([row])


def group_table_to_dataframe(
    table: Mapping[str, Mapping[str, object]], index_name: str = "group"
) -> pd.DataFrame:
    """Convert a per-group table (group key -> measure -> value) to a DataFrame.

    Example:
        >>> by_region = engine.evaluate_by_dimension(Dimension.REGION)
        >>> group_table_to_dataframe(by_region, index_name="region")
    """
    if not table:
        return pd.DataFrame(columns=[index_name])
    rows = [
        {index_name: key, **{name: _convert(value) for name, value in values.items()}}
        for key, values in table.items()
    ]
    return pd.DataFrame(rows)


def period_sales_to_dataframe(periods: Sequence[PeriodSales]) -> pd.DataFrame:
    """Convert per-period time-intelligence rows to a DataFrame.

    Example:
        >>> periods = calculate_period_sales(table, granularity=PeriodGranularity.QUARTER)
        >>> period_sales_to_dataframe(periods).plot(x="period", y="cumulative_sales")
    """
    if not periods:
        return pd.DataFrame(columns=PERIOD_COLUMNS)
    rows = [
        {
            "period": p.period,
            "period_start": p.period_start,
            "period_end": p.period_end,
            "total_sales": measure_to_float(p.total_sales),
            "cumulative_sales": measure_to_float(p.cumulative_sales),
            "sales_ly": measure_to_float(p.sales_ly),
            "yoy_sales_growth": measure_to_float(p.yoy_sales_growth),
        }
        for p in periods
    ]
    return pd.DataFrame(rows, columns=PERIOD_COLUMNS)


def customer_profiles_to_dataframe(profiles: Sequence[CustomerProfile]) -> pd.DataFrame:
    """Convert customer profiles to a DataFrame sorted by customer_id.

    Example:
        >>> profiles_df = customer_profiles_to_dataframe(build_customer_profiles(table))
        >>> profiles_df.groupby("recency_band").size()
    """
    if not profiles:
        return pd.DataFrame(columns=PROFILE_COLUMNS)

    rows = [
        {
            "customer_id": p.customer_id,
            "frequency": p.frequency,
            "recency_days": p.recency_days,
            "frequency_band": p.frequency_band,
            "recency_band": p.recency_band,
            "last_order_date": p.last_order_date,
            "reference_date": p.reference_date,
            "total_sales": decimal_to_float(p.total_sales),
            "total_profit": decimal_to_float(p.total_profit),
        }
        for p in profiles
    ]
    df = pd.DataFrame(rows, columns=PROFILE_COLUMNS)
    return df.sort_values("customer_id").reset_index(drop=True)
