"""Pandas DataFrame adapters for order lines and the calendar."""

from pathlib import Path
from typing import List, Optional, Sequence

import pandas as pd  # type: ignore

from superstore_metrics.foundation.calendar import CalendarDay
from superstore_metrics.foundation.order_lines import (
    SUPERSTORE_COLUMNS,
    OrderLine,
    OrderLineContract,
)
from ._utils import decimal_to_float

ORDER_LINE_COLUMNS = [
    "row_id",
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
    "product_id",
    "product_name",
    "segment",
    "customer_name",
    "ship_mode",
]


def dataframe_to_order_lines(
    lines_df: pd.DataFrame,
    date_format: Optional[str] = None,
    drop_duplicates: bool = False,
) -> List[OrderLine]:
    """Convert a pandas DataFrame to validated order lines.

    Args:
        lines_df: DataFrame with Superstore headers ("Order ID", "Order Date",
            "Sub-Category", ...) or snake_case OrderLine column names
        date_format: Optional strftime format of the date columns (e.g.
            "%m/%d/%Y"); inferred when omitted
        drop_duplicates: Drop exact duplicate rows instead of keeping them

    Returns:
        List of OrderLine objects in DataFrame order

    Raises:
        ValueError: If DataFrame missing required columns or has null values

    Example:
        >>> df = pd.read_csv("superstore.csv", encoding="latin-1")
        >>> lines = dataframe_to_order_lines(df, date_format="%m/%d/%Y")
    """
    renamed = lines_df.rename(columns=SUPERSTORE_COLUMNS)

    required_cols = list(OrderLineContract.REQUIRED_FIELDS)
    missing_cols = set(required_cols) - set(renamed.columns)
    if missing_cols:
        raise ValueError(f"DataFrame missing required columns: {missing_cols}")

    if renamed.empty:
        return []

    # Validate for null/NaN values
    null_cols = renamed[required_cols].isnull().any()
    if null_cols.any():
        null_col_names = null_cols[null_cols].index.tolist()
        raise ValueError(
            f"Null/NaN values found in columns: {null_col_names}. "
            "Order lines require complete data."
        )

    renamed = renamed.copy()
    for column in ("order_date", "ship_date"):
        renamed[column] = pd.to_datetime(renamed[column], format=date_format).dt.date

    optional_cols = [column for column in ORDER_LINE_COLUMNS if column in renamed.columns]
    records = renamed[optional_cols].astype(object).where(renamed[optional_cols].notnull(), None)

    contract = OrderLineContract(drop_duplicates=drop_duplicates)
    return contract.validate_records(records.to_dict("records"))


def read_order_lines_csv(
    path: Path,
    date_format: Optional[str] = None,
    encoding: str = "utf-8",
    drop_duplicates: bool = False,
) -> List[OrderLine]:
    """Read a Superstore CSV extract into order lines.

    Example:
        >>> lines = read_order_lines_csv(Path("superstore.csv"), encoding="latin-1")
    """
    lines_df = pd.read_csv(path, encoding=encoding, dtype={"Order ID": str, "Customer ID": str})
    return dataframe_to_order_lines(
        lines_df, date_format=date_format, drop_duplicates=drop_duplicates
    )


def order_lines_to_dataframe(lines: Sequence[OrderLine]) -> pd.DataFrame:
    """Convert order lines to a DataFrame with snake_case columns.

    Money and discount columns are converted from Decimal to float.
    """
    if not lines:
        return pd.DataFrame(columns=ORDER_LINE_COLUMNS)

    rows = [
        {
            "row_id": line.row_id,
            "order_id": line.order_id,
            "customer_id": line.customer_id,
            "order_date": line.order_date,
            "ship_date": line.ship_date,
            "category": line.category,
            "sub_category": line.sub_category,
            "region": line.region,
            "sales": decimal_to_float(line.sales),
            "profit": decimal_to_float(line.profit),
            "quantity": line.quantity,
            "discount": decimal_to_float(line.discount),
            "product_id": line.product_id,
            "product_name": line.product_name,
            "segment": line.segment,
            "customer_name": line.customer_name,
            "ship_mode": line.ship_mode,
        }
        for line in lines
    ]
    return pd.DataFrame(rows, columns=ORDER_LINE_COLUMNS)


def calendar_to_dataframe(calendar: Sequence[CalendarDay]) -> pd.DataFrame:
    """Convert the calendar dimension to a DataFrame, one row per date.

    Example:
        >>> calendar_df = calendar_to_dataframe(build_calendar(date(2023, 1, 1), date(2023, 12, 31)))
        >>> calendar_df.groupby("quarter").size()
    """
    columns = ["date", "year", "month_number", "month_name", "quarter"]
    if not calendar:
        return pd.DataFrame(columns=columns)
    return pd.DataFrame(
        [
            {
                "date": day.date,
                "year": day.year,
                "month_number": day.month_number,
                "month_name": day.month_name,
                "quarter": day.quarter,
            }
            for day in calendar
        ],
        columns=columns,
    )
