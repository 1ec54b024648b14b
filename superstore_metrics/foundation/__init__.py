"""Foundational building blocks for the Superstore metrics layer.

This package exposes the order-line contract, the calendar dimension and
the fact table with its explicit filter contexts.
"""

from .calendar import (
    CalendarDay,
    PeriodGranularity,
    build_calendar,
    build_calendar_for,
    period_bounds,
    periods_in,
    shift_period,
    shift_years,
)
from .errors import InvalidRangeError, InvariantViolationError
from .fact_table import ALL_ROWS, FactTable, FilterContext
from .order_lines import SUPERSTORE_COLUMNS, OrderLine, OrderLineContract

__all__ = [
    "ALL_ROWS",
    "CalendarDay",
    "FactTable",
    "FilterContext",
    "InvalidRangeError",
    "InvariantViolationError",
    "OrderLine",
    "OrderLineContract",
    "PeriodGranularity",
    "SUPERSTORE_COLUMNS",
    "build_calendar",
    "build_calendar_for",
    "period_bounds",
    "periods_in",
    "shift_period",
    "shift_years",
]
