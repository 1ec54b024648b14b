"""Shared utilities for pandas conversion operations."""

from decimal import Decimal

import numpy as np

from superstore_metrics.measures.core import is_blank


def decimal_to_float(value: Decimal) -> float:
    """Convert Decimal to float for pandas compatibility."""
    return float(value)


def measure_to_float(value: object) -> float:
    """Convert a measure value to float, mapping the blank sentinel to NaN.

    Example:
        >>> measure_to_float(Decimal("1.50"))
        1.5
    """
    if is_blank(value) or value is None:
        return np.nan
    return float(value)

