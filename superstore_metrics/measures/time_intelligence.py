"""Time-intelligence measures: running totals and year-over-year comparisons.

These measures are context sensitive: they are evaluated per calendar
period (day, month, quarter or year) of a report context rather than once
globally. The dates *visible* to a period are the period's own dates
intersected with the context's date bounds.

- Cumulative sales at date D sum every calendar day up to D. The context's
  date bounds are lifted for the running total; its other constraints
  (region, category, ...) still apply.
- Sales last year shift the visible dates back exactly one calendar year
  and replace the context's date bounds with the shifted range. A period
  ending on a month end keeps the prior-year month end (29 February included).
- Year-over-year growth divides the difference by last year's sales with
  safe-divide semantics.
"""

from __future__ import annotations

from bisect import bisect_left, bisect_right
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from itertools import accumulate
from typing import Sequence

from superstore_metrics.foundation.calendar import (
    PeriodGranularity,
    build_calendar,
    periods_in,
    shift_period,
)
from superstore_metrics.foundation.errors import InvalidRangeError
from superstore_metrics.foundation.fact_table import ALL_ROWS, FactTable, FilterContext
from superstore_metrics.foundation.order_lines import OrderLine
from superstore_metrics.measures.core import (
    NO_VALUE,
    RATIO_PRECISION,
    _NoValue,
    is_blank,
    safe_divide,
)


class DailySalesSeries:
    """Sales per order date for a set of rows, with range and running sums.

    Only dates that carry at least one order line are stored, so a range
    containing no such date is blank rather than zero.
    """

    def __init__(self, rows: Sequence[OrderLine]) -> None:
        daily: dict[date, Decimal] = {}
        for line in rows:
            daily[line.order_date] = daily.get(line.order_date, Decimal("0")) + line.sales
        self._dates = sorted(daily)
        self._daily = [daily[day] for day in self._dates]
        self._running = list(accumulate(self._daily))

    def _prefix(self, as_of: date) -> int:
        return bisect_right(self._dates, as_of)

    def total(self, start: date, end: date) -> Decimal | _NoValue:
        """Sales over ``[start, end]``; blank when no order falls in the range."""
        if end < start:
            raise InvalidRangeError(
                f"Period end precedes start: start={start.isoformat()}, end={end.isoformat()}"
            )
        lo = bisect_left(self._dates, start)
        hi = bisect_right(self._dates, end)
        if hi <= lo:
            return NO_VALUE
        before = self._running[lo - 1] if lo > 0 else Decimal("0")
        return self._running[hi - 1] - before

    def running_total(self, as_of: date) -> Decimal | _NoValue:
        """Sales on every date up to and including ``as_of``."""
        hi = self._prefix(as_of)
        if hi == 0:
            return NO_VALUE
        return self._running[hi - 1]


def _undated_series(table: FactTable, context: FilterContext) -> DailySalesSeries:
    return DailySalesSeries(table.filtered(context.without_date_filter()))


def cumulative_sales(
    table: FactTable, as_of: date, context: FilterContext = ALL_ROWS
) -> Decimal | _NoValue:
    """Running total of sales on every calendar day up to ``as_of``.

    The context's date bounds are lifted; its other constraints apply.
    Blank when no order line precedes ``as_of``.
    """
    return _undated_series(table, context).running_total(as_of)


def sales_last_year(
    table: FactTable,
    context: FilterContext = ALL_ROWS,
    start: date | None = None,
    end: date | None = None,
) -> Decimal | _NoValue:
    """Sales over the visible period shifted back one calendar year.

    Parameters
    ----------
    table:
        Fact table.
    context:
        Filter context; its date bounds narrow the visible period.
    start, end:
        Inclusive period bounds (e.g. a quarter). Default to the context's
        date bounds, then to the table's full date range.

    Returns
    -------
    Decimal or NO_VALUE
        Blank when the prior-year period has no order lines.
    """
    visible = table.visible_range(context, start, end)
    if visible is None:
        return NO_VALUE
    return _undated_series(table, context).total(*shift_period(*visible, -1))


def yoy_growth(current: Decimal | _NoValue, last_year: Decimal | _NoValue) -> Decimal | _NoValue:
    """``(current - last_year) / last_year``; blank when last year is blank or zero."""
    if is_blank(last_year):
        return NO_VALUE
    current_value = Decimal("0") if is_blank(current) else current
    return safe_divide(current_value - last_year, last_year, RATIO_PRECISION)


def yoy_sales_growth(
    table: FactTable,
    context: FilterContext = ALL_ROWS,
    start: date | None = None,
    end: date | None = None,
) -> Decimal | _NoValue:
    """Year-over-year sales growth of the visible period."""
    visible = table.visible_range(context, start, end)
    if visible is None:
        return NO_VALUE
    series = _undated_series(table, context)
    current = series.total(*visible)
    last_year = series.total(*shift_period(*visible, -1))
    return yoy_growth(current, last_year)


@dataclass(frozen=True)
class PeriodSales:
    """Time-intelligence measures for one calendar period.

    Attributes
    ----------
    period:
        Sortable period label ("2023-01", "2023-Q1", "2023" or an ISO date).
    period_start, period_end:
        Inclusive visible dates of the period.
    total_sales:
        Sales within the period.
    cumulative_sales:
        Running total of sales up to ``period_end``.
    sales_ly:
        Sales over the same dates one year earlier.
    yoy_sales_growth:
        (total_sales - sales_ly) / sales_ly.
    """

    period: str
    period_start: date
    period_end: date
    total_sales: Decimal | _NoValue
    cumulative_sales: Decimal | _NoValue
    sales_ly: Decimal | _NoValue
    yoy_sales_growth: Decimal | _NoValue

    def __post_init__(self) -> None:
        """Validate period bounds."""
        if self.period_end < self.period_start:
            raise InvalidRangeError(
                f"Period end precedes start: {self.period} "
                f"({self.period_start.isoformat()} - {self.period_end.isoformat()})"
            )

    def as_dict(self) -> dict[str, object]:
        return {
            "TotalSales": self.total_sales,
            "CumulativeSales": self.cumulative_sales,
            "SalesLY": self.sales_ly,
            "YoYSalesGrowth": self.yoy_sales_growth,
        }


def calculate_period_sales(
    table: FactTable,
    context: FilterContext = ALL_ROWS,
    granularity: PeriodGranularity = PeriodGranularity.MONTH,
) -> list[PeriodSales]:
    """Evaluate the time-intelligence measures for every calendar period.

    Periods come from the table's calendar, clipped to the context's date
    bounds. Returns an empty list for an empty table or when the context's
    date bounds miss the calendar entirely.

    Examples
    --------
    >>> from superstore_metrics.foundation import FactTable
    >>> calculate_period_sales(FactTable([]))
    []
    """
    visible = table.visible_range(context)
    if visible is None:
        return []

    series = _undated_series(table, context)
    rows: list[PeriodSales] = []
    for label, period_start, period_end in periods_in(build_calendar(*visible), granularity):
        current = series.total(period_start, period_end)
        last_year = series.total(*shift_period(period_start, period_end, -1))
        rows.append(
            PeriodSales(
                period=label,
                period_start=period_start,
                period_end=period_end,
                total_sales=current,
                cumulative_sales=series.running_total(period_end),
                sales_ly=last_year,
                yoy_sales_growth=yoy_growth(current, last_year),
            )
        )
    return rows
