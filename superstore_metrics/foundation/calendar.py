"""Calendar dimension construction for time-intelligence measures.

The calendar is a continuous date table spanning the fact table's order
dates. Every order date joins to exactly one calendar day, and periods of
any supported granularity are derived from calendar days directly.

Quick Start
-----------
>>> from datetime import date
>>> from superstore_metrics.foundation.calendar import build_calendar
>>> days = build_calendar(date(2023, 1, 1), date(2023, 1, 3))
>>> [day.quarter for day in days]
[1, 1, 1]
"""

from __future__ import annotations

from calendar import monthrange
from dataclasses import dataclass
from datetime import date, timedelta
from enum import Enum
from typing import Iterable, Sequence

from superstore_metrics.foundation.errors import InvalidRangeError

# English month names; strftime("%B") and calendar.month_name follow the
# process locale.
MONTH_NAMES = (
    "January",
    "February",
    "March",
    "April",
    "May",
    "June",
    "July",
    "August",
    "September",
    "October",
    "November",
    "December",
)


class PeriodGranularity(str, Enum):
    """Supported calendar granularities for per-period measures."""

    DAY = "day"
    MONTH = "month"
    QUARTER = "quarter"
    YEAR = "year"


@dataclass(frozen=True)
class CalendarDay:
    """One row of the calendar dimension.

    Attributes
    ----------
    date:
        The calendar date (primary key).
    year:
        Calendar year.
    month_number:
        Month of year, 1-12.
    month_name:
        Full English month name.
    quarter:
        Quarter of year, 1-4.
    """

    date: date
    year: int
    month_number: int
    month_name: str
    quarter: int

    @classmethod
    def from_date(cls, day: date) -> "CalendarDay":
        return cls(
            date=day,
            year=day.year,
            month_number=day.month,
            month_name=MONTH_NAMES[day.month - 1],
            quarter=(day.month - 1) // 3 + 1,
        )

    @property
    def year_month(self) -> str:
        """Sortable month label, e.g. ``"2023-01"``."""
        return f"{self.year}-{self.month_number:02d}"

    @property
    def year_quarter(self) -> str:
        """Sortable quarter label, e.g. ``"2023-Q1"``."""
        return f"{self.year}-Q{self.quarter}"


def build_calendar(min_date: date, max_date: date) -> list[CalendarDay]:
    """Build a contiguous calendar from ``min_date`` to ``max_date`` inclusive.

    Raises
    ------
    InvalidRangeError
        If ``max_date`` is before ``min_date``.
    """
    if max_date < min_date:
        raise InvalidRangeError(
            f"Calendar end precedes start: min_date={min_date.isoformat()}, "
            f"max_date={max_date.isoformat()}"
        )
    span = (max_date - min_date).days
    return [CalendarDay.from_date(min_date + timedelta(days=offset)) for offset in range(span + 1)]


def build_calendar_for(order_dates: Iterable[date]) -> list[CalendarDay]:
    """Build the calendar covering every date in ``order_dates``.

    Returns an empty calendar when no dates are supplied.
    """
    dates = list(order_dates)
    if not dates:
        return []
    return build_calendar(min(dates), max(dates))


def period_bounds(day: date, granularity: PeriodGranularity) -> tuple[date, date]:
    """Return the first and last date (both inclusive) of the period holding ``day``."""

    if granularity is PeriodGranularity.DAY:
        return day, day
    if granularity is PeriodGranularity.MONTH:
        period_start = day.replace(day=1)
        next_month = (period_start.replace(day=28) + timedelta(days=4)).replace(day=1)
        return period_start, next_month - timedelta(days=1)
    if granularity is PeriodGranularity.QUARTER:
        start_month = ((day.month - 1) // 3) * 3 + 1
        period_start = day.replace(month=start_month, day=1)
        if start_month + 3 > 12:
            next_quarter = date(day.year + 1, 1, 1)
        else:
            next_quarter = period_start.replace(month=start_month + 3)
        return period_start, next_quarter - timedelta(days=1)
    if granularity is PeriodGranularity.YEAR:
        return date(day.year, 1, 1), date(day.year, 12, 31)
    raise ValueError(f"Unsupported granularity: {granularity}")  # pragma: no cover


def period_label(day: date, granularity: PeriodGranularity) -> str:
    """Return the sortable group key of the period holding ``day``."""

    calendar_day = CalendarDay.from_date(day)
    if granularity is PeriodGranularity.DAY:
        return day.isoformat()
    if granularity is PeriodGranularity.MONTH:
        return calendar_day.year_month
    if granularity is PeriodGranularity.QUARTER:
        return calendar_day.year_quarter
    return str(calendar_day.year)


def periods_in(
    calendar: Sequence[CalendarDay], granularity: PeriodGranularity
) -> list[tuple[str, date, date]]:
    """Group calendar days into periods.

    Returns ``(label, period_start, period_end)`` tuples in calendar order.
    Periods are clipped to the calendar, so the first and last period may
    be partial.
    """
    periods: dict[str, list[date]] = {}
    for day in calendar:
        bounds = periods.setdefault(period_label(day.date, granularity), [day.date, day.date])
        bounds[1] = day.date
    return [(label, bounds[0], bounds[1]) for label, bounds in periods.items()]


def shift_years(day: date, years: int) -> date:
    """Shift ``day`` by whole calendar years, mapping 29 February to 28 February."""
    try:
        return day.replace(year=day.year + years)
    except ValueError:
        return day.replace(year=day.year + years, day=28)


def shift_period(start: date, end: date, years: int) -> tuple[date, date]:
    """Shift an inclusive period by whole calendar years.

    A period ending on the last day of its month keeps ending on the last day
    of the shifted month, so February 2025 maps to 2024-02-01..2024-02-29.

    >>> shift_period(date(2025, 2, 1), date(2025, 2, 28), -1)
    (datetime.date(2024, 2, 1), datetime.date(2024, 2, 29))
    """
    shifted_end = shift_years(end, years)
    if end.day == monthrange(end.year, end.month)[1]:
        shifted_end = shifted_end.replace(
            day=monthrange(shifted_end.year, shifted_end.month)[1]
        )
    return shift_years(start, years), shifted_end
