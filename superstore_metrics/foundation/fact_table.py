"""Fact table with explicit filter contexts.

Every measure is evaluated against a :class:`FilterContext`, the explicit
set of slicer constraints (date range, region, category, ...) that a report
visual applies. The :class:`FactTable` offers two read accessors:

- the *filtered view* (:meth:`FactTable.filtered`), the rows satisfying a
  context, and
- the *full view* (:meth:`FactTable.all_rows`,
  :meth:`FactTable.rows_for_customer`), which ignores any context. Customer
  measures such as frequency and recency read from the full view.
"""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field, replace
from datetime import date
from typing import Iterable

from superstore_metrics.foundation.calendar import CalendarDay, build_calendar_for
from superstore_metrics.foundation.errors import InvalidRangeError, InvariantViolationError
from superstore_metrics.foundation.order_lines import OrderLine

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FilterContext:
    """Constraints under which a measure is evaluated.

    Empty member sets mean "no constraint" on that attribute. Date bounds
    are inclusive and ``None`` leaves that side open.

    Attributes
    ----------
    start_date, end_date:
        Inclusive order-date bounds.
    regions, categories, sub_categories, segments, customer_ids:
        Allowed attribute values.
    """

    start_date: date | None = None
    end_date: date | None = None
    regions: frozenset[str] = field(default_factory=frozenset)
    categories: frozenset[str] = field(default_factory=frozenset)
    sub_categories: frozenset[str] = field(default_factory=frozenset)
    segments: frozenset[str] = field(default_factory=frozenset)
    customer_ids: frozenset[str] = field(default_factory=frozenset)

    def __post_init__(self) -> None:
        """Validate bounds and normalise member collections to frozensets."""
        if (
            self.start_date is not None
            and self.end_date is not None
            and self.end_date < self.start_date
        ):
            raise InvalidRangeError(
                f"Filter end date precedes start date: start={self.start_date.isoformat()}, "
                f"end={self.end_date.isoformat()}"
            )
        for name in ("regions", "categories", "sub_categories", "segments", "customer_ids"):
            value = getattr(self, name)
            if isinstance(value, str):
                value = (value,)
            if not isinstance(value, frozenset):
                object.__setattr__(self, name, frozenset(value))

    def matches(self, line: OrderLine) -> bool:
        """Return True when ``line`` satisfies every constraint."""
        if self.start_date is not None and line.order_date < self.start_date:
            return False
        if self.end_date is not None and line.order_date > self.end_date:
            return False
        if self.regions and line.region not in self.regions:
            return False
        if self.categories and line.category not in self.categories:
            return False
        if self.sub_categories and line.sub_category not in self.sub_categories:
            return False
        if self.segments and line.segment not in self.segments:
            return False
        if self.customer_ids and line.customer_id not in self.customer_ids:
            return False
        return True

    @property
    def has_date_filter(self) -> bool:
        return self.start_date is not None or self.end_date is not None

    def with_date_range(self, start_date: date | None, end_date: date | None) -> "FilterContext":
        """Return a copy whose date bounds are replaced."""
        return replace(self, start_date=start_date, end_date=end_date)

    def without_date_filter(self) -> "FilterContext":
        """Return a copy with the date bounds removed."""
        return self.with_date_range(None, None)

    def restricted_to(self, **members: Iterable[str]) -> "FilterContext":
        """Return a copy with attribute member sets replaced.

        A single string is taken as one member.

        >>> FilterContext().restricted_to(regions={"West"}).regions
        frozenset({'West'})
        """
        return replace(self, **members)


#: Context with no constraints (the "all rows" context).
ALL_ROWS = FilterContext()


class FactTable:
    """Immutable order-line fact table.

    Parameters
    ----------
    lines:
        Order lines loaded for one refresh cycle. The table keeps its own
        tuple copy; callers cannot mutate it afterwards.
    """

    def __init__(self, lines: Iterable[OrderLine]) -> None:
        self._lines: tuple[OrderLine, ...] = tuple(lines)
        self._validate_line_identity()

        by_customer: dict[str, list[OrderLine]] = {}
        for line in self._lines:
            by_customer.setdefault(line.customer_id, []).append(line)
        self._by_customer = {
            customer_id: tuple(rows) for customer_id, rows in by_customer.items()
        }
        self._calendar: list[CalendarDay] | None = None

        logger.info(
            "Loaded fact table with %d order lines for %d customers",
            len(self._lines),
            len(self._by_customer),
        )

    def _validate_line_identity(self) -> None:
        keys = Counter(line.line_key for line in self._lines if line.line_key is not None)
        duplicates = sorted(key for key, count in keys.items() if count > 1)
        if duplicates:
            raise InvariantViolationError(
                f"Duplicate (order_id, row_id) line identities: {duplicates[:10]}"
            )

    def __len__(self) -> int:
        return len(self._lines)

    def __iter__(self):
        return iter(self._lines)

    # Full view -------------------------------------------------------------

    def all_rows(self) -> tuple[OrderLine, ...]:
        """Every order line, regardless of any filter context."""
        return self._lines

    def rows_for_customer(self, customer_id: str) -> tuple[OrderLine, ...]:
        """Every order line of ``customer_id``, regardless of any filter context."""
        return self._by_customer.get(customer_id, ())

    def customer_ids(self) -> list[str]:
        """All customer IDs in the table, sorted."""
        return sorted(self._by_customer)

    # Filtered view ---------------------------------------------------------

    def filtered(self, context: FilterContext) -> tuple[OrderLine, ...]:
        """Order lines satisfying ``context``."""
        if context == ALL_ROWS:
            return self._lines
        return tuple(line for line in self._lines if context.matches(line))

    # Calendar --------------------------------------------------------------

    def date_range(self) -> tuple[date, date] | None:
        """Minimum and maximum order date, or ``None`` for an empty table."""
        if not self._lines:
            return None
        dates = [line.order_date for line in self._lines]
        return min(dates), max(dates)

    def visible_range(
        self,
        context: FilterContext = ALL_ROWS,
        start: date | None = None,
        end: date | None = None,
    ) -> tuple[date, date] | None:
        """Intersect a period with the context's date bounds.

        Open period bounds fall back to the table's date range. Returns
        ``None`` for an empty table or when nothing of the period is visible,
        e.g. a context starting after the last order date.
        """
        bounds = self.date_range()
        if bounds is None:
            return None
        lo = start if start is not None else bounds[0]
        hi = end if end is not None else bounds[1]
        if context.start_date is not None:
            lo = max(lo, context.start_date)
        if context.end_date is not None:
            hi = min(hi, context.end_date)
        if hi < lo:
            return None
        return lo, hi

    @property
    def calendar(self) -> list[CalendarDay]:
        """Calendar dimension spanning the table's order dates."""
        if self._calendar is None:
            self._calendar = build_calendar_for(line.order_date for line in self._lines)
        return self._calendar

    @property
    def snapshot_date(self) -> date | None:
        """Latest order date in the table; the default reference date for recency."""
        bounds = self.date_range()
        return None if bounds is None else bounds[1]
