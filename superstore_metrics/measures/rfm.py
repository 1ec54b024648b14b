"""Customer segmentation by order frequency and recency.

Customers are banded along two dimensions:
- Frequency: how many order lines has the customer placed, ever?
- Recency: how many days have passed since the customer's latest order?

Both read every order line of the customer from the fact table's full
view, whatever filter context selects the customer. The returning-customer
share compares the customers active in a period with those active in the
same period one year earlier.
"""

from __future__ import annotations

import logging
import multiprocessing
import os
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Optional, Sequence

from superstore_metrics.foundation.calendar import shift_period
from superstore_metrics.foundation.fact_table import ALL_ROWS, FactTable, FilterContext
from superstore_metrics.foundation.order_lines import OrderLine
from superstore_metrics.measures.core import (
    NO_VALUE,
    RATIO_PRECISION,
    _NoValue,
    safe_divide,
)

logger = logging.getLogger(__name__)

# Upper bounds (inclusive) checked in ascending order; first match wins.
FREQUENCY_BAND_THRESHOLDS: tuple[tuple[int, str], ...] = (
    (2, "Low (1–2)"),
    (5, "Medium (3–5)"),
)
FREQUENCY_TOP_BAND = "High (6+)"

RECENCY_BAND_THRESHOLDS: tuple[tuple[int, str], ...] = (
    (30, "Hot (0–30)"),
    (90, "Warm (31–90)"),
)
RECENCY_TOP_BAND = "Cold (90+)"

FREQUENCY_BANDS = tuple(label for _, label in FREQUENCY_BAND_THRESHOLDS) + (FREQUENCY_TOP_BAND,)
RECENCY_BANDS = tuple(label for _, label in RECENCY_BAND_THRESHOLDS) + (RECENCY_TOP_BAND,)


def _band(value: int, thresholds: Sequence[tuple[int, str]], top_band: str) -> str:
    for upper, label in thresholds:
        if value <= upper:
            return label
    return top_band


def frequency_band(frequency: int) -> str:
    """Band a frequency: ``<= 2`` low, ``<= 5`` medium, otherwise high.

    >>> frequency_band(2)
    'Low (1–2)'
    >>> frequency_band(6)
    'High (6+)'
    """
    return _band(frequency, FREQUENCY_BAND_THRESHOLDS, FREQUENCY_TOP_BAND)


def recency_band(recency_days: int) -> str:
    """Band a recency: ``<= 30`` hot, ``<= 90`` warm, otherwise cold.

    >>> recency_band(31)
    'Warm (31–90)'
    """
    return _band(recency_days, RECENCY_BAND_THRESHOLDS, RECENCY_TOP_BAND)


def frequency(table: FactTable, customer_id: str) -> int:
    """Order lines placed by ``customer_id`` across the whole fact table."""
    return len(table.rows_for_customer(customer_id))


def last_order_date(table: FactTable, customer_id: str) -> date | None:
    """Latest order date of ``customer_id`` across the whole fact table."""
    rows = table.rows_for_customer(customer_id)
    if not rows:
        return None
    return max(line.order_date for line in rows)


def recency(
    table: FactTable, customer_id: str, as_of: date | None = None
) -> int | _NoValue:
    """Days from the customer's latest order to ``as_of``.

    ``as_of`` defaults to the fact table's snapshot date (its latest order
    date). Blank for a customer with no orders.
    """
    latest = last_order_date(table, customer_id)
    if latest is None:
        return NO_VALUE
    reference = as_of if as_of is not None else table.snapshot_date
    return (reference - latest).days


def row_recency(table: FactTable, line: OrderLine) -> int:
    """Days from ``line``'s order date to its customer's latest order.

    This is the per-row form: it only equals :func:`recency` for rows
    placed on the snapshot date.
    """
    latest = last_order_date(table, line.customer_id)
    return (latest - line.order_date).days


@dataclass(frozen=True)
class CustomerProfile:
    """Frequency and recency profile of a single customer.

    Attributes
    ----------
    customer_id:
        Unique customer identifier
    frequency:
        Total order lines placed by the customer
    recency_days:
        Days from the latest order to the reference date
    frequency_band, recency_band:
        Band labels derived from frequency and recency
    last_order_date:
        Date of the latest order
    reference_date:
        Date recency is measured against
    total_sales, total_profit:
        Lifetime sales and profit of the customer
    """

    customer_id: str
    frequency: int
    recency_days: int
    frequency_band: str
    recency_band: str
    last_order_date: date
    reference_date: date
    total_sales: Decimal
    total_profit: Decimal

    def __post_init__(self) -> None:
        """Validate customer profile."""
        if self.frequency <= 0:
            raise ValueError(
                f"Frequency must be positive: {self.frequency} (customer_id={self.customer_id})"
            )
        if self.recency_days < 0:
            raise ValueError(
                f"Recency cannot be negative: {self.recency_days} "
                f"(customer_id={self.customer_id}, reference_date={self.reference_date})"
            )
        if self.frequency_band != frequency_band(self.frequency):
            raise ValueError(
                f"Frequency band {self.frequency_band!r} does not match frequency "
                f"{self.frequency} (customer_id={self.customer_id})"
            )
        if self.recency_band != recency_band(self.recency_days):
            raise ValueError(
                f"Recency band {self.recency_band!r} does not match recency "
                f"{self.recency_days} (customer_id={self.customer_id})"
            )


def _profile_customers(
    customer_rows: dict[str, tuple[OrderLine, ...]], reference_date: date
) -> list[CustomerProfile]:
    """Build profiles for a chunk of customers.

    Called directly for serial runs and by multiprocessing workers.
    """
    profiles: list[CustomerProfile] = []
    for customer_id, rows in customer_rows.items():
        latest = max(line.order_date for line in rows)
        recency_days = (reference_date - latest).days
        profiles.append(
            CustomerProfile(
                customer_id=customer_id,
                frequency=len(rows),
                recency_days=recency_days,
                frequency_band=frequency_band(len(rows)),
                recency_band=recency_band(recency_days),
                last_order_date=latest,
                reference_date=reference_date,
                total_sales=sum((line.sales for line in rows), Decimal("0")),
                total_profit=sum((line.profit for line in rows), Decimal("0")),
            )
        )
    return profiles


def build_customer_profiles(
    table: FactTable,
    context: FilterContext = ALL_ROWS,
    as_of: date | None = None,
    parallel: bool = True,
    parallel_threshold: int = 1_000_000,
    n_workers: Optional[int] = None,
) -> list[CustomerProfile]:
    """Profile every customer present in the filter context.

    The context only selects *which* customers are profiled; frequency,
    recency and lifetime totals read each customer's full order history.

    **Parallel Processing**: above ``parallel_threshold`` customers the
    profiles are computed in a ``multiprocessing.Pool``, one chunk of
    customers per worker.

    Parameters
    ----------
    table:
        Fact table.
    context:
        Filter context selecting the customers.
    as_of:
        Reference date for recency. Defaults to the table's snapshot date.
    parallel:
        Enable parallel processing above ``parallel_threshold``.
    parallel_threshold:
        Customer count above which parallel processing is used.
    n_workers:
        Worker processes. Defaults to the CPU count.

    Returns
    -------
    list[CustomerProfile]
        One profile per customer, sorted by customer_id.

    Raises
    ------
    ValueError
        If ``as_of`` precedes a profiled customer's latest order.
    """
    customer_ids = sorted({line.customer_id for line in table.filtered(context)})
    if not customer_ids:
        return []

    reference_date = as_of if as_of is not None else table.snapshot_date
    customer_rows = {cid: table.rows_for_customer(cid) for cid in customer_ids}

    num_customers = len(customer_rows)
    if parallel and num_customers >= parallel_threshold:
        if n_workers is None:
            workers = os.cpu_count() or 1
        else:
            workers = max(1, n_workers)
        items = list(customer_rows.items())
        chunk_size = max(1, -(-num_customers // workers))
        chunks = [
            (dict(items[i : i + chunk_size]), reference_date)
            for i in range(0, num_customers, chunk_size)
        ]
        logger.info(
            "Profiling %d customers in %d chunks across %d workers",
            num_customers,
            len(chunks),
            workers,
        )
        with multiprocessing.Pool(processes=workers) as pool:
            chunk_results = pool.starmap(_profile_customers, chunks)
        profiles: list[CustomerProfile] = []
        for chunk_result in chunk_results:
            profiles.extend(chunk_result)
    else:
        profiles = _profile_customers(customer_rows, reference_date)

    profiles.sort(key=lambda profile: profile.customer_id)
    return profiles


def band_distribution(profiles: Sequence[CustomerProfile]) -> dict[str, dict[str, int]]:
    """Count customers per frequency band and per recency band.

    Every band appears in the result, with zero when no customer falls in it.
    """
    frequency_counts = {label: 0 for label in FREQUENCY_BANDS}
    recency_counts = {label: 0 for label in RECENCY_BANDS}
    for profile in profiles:
        frequency_counts[profile.frequency_band] += 1
        recency_counts[profile.recency_band] += 1
    return {"frequency": frequency_counts, "recency": recency_counts}


@dataclass(frozen=True)
class ReturningCustomers:
    """Customers active in a period compared with the same period a year earlier.

    Attributes
    ----------
    current:
        Customer IDs active in the current period
    prior:
        Customer IDs active in the same period one year earlier
    returning:
        Customer IDs active in both periods
    returning_pct:
        |returning| / |current|, blank when the current period has no customers
    """

    current: frozenset[str]
    prior: frozenset[str]
    returning: frozenset[str]
    returning_pct: Decimal | _NoValue

    def __post_init__(self) -> None:
        """Validate returning customer sets."""
        if self.returning != self.current & self.prior:
            raise ValueError(
                "Returning customers must be the intersection of current and prior customers"
            )
        if self.returning_pct is not NO_VALUE and not 0 <= self.returning_pct <= 1:
            raise ValueError(f"Returning customer share must be 0-1: {self.returning_pct}")


def analyze_returning_customers(
    table: FactTable,
    context: FilterContext = ALL_ROWS,
    start: date | None = None,
    end: date | None = None,
) -> ReturningCustomers:
    """Compare the customers of a period with those of the prior-year period.

    Parameters
    ----------
    table:
        Fact table.
    context:
        Filter context. Its non-date constraints apply to both periods.
    start, end:
        Inclusive period bounds, narrowed to the context's date bounds.
        An open bound falls back to the table's date range. A period with
        no visible dates has a blank share.

    Examples
    --------
    >>> from superstore_metrics.foundation import FactTable
    >>> analyze_returning_customers(FactTable([])).returning_pct
    NO_VALUE
    """
    visible = table.visible_range(context, start, end)
    if visible is None:
        empty: frozenset[str] = frozenset()
        return ReturningCustomers(empty, empty, empty, NO_VALUE)

    current_context = context.with_date_range(*visible)
    prior_context = context.with_date_range(*shift_period(*visible, -1))
    current = frozenset(line.customer_id for line in table.filtered(current_context))
    prior = frozenset(line.customer_id for line in table.filtered(prior_context))
    returning = current & prior

    return ReturningCustomers(
        current=current,
        prior=prior,
        returning=returning,
        returning_pct=safe_divide(len(returning), len(current), RATIO_PRECISION),
    )


def returning_customers_pct(
    table: FactTable,
    context: FilterContext = ALL_ROWS,
    start: date | None = None,
    end: date | None = None,
) -> Decimal | _NoValue:
    """Share of the period's customers who were also active a year earlier."""
    return analyze_returning_customers(table, context, start, end).returning_pct
