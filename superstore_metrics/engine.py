"""Metrics engine: evaluates the measure catalog for a filter context.

The engine is the single entry point for a presentation layer. It holds an
immutable fact table and answers queries made of an explicit
:class:`~superstore_metrics.foundation.FilterContext`:

- :meth:`MetricsEngine.evaluate` returns scalar measures by name,
- :meth:`MetricsEngine.evaluate_by_period` and
  :meth:`MetricsEngine.evaluate_by_dimension` return per-group tables
  (group key -> measure name -> value),
- :meth:`MetricsEngine.evaluate_customers` returns customer profiles.

Values are ``Decimal``/``int``, a string for the top product, or
:data:`~superstore_metrics.measures.NO_VALUE` for blanks.
"""

from __future__ import annotations

import logging
from datetime import date
from enum import Enum
from typing import Iterable

from superstore_metrics.foundation.calendar import PeriodGranularity
from superstore_metrics.foundation.fact_table import ALL_ROWS, FactTable, FilterContext
from superstore_metrics.foundation.order_lines import OrderLine
from superstore_metrics.measures.core import NO_VALUE, calculate_core_measures
from superstore_metrics.measures.rfm import (
    CustomerProfile,
    analyze_returning_customers,
    band_distribution,
    build_customer_profiles,
)
from superstore_metrics.measures.time_intelligence import (
    calculate_period_sales,
    cumulative_sales,
    sales_last_year,
    yoy_sales_growth,
)

logger = logging.getLogger(__name__)


class Dimension(str, Enum):
    """Fact attributes a report can slice core measures by."""

    REGION = "region"
    CATEGORY = "category"
    SUB_CATEGORY = "sub_category"
    SEGMENT = "segment"

    @property
    def context_field(self) -> str:
        """FilterContext member set constrained by this dimension."""
        return {
            Dimension.REGION: "regions",
            Dimension.CATEGORY: "categories",
            Dimension.SUB_CATEGORY: "sub_categories",
            Dimension.SEGMENT: "segments",
        }[self]


class MetricsEngine:
    """Evaluate Superstore measures over an immutable fact table.

    Parameters
    ----------
    lines_or_table:
        A :class:`FactTable`, or order lines to build one from.

    Examples
    --------
    >>> engine = MetricsEngine([])
    >>> engine.evaluate()["TotalSales"]
    NO_VALUE
    """

    def __init__(self, lines_or_table: FactTable | Iterable[OrderLine]) -> None:
        if isinstance(lines_or_table, FactTable):
            self.table = lines_or_table
        else:
            self.table = FactTable(lines_or_table)

    def evaluate(self, context: FilterContext = ALL_ROWS) -> dict[str, object]:
        """Evaluate every scalar measure for ``context``.

        Time-intelligence and returning-customer measures treat the
        context's date bounds (or the whole calendar when unbounded) as
        the current period.
        """
        measures = calculate_core_measures(self.table.filtered(context)).as_dict()

        visible = self.table.visible_range(context)
        measures["CumulativeSales"] = (
            NO_VALUE if visible is None else cumulative_sales(self.table, visible[1], context)
        )
        measures["SalesLY"] = sales_last_year(self.table, context)
        measures["YoYSalesGrowth"] = yoy_sales_growth(self.table, context)
        measures["ReturningCustomersPct"] = analyze_returning_customers(
            self.table, context
        ).returning_pct
        return measures

    def evaluate_by_period(
        self,
        context: FilterContext = ALL_ROWS,
        granularity: PeriodGranularity = PeriodGranularity.MONTH,
    ) -> dict[str, dict[str, object]]:
        """Evaluate the time-intelligence measures per calendar period.

        Each period row also carries the period's returning-customer share.
        """
        table: dict[str, dict[str, object]] = {}
        for row in calculate_period_sales(self.table, context, granularity):
            values = row.as_dict()
            values["ReturningCustomersPct"] = analyze_returning_customers(
                self.table, context, row.period_start, row.period_end
            ).returning_pct
            table[row.period] = values
        logger.debug(
            "Evaluated %d %s periods", len(table), PeriodGranularity(granularity).value
        )
        return table

    def evaluate_by_dimension(
        self, dimension: Dimension, context: FilterContext = ALL_ROWS
    ) -> dict[str, dict[str, object]]:
        """Evaluate core measures for every member of ``dimension`` in context.

        Members already excluded by ``context`` do not appear.
        """
        dimension = Dimension(dimension)
        rows = self.table.filtered(context)
        members = sorted({getattr(line, dimension.value) for line in rows})
        table: dict[str, dict[str, object]] = {}
        for member in members:
            member_rows = [line for line in rows if getattr(line, dimension.value) == member]
            table[member] = calculate_core_measures(member_rows).as_dict()
        return table

    def evaluate_customers(
        self,
        context: FilterContext = ALL_ROWS,
        as_of: date | None = None,
        **profile_options,
    ) -> list[CustomerProfile]:
        """Profile the customers present in ``context``.

        Extra keyword arguments (``parallel``, ``parallel_threshold``,
        ``n_workers``) are passed to
        :func:`~superstore_metrics.measures.rfm.build_customer_profiles`.
        """
        return build_customer_profiles(self.table, context, as_of=as_of, **profile_options)

    def compute(
        self,
        context: FilterContext = ALL_ROWS,
        granularity: PeriodGranularity = PeriodGranularity.MONTH,
        as_of: date | None = None,
    ) -> dict[str, object]:
        """Evaluate the full catalog: scalars, the period table and band counts."""
        result = self.evaluate(context)
        result["ByPeriod"] = self.evaluate_by_period(context, granularity)
        distribution = band_distribution(self.evaluate_customers(context, as_of=as_of))
        result["FrequencyBands"] = distribution["frequency"]
        result["RecencyBands"] = distribution["recency"]
        return result
