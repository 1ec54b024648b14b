"""Validated metric queries for the command line and service callers."""

from __future__ import annotations

from datetime import date

from pydantic import BaseModel, Field, model_validator

from superstore_metrics.foundation.calendar import PeriodGranularity
from superstore_metrics.foundation.errors import InvalidRangeError
from superstore_metrics.foundation.fact_table import FilterContext


class MetricsQuery(BaseModel):
    """Request to evaluate the measure catalog under a filter context."""

    start_date: date | None = Field(
        default=None, description="Inclusive first order date of the current period"
    )
    end_date: date | None = Field(
        default=None, description="Inclusive last order date of the current period"
    )
    regions: list[str] = Field(default_factory=list, description="Regions to keep (all if empty)")
    categories: list[str] = Field(
        default_factory=list, description="Product categories to keep (all if empty)"
    )
    sub_categories: list[str] = Field(
        default_factory=list, description="Product sub-categories to keep (all if empty)"
    )
    segments: list[str] = Field(
        default_factory=list, description="Customer segments to keep (all if empty)"
    )
    granularity: PeriodGranularity = Field(
        default=PeriodGranularity.MONTH,
        description="Calendar granularity of the per-period table",
    )
    as_of: date | None = Field(
        default=None,
        description="Reference date for recency (defaults to the latest order date)",
    )

    @model_validator(mode="after")
    def _check_range(self) -> "MetricsQuery":
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise InvalidRangeError(
                f"end_date {self.end_date.isoformat()} precedes start_date "
                f"{self.start_date.isoformat()}"
            )
        return self

    def to_context(self) -> FilterContext:
        """Build the filter context this query describes."""
        return FilterContext(
            start_date=self.start_date,
            end_date=self.end_date,
            regions=frozenset(self.regions),
            categories=frozenset(self.categories),
            sub_categories=frozenset(self.sub_categories),
            segments=frozenset(self.segments),
        )
