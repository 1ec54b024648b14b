"""Command line entry points for the Superstore metrics toolkit."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from datetime import date
from decimal import Decimal
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from superstore_metrics.engine import MetricsEngine
from superstore_metrics.foundation import FactTable, OrderLine, OrderLineContract
from superstore_metrics.foundation.calendar import PeriodGranularity
from superstore_metrics.measures.core import is_blank
from superstore_metrics.pandas import customer_profiles_to_dataframe, read_order_lines_csv
from superstore_metrics.query import MetricsQuery

logger = logging.getLogger(__name__)


MAX_INPUT_BYTES = 100 * 1024 * 1024  # 100 MiB cap to avoid accidental OOM


def _load_order_lines(
    path: Path, date_format: str | None = None, encoding: str = "utf-8"
) -> list[OrderLine]:
    resolved = path.resolve()
    size = resolved.stat().st_size
    if size > MAX_INPUT_BYTES:
        raise ValueError(
            f"Input file {resolved} is {size} bytes; exceeds limit of {MAX_INPUT_BYTES} bytes"
        )

    if resolved.suffix.lower() == ".csv":
        return read_order_lines_csv(
            resolved, date_format=date_format, encoding=encoding, drop_duplicates=True
        )

    with resolved.open("r", encoding=encoding) as fh:
        payload = json.load(fh)
    if not isinstance(payload, list):
        raise ValueError("Expected a list of order lines in the input file")
    return OrderLineContract(drop_duplicates=True).validate_records(payload)


def _json_default(value: Any) -> Any:
    if is_blank(value):
        return None
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, date):
        return value.isoformat()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def _add_query_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("input", type=Path, help="CSV or JSON file with order lines")
    parser.add_argument(
        "--query",
        type=Path,
        help="JSON file with a metrics query; command line filters override it",
    )
    parser.add_argument("--start", dest="start_date", help="First order date (YYYY-MM-DD)")
    parser.add_argument("--end", dest="end_date", help="Last order date (YYYY-MM-DD)")
    parser.add_argument("--region", dest="regions", action="append", help="Region to keep")
    parser.add_argument("--category", dest="categories", action="append", help="Category to keep")
    parser.add_argument(
        "--sub-category", dest="sub_categories", action="append", help="Sub-category to keep"
    )
    parser.add_argument("--segment", dest="segments", action="append", help="Segment to keep")
    parser.add_argument("--as-of", dest="as_of", help="Reference date for recency (YYYY-MM-DD)")
    parser.add_argument(
        "--date-format",
        help="strftime format of CSV date columns, e.g. %%m/%%d/%%Y (inferred by default)",
    )
    parser.add_argument("--encoding", default="utf-8", help="Input file encoding")
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging verbosity (default: WARNING)",
    )


def _build_query(args: argparse.Namespace) -> MetricsQuery:
    payload: dict[str, Any] = {}
    if args.query:
        with args.query.open("r", encoding="utf-8") as fh:
            payload = json.load(fh)
    for name in (
        "start_date",
        "end_date",
        "regions",
        "categories",
        "sub_categories",
        "segments",
        "as_of",
        "granularity",
    ):
        value = getattr(args, name, None)
        if value:
            payload[name] = value
    return MetricsQuery.model_validate(payload)


def _write_output(text: str, output: Path | None) -> None:
    if output is None:
        sys.stdout.write(text + "\n")
        return
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(text, encoding="utf-8")
    logger.info(f"Wrote {output}")


def compute_metrics_cli(argv: list[str] | None = None) -> int:
    """Evaluate the measure catalog for order lines and print JSON.

    The document holds the scalar measures, the per-period table
    ("ByPeriod") and customer counts per frequency and recency band.
    Blank measures are written as null.

    Args:
        argv: Command line arguments (defaults to sys.argv)

    Returns:
        Exit code (0 for success, non-zero for error)
    """
    parser = argparse.ArgumentParser(
        description="Compute Superstore sales, time-intelligence and customer measures"
    )
    _add_query_arguments(parser)
    parser.add_argument(
        "--granularity",
        choices=[item.value for item in PeriodGranularity],
        help="Granularity of the per-period table (default: month)",
    )
    parser.add_argument("--output", type=Path, help="Write JSON here instead of stdout")

    args = parser.parse_args(argv)
    logging.basicConfig(level=args.log_level, format="%(levelname)s %(name)s: %(message)s")

    try:
        query = _build_query(args)
    except ValidationError as exc:
        logger.error(f"Invalid metrics query: {exc}")
        return 2

    logger.info(f"Loading order lines from {args.input}")
    try:
        lines = _load_order_lines(
            args.input, date_format=args.date_format, encoding=args.encoding
        )
        if not lines:
            logger.error("No order lines found in input file")
            return 1

        engine = MetricsEngine(FactTable(lines))
        result = engine.compute(
            query.to_context(), granularity=query.granularity, as_of=query.as_of
        )
    except ValueError as exc:
        logger.error(f"Failed to compute metrics: {exc}")
        return 1

    _write_output(
        json.dumps(result, indent=2, sort_keys=True, default=_json_default, ensure_ascii=False),
        args.output,
    )
    return 0


def profile_customers_cli(argv: list[str] | None = None) -> int:
    """Export one frequency/recency profile per customer to CSV.

    Customers are selected by the filter context; their frequency and
    recency always cover their full order history.

    Args:
        argv: Command line arguments (defaults to sys.argv)

    Returns:
        Exit code (0 for success, non-zero for error)
    """
    parser = argparse.ArgumentParser(
        description="Export customer frequency/recency profiles to CSV"
    )
    _add_query_arguments(parser)
    parser.add_argument(
        "--output", type=Path, required=True, help="Path for output CSV file"
    )
    parser.add_argument(
        "--workers",
        type=int,
        help="Worker processes for large customer bases (default: CPU count)",
    )

    args = parser.parse_args(argv)
    logging.basicConfig(level=args.log_level, format="%(levelname)s %(name)s: %(message)s")

    try:
        query = _build_query(args)
    except ValidationError as exc:
        logger.error(f"Invalid metrics query: {exc}")
        return 2

    try:
        lines = _load_order_lines(
            args.input, date_format=args.date_format, encoding=args.encoding
        )
        if not lines:
            logger.error("No order lines found in input file")
            return 1

        engine = MetricsEngine(FactTable(lines))
        profiles = engine.evaluate_customers(
            query.to_context(), as_of=query.as_of, n_workers=args.workers
        )
    except ValueError as exc:
        logger.error(f"Failed to profile customers: {exc}")
        return 1
    logger.info(f"Profiled {len(profiles)} customers")

    args.output.parent.mkdir(parents=True, exist_ok=True)
    customer_profiles_to_dataframe(profiles).to_csv(args.output, index=False)
    return 0


def main() -> None:
    raise SystemExit(compute_metrics_cli())


def profiles_main() -> None:
    raise SystemExit(profile_customers_cli())


if __name__ == "__main__":  # pragma: no cover
    main()
