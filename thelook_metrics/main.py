"""
Command Line Entry Point

Usage:
    thelook-metrics churn --start 2019-01-01 --end 2022-12-31 --window-days 90
    thelook-metrics financials --output reports/financials.csv
    thelook-metrics --database-url sqlite:///thelook.db customer-mix
    thelook-metrics generate --output data/order_items.parquet --users 5000

Defaults for dates, window and source come from settings (REPORT_*,
SOURCE_* and POSTGRES_* environment variables or .env).
"""

import argparse
import sys
from datetime import date
from pathlib import Path
from typing import List, Optional

import polars as pl
import structlog

from thelook_metrics.config import Settings, get_settings
from thelook_metrics.config.logging import configure_logging
from thelook_metrics.data.generators import generate_order_items, write_order_items
from thelook_metrics.data.sources import FileSource, OrderItemSource, SqlSource, create_source
from thelook_metrics.database.connection import create_source_engine
from thelook_metrics.exceptions import MetricsError
from thelook_metrics.metrics.runner import MetricResult, MetricsRunner, MetricType

logger = structlog.get_logger(__name__)


def _iso_date(value: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid date (expected YYYY-MM-DD): {value!r}") from None


def build_parser(settings: Settings) -> argparse.ArgumentParser:
    """Build the CLI parser with defaults from settings"""
    report = settings.report

    parser = argparse.ArgumentParser(
        prog="thelook-metrics",
        description="Business metrics over thelook e-commerce order items",
    )
    parser.add_argument("--log-level", default=None, help="Override LOG_LEVEL")
    parser.add_argument("--log-format", choices=["json", "text"], default=None, help="Override LOG_FORMAT")

    source = parser.add_mutually_exclusive_group()
    source.add_argument("--source", dest="source_path", help="CSV or Parquet file with order items")
    source.add_argument("--database-url", help="SQLAlchemy URL of a database with an order_items table")
    parser.add_argument(
        "--no-validate",
        action="store_true",
        help="Skip data quality checks on fetched order items",
    )

    sub = parser.add_subparsers(dest="command", required=True)

    def add_output(p: argparse.ArgumentParser) -> None:
        p.add_argument("--output", type=Path, help="Write the result to a .csv or .parquet file")

    for command, help_text in (
        (MetricType.FINANCIALS.value, "Monthly revenue, orders, units, AOV and MoM growth"),
        (MetricType.CUSTOMER_MIX.value, "Monthly new vs returning customers and revenue"),
    ):
        p = sub.add_parser(command, help=help_text)
        p.add_argument("--start", type=_iso_date, default=report.start_date)
        p.add_argument("--end", type=_iso_date, default=report.end_date)
        add_output(p)

    churn = sub.add_parser(MetricType.CHURN.value, help="Monthly churn over a follow-up window")
    churn.add_argument("--start", type=_iso_date, default=report.start_date)
    churn.add_argument("--end", type=_iso_date, default=report.end_date)
    churn.add_argument("--window-days", type=int, default=report.churn_window_days)
    add_output(churn)

    impact = sub.add_parser(MetricType.PRODUCT_IMPACT.value, help="Pre/post comparison around a launch date")
    impact.add_argument("--pre-start", type=_iso_date, default=report.pre_start)
    impact.add_argument("--post-end", type=_iso_date, default=report.post_end)
    impact.add_argument("--launch-date", type=_iso_date, default=report.launch_date)
    impact.add_argument("--threshold", type=float, default=report.high_value_threshold)
    add_output(impact)

    generate = sub.add_parser("generate", help="Write a synthetic order items file")
    generate.add_argument("--output", type=Path, required=True)
    generate.add_argument("--users", type=int, default=1000)
    generate.add_argument("--start", type=_iso_date, default=report.start_date)
    generate.add_argument("--end", type=_iso_date, default=report.end_date)
    generate.add_argument("--seed", type=int, default=42)

    return parser


def resolve_source(args: argparse.Namespace, settings: Settings) -> OrderItemSource:
    """Source from CLI flags, falling back to settings"""
    if args.source_path:
        return FileSource(args.source_path)
    if args.database_url:
        return SqlSource(create_source_engine(args.database_url), table_name=settings.source.table_name)
    return create_source(settings)


def write_result(df: pl.DataFrame, output: Optional[Path]) -> None:
    """Print the result table or write it to a file"""
    if output is None:
        with pl.Config(tbl_rows=-1, tbl_cols=-1):
            print(df)
        return

    output.parent.mkdir(parents=True, exist_ok=True)
    if output.suffix.lower() == ".parquet":
        df.write_parquet(output)
    else:
        df.write_csv(output)
    logger.info("Result written", path=str(output), rows=df.height)


def run_command(args: argparse.Namespace, settings: Settings) -> int:
    if args.command == "generate":
        df = generate_order_items(
            n_users=args.users,
            start_date=args.start,
            end_date=args.end,
            seed=args.seed,
        )
        write_order_items(df, args.output)
        return 0

    runner = MetricsRunner(resolve_source(args, settings), validate=not args.no_validate)
    command = MetricType(args.command)

    result: MetricResult
    if command == MetricType.FINANCIALS:
        result = runner.monthly_financials(args.start, args.end)
    elif command == MetricType.CUSTOMER_MIX:
        result = runner.customer_mix(args.start, args.end)
    elif command == MetricType.CHURN:
        result = runner.churn(args.start, args.end, args.window_days)
    else:
        result = runner.product_impact(args.pre_start, args.post_end, args.launch_date, args.threshold)

    write_result(result.data, args.output)
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    settings = get_settings()
    args = build_parser(settings).parse_args(argv)
    configure_logging(args.log_level, args.log_format)

    try:
        return run_command(args, settings)
    except MetricsError as e:
        logger.error("Command failed", command=args.command, error=str(e), error_type=type(e).__name__)
        return 1


if __name__ == "__main__":
    sys.exit(main())
