"""Command-line interface for margin analytics."""
from __future__ import annotations

import argparse
import asyncio
import logging
import sys

from .analytics.query import SORT_FIELDS
from .analytics.windows import TimeRange
from .config import load_config, with_data_source
from .logging_setup import configure_logging
from .providers import DataSourceError, build_provider, export_snapshot
from .services import AnalyticsService
from .services import report

logger = logging.getLogger(__name__)

_TIME_RANGES = [r.value for r in TimeRange]


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse CLI parser."""
    parser = argparse.ArgumentParser(
        prog="margin-analytics",
        description="Event-sourced margin position and pool analytics",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to config.yaml (default: config.yaml in project root)",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: INFO)",
    )
    parser.add_argument(
        "--source",
        choices=["api", "static"],
        default=None,
        help="Override the configured data source",
    )

    sub = parser.add_subparsers(dest="command")

    summary = sub.add_parser("summary", help="Windowed KPIs and pool table")
    summary.add_argument("--range", dest="time_range", choices=_TIME_RANGES, default=None)

    sub.add_parser("pools", help="Per-pool outstanding debt and risk")

    borrowers = sub.add_parser("borrowers", help="Search and sort borrowers")
    borrowers.add_argument("--search", default="")
    borrowers.add_argument(
        "--sort", default="total_outstanding_debt", choices=sorted(SORT_FIELDS)
    )
    borrowers.add_argument("--asc", action="store_true", help="Sort ascending")
    borrowers.add_argument("--limit", type=int, default=None)

    borrower = sub.add_parser("borrower", help="One borrower's timeline and loan durations")
    borrower.add_argument("account_id")

    liqs = sub.add_parser("liquidations", help="Liquidation feed")
    liqs.add_argument("--pool", default="all")
    liqs.add_argument("--range", dest="time_range", choices=_TIME_RANGES, default="all")
    liqs.add_argument("--min-default", type=float, default=0.0)
    liqs.add_argument("--max-default", type=float, default=100.0)
    liqs.add_argument("--min-amount", type=int, default=0)

    watch = sub.add_parser("watch", help="Refresh the summary continuously")
    watch.add_argument(
        "interval",
        nargs="?",
        type=int,
        default=None,
        help="Refresh interval in seconds (overrides config)",
    )
    watch.add_argument("--range", dest="time_range", choices=_TIME_RANGES, default=None)

    export = sub.add_parser("export", help="Export API data to a static snapshot")
    export.add_argument("output", help="Output JSON path")

    risk = sub.add_parser("risk", help="Illustrative health factor vs price curve")
    risk.add_argument("symbol", help="Asset symbol with a configured Pyth feed, e.g. SUI")
    risk.add_argument("--health-factor", type=float, required=True)

    return parser


async def _run(args: argparse.Namespace) -> None:
    """Execute the selected command."""
    configure_logging(args.log_level)
    config = load_config(args.config)
    if args.source:
        config = with_data_source(config, type=args.source)

    if args.command == "export":
        source = with_data_source(config, type="api").data_source
        counts = await export_snapshot(build_provider(source), args.output, source.api_url)
        print(
            f"Exported {counts['managers']} managers, {counts['loans']} loans, "
            f"{counts['liquidations']} liquidations to {args.output}"
        )
        return

    service = AnalyticsService(config)

    if args.command == "summary":
        print(await service.render_summary(args.time_range))
    elif args.command == "pools":
        print(report.format_pools(await service.pools()))
    elif args.command == "borrowers":
        rows = await service.borrowers(
            args.search, args.sort, "asc" if args.asc else "desc"
        )
        if args.limit is not None:
            rows = rows[: args.limit]
        print(report.format_borrowers(rows))
    elif args.command == "borrower":
        detail = await service.borrower(args.account_id)
        if detail is None:
            print(f"No account '{args.account_id}'")
            sys.exit(1)
        print(report.format_borrower(detail.position, detail.cycles, detail.summary))
    elif args.command == "liquidations":
        feed, stats = await service.liquidations(
            pool=args.pool,
            default_ratio_min=args.min_default,
            default_ratio_max=args.max_default,
            min_amount=args.min_amount,
            time_range=args.time_range,
        )
        print(report.format_liquidations(feed, stats))
    elif args.command == "watch":
        await service.run_continuous(args.interval, args.time_range)
    elif args.command == "risk":
        price, points = await service.risk_curve(args.symbol, args.health_factor)
        print(f"{args.symbol} oracle price: {price:.4f}")
        print(
            report.format_position_health(
                args.health_factor, config.risk.liquidation_risk_ratio
            )
        )
        print()
        print(report.format_risk_curve(args.symbol, points))
    else:
        build_parser().print_help()
        sys.exit(1)


def main() -> None:
    """Entry point."""
    parser = build_parser()
    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    try:
        asyncio.run(_run(args))
    except DataSourceError as e:
        logger.error("%s", e)
        sys.exit(2)
