# src/main.py - v1
"""CLI entry point: run reports against a JSON dataset.

Usage:
    credreports --data dataset.json dashboard
    credreports --data dataset.json search --query smith --limit 10
    credreports --data dataset.json benchmark --rounds 5 --export ./perf

Reports are printed as JSON on stdout; logs go to stderr.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import TYPE_CHECKING, Any

from credreports.version import __version__

logger = logging.getLogger(__name__)

if TYPE_CHECKING:
    from credreports.api.context import AppContext
    from credreports.config.settings import Settings


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    from credreports.config.settings import ConfigurationError, Settings

    parser = _build_parser()
    args = parser.parse_args(argv)

    if not hasattr(args, "func"):
        parser.print_help()
        return 1

    try:
        settings = Settings()
    except (ConfigurationError, ValueError) as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        return 1

    _setup_logging(settings, args.verbose)

    try:
        return asyncio.run(args.func(args, settings))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130
    except Exception as exc:
        logger.error("Fatal error: %s", exc, exc_info=args.verbose)
        return 1


def _build_parser() -> argparse.ArgumentParser:
    """Build CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="credreports",
        description=f"credreports v{__version__} - Credential system reports",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true",
        help="Enable debug logging",
    )
    parser.add_argument(
        "--data", type=Path, default=None,
        help="JSON dataset file (default: empty store)",
    )

    subparsers = parser.add_subparsers(dest="command")

    for name, func, help_text in (
        ("dashboard", _cmd_dashboard, "Dashboard metrics"),
        ("quick-stats", _cmd_quick_stats, "Quick headline statistics"),
        ("reports", _cmd_reports, "Comprehensive reports"),
        ("analytics", _cmd_analytics, "Student analytics"),
        ("documents", _cmd_documents, "Document insights"),
    ):
        subparsers.add_parser(name, help=help_text).set_defaults(func=func)

    # --- search ---
    p_search = subparsers.add_parser("search", help="Search students")
    p_search.add_argument("--query", default=None, help="Name / registration / certificate text")
    p_search.add_argument(
        "--status", choices=["CLEARED", "UN_CLEARED"], default=None,
        help="Clearance status",
    )
    p_search.add_argument("--department-id", type=int, default=None)
    p_search.add_argument("--faculty-id", type=int, default=None)
    p_search.add_argument("--page", type=int, default=1, help="Page number (default: 1)")
    p_search.add_argument(
        "--limit", type=int, default=None,
        help="Page size (default: SEARCH_DEFAULT_LIMIT)",
    )
    p_search.set_defaults(func=_cmd_search)

    # --- benchmark ---
    p_bench = subparsers.add_parser(
        "benchmark", help="Cold vs warm timings for every report",
    )
    p_bench.add_argument(
        "--rounds", type=int, default=3,
        help="Cold/warm pairs per report (default: 3)",
    )
    p_bench.add_argument(
        "--expected-ms", type=float, default=200.0,
        help="Cold timing considered excellent (default: 200)",
    )
    p_bench.add_argument(
        "--export", type=Path, default=None,
        help="Directory for query metrics JSON/CSV and summary",
    )
    p_bench.set_defaults(func=_cmd_benchmark)

    return parser


def _build_app(args: argparse.Namespace, settings: Settings) -> AppContext:
    """Load the dataset and wire a fresh context."""
    from credreports.api.context import build_context
    from credreports.store.memory_store import InMemoryDataStore

    data_path: Path | None = args.data
    if data_path is None:
        logger.warning("No --data given, reporting over an empty store")
        store = InMemoryDataStore()
    elif not data_path.is_file():
        raise FileNotFoundError(f"Dataset not found: {data_path}")
    else:
        store = InMemoryDataStore.from_json(data_path)
    return build_context(store, settings)


def _emit(payload: Any) -> None:
    if hasattr(payload, "model_dump_json"):
        print(payload.model_dump_json(indent=2))
    else:
        print(json.dumps(payload, indent=2, default=str))


async def _cmd_dashboard(args: argparse.Namespace, settings: Settings) -> int:
    ctx = _build_app(args, settings)
    _emit(await ctx.reporting.get_dashboard_metrics())
    return 0


async def _cmd_quick_stats(args: argparse.Namespace, settings: Settings) -> int:
    ctx = _build_app(args, settings)
    _emit(await ctx.reporting.get_quick_stats())
    return 0


async def _cmd_reports(args: argparse.Namespace, settings: Settings) -> int:
    ctx = _build_app(args, settings)
    _emit(await ctx.reporting.get_reports())
    return 0


async def _cmd_analytics(args: argparse.Namespace, settings: Settings) -> int:
    ctx = _build_app(args, settings)
    _emit(await ctx.reporting.get_student_analytics())
    return 0


async def _cmd_documents(args: argparse.Namespace, settings: Settings) -> int:
    ctx = _build_app(args, settings)
    _emit(await ctx.reporting.get_document_insights())
    return 0


async def _cmd_search(args: argparse.Namespace, settings: Settings) -> int:
    """Execute a student search."""
    params = {
        "query": args.query,
        "status": args.status,
        "department_id": args.department_id,
        "faculty_id": args.faculty_id,
        "page": args.page,
        "limit": args.limit,
    }
    ctx = _build_app(args, settings)
    _emit(await ctx.reporting.search_students(
        {k: v for k, v in params.items() if v is not None}
    ))
    return 0


async def _cmd_benchmark(args: argparse.Namespace, settings: Settings) -> int:
    """Time every report cold and warm, then summarise monitored queries."""
    from credreports.monitoring.benchmark import run_benchmark
    from credreports.monitoring.exporter import (
        export_analytics_summary,
        export_metrics_csv,
        export_metrics_json,
    )

    ctx = _build_app(args, settings)
    results = await run_benchmark(
        ctx.reporting,
        rounds=args.rounds,
        expected_ms=args.expected_ms,
        critical_ms=settings.critical_query_threshold_ms,
    )
    analytics = ctx.monitor.get_performance_analytics()
    summary = export_analytics_summary(analytics)

    if args.export is not None:
        out: Path = args.export
        export_metrics_json(ctx.monitor.export_metrics(), out / "query_metrics.json")
        export_metrics_csv(ctx.monitor.metrics, out / "query_metrics.csv")
        (out / "summary.txt").write_text(summary + "\n", encoding="utf-8")
        logger.info("Exported benchmark metrics to %s", out)

    _emit({
        "results": [r.model_dump(mode="json") for r in results],
        "analytics": analytics.model_dump(mode="json"),
        "summary": summary,
    })
    return 0


def _setup_logging(settings: Settings, verbose: bool) -> None:
    """Configure logging for CLI usage."""
    from credreports.logging.logger import setup_logging

    setup_logging(
        level="DEBUG" if verbose else settings.log_level,
        log_format=settings.log_format,
        log_file=str(settings.log_file) if settings.log_file else None,
        rotation=settings.log_rotation,
        retention=settings.log_retention,
    )


if __name__ == "__main__":
    sys.exit(main())
