# src/monitoring/exporter.py - v1
"""Monitor export to JSON, CSV, and summary text."""

from __future__ import annotations

import csv
import json
import logging
from pathlib import Path

from credreports.monitoring.models import MetricsExport, PerformanceAnalytics, QueryMetric

logger = logging.getLogger(__name__)

_CSV_FIELDS = [
    "timestamp", "query", "model", "operation",
    "duration_ms", "status", "error", "params",
]


def export_metrics_json(export: MetricsExport, path: Path) -> None:
    """Export the full monitor dump as formatted JSON.

    Args:
        export: Snapshot from PerformanceMonitor.export_metrics().
        path: Output file path.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(export.model_dump_json(indent=2), encoding="utf-8")
    logger.debug("Exported %d metrics to %s", len(export.query_metrics), path)


def export_metrics_csv(metrics: list[QueryMetric], path: Path) -> None:
    """Export raw query metrics as CSV for spreadsheet/BI analysis.

    Args:
        metrics: Recorded query metrics.
        path: Output file path.
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    with path.open("w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=_CSV_FIELDS)
        writer.writeheader()
        for metric in metrics:
            row = metric.model_dump(mode="json")
            row["params"] = json.dumps(row["params"], sort_keys=True)
            writer.writerow(row)
    logger.debug("Exported %d metrics to %s", len(metrics), path)


def export_analytics_summary(analytics: PerformanceAnalytics) -> str:
    """Generate a human-readable summary of performance analytics.

    Args:
        analytics: Output of PerformanceMonitor.get_performance_analytics().

    Returns:
        Formatted summary string.
    """
    lines: list[str] = [
        "=== Query Performance Summary ===",
        f"Queries analysed:  {analytics.total_queries}",
        f"Average time:      {analytics.average_query_time:.2f} ms",
        f"Slow queries:      {analytics.slow_query_count} "
        f"({analytics.slow_query_percentage}%)",
    ]

    if analytics.slowest_query is not None:
        lines.append(
            f"Slowest:           {analytics.slowest_query.query} "
            f"({analytics.slowest_query.duration_ms:.2f} ms)"
        )

    if analytics.model_breakdown:
        lines.append("")
        lines.append("--- By model ---")
        for model, stats in sorted(
            analytics.model_breakdown.items(),
            key=lambda kv: kv[1].total_time,
            reverse=True,
        ):
            lines.append(
                f"  {model:<14s} {stats.count:>5d} calls  "
                f"{stats.total_time:>10.2f} ms total  {stats.avg_time:>8.2f} ms avg"
            )

    if analytics.recent_slow_queries:
        lines.append("")
        lines.append("--- Recent slow queries ---")
        for alert in analytics.recent_slow_queries:
            lines.append(
                f"  {alert.query} {alert.duration_ms:.0f} ms: {alert.recommendation}"
            )

    if analytics.recommendations:
        lines.append("")
        lines.append("--- Recommendations ---")
        for rec in analytics.recommendations:
            lines.append(f"  * {rec}")

    return "\n".join(lines)
