# src/monitoring/benchmark.py - v1
"""Cold vs warm report timings.

Each round clears the cache, times one cold (computed) call and one warm
(cached) call per report. Averages are classified against an expected and a
critical threshold: excellent <= expected, good <= 1.5 x expected,
slow <= critical, critical otherwise.
"""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Literal

from pydantic import BaseModel

if TYPE_CHECKING:
    from credreports.reporting.reporting_service import ReportingService

logger = logging.getLogger(__name__)

BenchmarkStatus = Literal["excellent", "good", "slow", "critical"]


class BenchmarkResult(BaseModel):
    """Timing summary for one report."""

    report: str
    rounds: int
    cold_ms: float
    warm_ms: float
    speedup: float | None = None
    status: BenchmarkStatus


def classify_duration(
    duration_ms: float, expected_ms: float, critical_ms: float
) -> BenchmarkStatus:
    if duration_ms <= expected_ms:
        return "excellent"
    if duration_ms <= expected_ms * 1.5:
        return "good"
    if duration_ms <= critical_ms:
        return "slow"
    return "critical"


def benchmark_reports(
    reporting: ReportingService,
) -> dict[str, Callable[[], Awaitable[Any]]]:
    """Report name -> zero-arg coroutine factory, in benchmark order."""
    return {
        "dashboard": reporting.get_dashboard_metrics,
        "quick_stats": reporting.get_quick_stats,
        "reports": reporting.get_reports,
        "search": lambda: reporting.search_students({}),
        "analytics": reporting.get_student_analytics,
        "documents": reporting.get_document_insights,
    }


async def run_benchmark(
    reporting: ReportingService,
    rounds: int = 3,
    expected_ms: float = 200.0,
    critical_ms: float = 5000.0,
    timer: Callable[[], float] = time.perf_counter,
) -> list[BenchmarkResult]:
    """Time every report ``rounds`` times, cold then warm.

    Args:
        reporting: Service under test. Its cache is cleared before each round.
        rounds: Number of cold/warm pairs per report.
        expected_ms: Upper bound for "excellent" cold timings.
        critical_ms: Cold timings above this are "critical".
        timer: Clock in seconds.

    Returns:
        One BenchmarkResult per report.
    """
    if rounds < 1:
        raise ValueError(f"rounds must be >= 1, got {rounds}")

    results: list[BenchmarkResult] = []
    for name, call in benchmark_reports(reporting).items():
        cold: list[float] = []
        warm: list[float] = []
        for _ in range(rounds):
            reporting.clear_cache()
            start = timer()
            await call()
            cold.append((timer() - start) * 1000.0)
            start = timer()
            await call()
            warm.append((timer() - start) * 1000.0)

        cold_avg = sum(cold) / rounds
        warm_avg = sum(warm) / rounds
        result = BenchmarkResult(
            report=name,
            rounds=rounds,
            cold_ms=round(cold_avg, 2),
            warm_ms=round(warm_avg, 2),
            speedup=round(cold_avg / warm_avg, 1) if warm_avg > 0 else None,
            status=classify_duration(cold_avg, expected_ms, critical_ms),
        )
        logger.info(
            "Benchmark %s: cold %.2fms, warm %.2fms (%s)",
            name, cold_avg, warm_avg, result.status,
        )
        results.append(result)

    return results
