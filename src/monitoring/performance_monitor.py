# src/monitoring/performance_monitor.py - v1
"""Data-store call timing, slow-query alerts and performance analytics.

Every instrumented call lands in a bounded FIFO history (oldest dropped once
``max_history`` is reached). Successful calls slower than the threshold also
produce a SlowQueryAlert carrying an optimisation hint. Failures are recorded
with their duration-to-failure and re-raised unchanged; a call cancelled by
a report timeout counts as a failure.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections import deque
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, TypeVar

from credreports.config.settings import Settings
from credreports.logging.context import reset_operation_context, set_operation_context
from credreports.monitoring.models import (
    MetricsExport,
    ModelBreakdown,
    PerformanceAnalytics,
    QueryMetric,
    SlowestQuery,
    SlowQueryAlert,
)
from credreports.monitoring.recommendations import (
    generate_performance_recommendations,
    get_recommendation,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

_SENSITIVE_KEYS = frozenset({"password", "passwordhash", "password_hash"})


def sanitize_params(params: Any) -> Any:
    """Deep-copy ``params`` with every password-bearing key removed."""
    if isinstance(params, dict):
        return {
            k: sanitize_params(v)
            for k, v in params.items()
            if not (isinstance(k, str) and k.lower() in _SENSITIVE_KEYS)
        }
    if isinstance(params, (list, tuple)):
        return [sanitize_params(v) for v in params]
    return params


class PerformanceMonitor:
    """Records instrumented data-store calls for a single process."""

    def __init__(
        self,
        slow_query_threshold_ms: float = 1000.0,
        critical_query_threshold_ms: float = 5000.0,
        max_history: int = 1000,
        analytics_window: int = 100,
        recent_slow_queries: int = 5,
        timer: Callable[[], float] = time.perf_counter,
    ) -> None:
        self._threshold = slow_query_threshold_ms
        self._critical = critical_query_threshold_ms
        self._window = analytics_window
        self._recent_slow = recent_slow_queries
        self._timer = timer
        self._metrics: deque[QueryMetric] = deque(maxlen=max_history)
        self._slow: deque[SlowQueryAlert] = deque(maxlen=max_history)

    @classmethod
    def from_settings(
        cls, settings: Settings, timer: Callable[[], float] = time.perf_counter
    ) -> PerformanceMonitor:
        return cls(
            slow_query_threshold_ms=settings.slow_query_threshold_ms,
            critical_query_threshold_ms=settings.critical_query_threshold_ms,
            max_history=settings.max_metrics_history,
            analytics_window=settings.analytics_window,
            recent_slow_queries=settings.recent_slow_queries,
            timer=timer,
        )

    @property
    def slow_query_threshold_ms(self) -> float:
        return self._threshold

    @property
    def metrics(self) -> list[QueryMetric]:
        """Recorded calls, oldest first."""
        return list(self._metrics)

    @property
    def slow_queries(self) -> list[SlowQueryAlert]:
        """Slow-query alerts, oldest first."""
        return list(self._slow)

    # --- Recording ---

    def record_query(
        self,
        model: str,
        action: str,
        duration_ms: float,
        params: dict[str, Any] | None = None,
        error: BaseException | None = None,
    ) -> QueryMetric:
        """Record one completed call (the ``after`` hook of the interceptor).

        Args:
            model: Entity name, e.g. "Student".
            action: Data-store method, e.g. "find_many".
            duration_ms: Wall time of the call.
            params: Call arguments; password fields are stripped before storage.
            error: Exception raised by the call, if any.

        Returns:
            The stored QueryMetric.
        """
        query = f"{model}.{action}"
        now = datetime.now(timezone.utc)
        metric = QueryMetric(
            query=query,
            model=model,
            operation=action,
            duration_ms=duration_ms,
            timestamp=now,
            params=sanitize_params(params or {}),
            status="failed" if error is not None else "success",
            error=f"{type(error).__name__}: {error}" if error is not None else None,
        )
        self._metrics.append(metric)

        if error is not None:
            logger.error(
                "Query %s failed after %.2fms: %s", query, duration_ms, error,
            )
            return metric

        if duration_ms > self._threshold:
            alert = SlowQueryAlert(
                query=query,
                duration_ms=duration_ms,
                threshold_ms=self._threshold,
                recommendation=get_recommendation(
                    model, action, duration_ms, self._critical
                ),
                timestamp=now,
            )
            self._slow.append(alert)
            logger.warning(
                "Slow query: %s took %.2fms (threshold %.0fms). %s",
                query, duration_ms, self._threshold, alert.recommendation,
            )

        return metric

    async def observe(
        self,
        model: str,
        action: str,
        call: Callable[[], Awaitable[T]],
        params: dict[str, Any] | None = None,
    ) -> T:
        """Time ``call()``, record it, and return its result unchanged.

        Raises:
            Whatever ``call()`` raises, after the failed attempt is recorded.
            Cancellation is recorded the same way and propagated.
        """
        token = set_operation_context(f"{model}.{action}")
        start = self._timer()
        try:
            result = await call()
        except (Exception, asyncio.CancelledError) as exc:
            self.record_query(
                model, action, (self._timer() - start) * 1000.0, params, error=exc
            )
            raise
        else:
            self.record_query(model, action, (self._timer() - start) * 1000.0, params)
            return result
        finally:
            reset_operation_context(token)

    # --- Analytics ---

    def get_average_query_time(self) -> float:
        if not self._metrics:
            return 0.0
        return sum(m.duration_ms for m in self._metrics) / len(self._metrics)

    def get_slow_queries(self, limit: int = 10) -> list[QueryMetric]:
        """Slowest recorded calls above the threshold, slowest first."""
        slow = [m for m in self._metrics if m.duration_ms > self._threshold]
        slow.sort(key=lambda m: m.duration_ms, reverse=True)
        return slow[:limit]

    def get_performance_analytics(self) -> PerformanceAnalytics:
        """Summarise the most recent ``analytics_window`` calls."""
        recent = list(self._metrics)[-self._window:]

        if not recent:
            return PerformanceAnalytics(
                total_queries=0,
                average_query_time=0.0,
                slow_query_count=0,
                slow_query_percentage=0,
            )

        total = len(recent)
        average = sum(m.duration_ms for m in recent) / total
        slow_count = sum(1 for m in recent if m.duration_ms > self._threshold)
        slowest = max(recent, key=lambda m: m.duration_ms)

        totals: dict[str, list[float]] = {}
        for m in recent:
            totals.setdefault(m.model, []).append(m.duration_ms)
        breakdown = {
            model: ModelBreakdown(
                count=len(durations),
                total_time=sum(durations),
                avg_time=sum(durations) / len(durations),
            )
            for model, durations in totals.items()
        }

        recent_alerts = list(self._slow)[-self._recent_slow:] if self._recent_slow else []

        return PerformanceAnalytics(
            total_queries=total,
            average_query_time=round(average, 2),
            slow_query_count=slow_count,
            slow_query_percentage=round(slow_count / total * 100),
            slowest_query=SlowestQuery(
                query=slowest.query,
                duration_ms=round(slowest.duration_ms, 2),
                timestamp=slowest.timestamp,
            ),
            model_breakdown=breakdown,
            recommendations=generate_performance_recommendations(breakdown, average),
            recent_slow_queries=recent_alerts,
        )

    # --- Maintenance ---

    def clear_metrics(self) -> None:
        """Drop all recorded calls and alerts."""
        self._metrics.clear()
        self._slow.clear()

    def export_metrics(self) -> MetricsExport:
        return MetricsExport(
            query_metrics=self.metrics,
            slow_queries=self.slow_queries,
            analytics=self.get_performance_analytics(),
            exported_at=datetime.now(timezone.utc),
        )
