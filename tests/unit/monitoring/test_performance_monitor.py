# tests/unit/monitoring/test_performance_monitor.py - v1
"""Tests for monitoring/performance_monitor.py - recording, alerts, analytics."""

from __future__ import annotations

import asyncio
import logging
from unittest.mock import AsyncMock

import pytest

from credreports.logging.context import clear_context, get_context
from credreports.monitoring.performance_monitor import PerformanceMonitor, sanitize_params

MAX_HISTORY = 50


class StepTimer:
    """Timer returning preset readings in order (seconds)."""

    def __init__(self, *readings: float) -> None:
        self._readings = list(readings)

    def __call__(self) -> float:
        return self._readings.pop(0)


@pytest.fixture
def monitor() -> PerformanceMonitor:
    return PerformanceMonitor(
        slow_query_threshold_ms=1000,
        critical_query_threshold_ms=5000,
        max_history=MAX_HISTORY,
        analytics_window=20,
    )


class TestSanitizeParams:
    def test_strips_password_keys_any_case(self):
        params = {"email": "a@b.c", "password": "s", "passwordHash": "h", "PASSWORD_HASH": "x"}
        assert sanitize_params(params) == {"email": "a@b.c"}

    def test_nested_and_lists(self):
        params = {"data": {"user": {"password": "s", "role": "ADMIN"}},
                  "items": [{"password_hash": "h", "id": 1}]}
        assert sanitize_params(params) == {
            "data": {"user": {"role": "ADMIN"}},
            "items": [{"id": 1}],
        }

    def test_does_not_mutate_input(self):
        params = {"password": "s"}
        sanitize_params(params)
        assert params == {"password": "s"}

    def test_recorded_metric_is_sanitised(self, monitor):
        monitor.record_query("User", "find_many", 5, {"where": {"password": "secret"}})
        assert monitor.metrics[0].params == {"where": {}}


class TestRecordQuery:
    def test_fast_query_no_alert(self, monitor):
        metric = monitor.record_query("Student", "count", 500)
        assert metric.query == "Student.count"
        assert metric.status == "success"
        assert monitor.slow_queries == []

    def test_slow_query_alert_with_recommendation(self, monitor, caplog):
        with caplog.at_level(logging.WARNING):
            monitor.record_query("Student", "find_many", 1500)
        assert len(monitor.slow_queries) == 1
        alert = monitor.slow_queries[0]
        assert alert.query == "Student.find_many"
        assert alert.threshold_ms == 1000
        assert "created_at" in alert.recommendation
        assert "Slow query" in caplog.text

    def test_threshold_is_strict(self, monitor):
        monitor.record_query("Student", "count", 1000)
        assert monitor.slow_queries == []

    def test_failed_query_recorded_without_alert(self, monitor, caplog):
        with caplog.at_level(logging.ERROR):
            metric = monitor.record_query(
                "Student", "count", 2500, error=RuntimeError("db down"),
            )
        assert metric.status == "failed"
        assert metric.error == "RuntimeError: db down"
        assert monitor.slow_queries == []
        assert "failed" in caplog.text

    def test_bounded_history_fifo(self, monitor):
        for i in range(MAX_HISTORY + 50):
            monitor.record_query("Student", "count", 2000, params={"i": i})
        metrics = monitor.metrics
        assert len(metrics) == MAX_HISTORY
        assert metrics[0].params == {"i": 50}
        assert metrics[-1].params == {"i": MAX_HISTORY + 49}
        assert len(monitor.slow_queries) == MAX_HISTORY


class TestObserve:
    @pytest.mark.asyncio
    async def test_returns_result_and_records_duration(self):
        monitor = PerformanceMonitor(timer=StepTimer(1.0, 1.25))
        result = await monitor.observe("Student", "count", AsyncMock(return_value=7))
        assert result == 7
        assert monitor.metrics[0].duration_ms == pytest.approx(250.0)

    @pytest.mark.asyncio
    async def test_reraises_and_records_failure(self):
        monitor = PerformanceMonitor(timer=StepTimer(0.0, 0.1))
        call = AsyncMock(side_effect=ValueError("bad filter"))
        with pytest.raises(ValueError, match="bad filter"):
            await monitor.observe("Document", "group_by", call)
        metric = monitor.metrics[0]
        assert metric.status == "failed"
        assert metric.duration_ms == pytest.approx(100.0)

    @pytest.mark.asyncio
    async def test_cancelled_call_recorded_as_failure(self):
        monitor = PerformanceMonitor(timer=StepTimer(0.0, 0.05))
        call = AsyncMock(side_effect=asyncio.CancelledError())
        with pytest.raises(asyncio.CancelledError):
            await monitor.observe("Student", "count", call)
        metric = monitor.metrics[0]
        assert metric.status == "failed"
        assert metric.error.startswith("CancelledError")
        assert metric.duration_ms == pytest.approx(50.0)
        assert monitor.slow_queries == []

    @pytest.mark.asyncio
    async def test_operation_context_set_during_call(self):
        clear_context()
        seen = []

        async def call():
            seen.append(get_context().operation)
            return None

        monitor = PerformanceMonitor()
        await monitor.observe("AuditLog", "find_many", call)
        assert seen == ["AuditLog.find_many"]
        assert get_context().operation is None


class TestAnalytics:
    def test_empty(self, monitor):
        analytics = monitor.get_performance_analytics()
        assert analytics.total_queries == 0
        assert analytics.slowest_query is None
        assert analytics.model_breakdown == {}

    def test_summary(self, monitor):
        monitor.record_query("Student", "count", 100)
        monitor.record_query("Student", "find_many", 1500)
        monitor.record_query("Document", "group_by", 200)
        monitor.record_query("Document", "group_by", 300)

        analytics = monitor.get_performance_analytics()
        assert analytics.total_queries == 4
        assert analytics.average_query_time == 525.0
        assert analytics.slow_query_count == 1
        assert analytics.slow_query_percentage == 25
        assert analytics.slowest_query.query == "Student.find_many"
        assert analytics.model_breakdown["Student"].count == 2
        assert analytics.model_breakdown["Student"].avg_time == 800.0
        assert analytics.model_breakdown["Document"].total_time == 500.0
        assert analytics.recommendations[0].startswith("CRITICAL")
        assert len(analytics.recent_slow_queries) == 1

    def test_window_limits_analysis(self, monitor):
        for _ in range(30):
            monitor.record_query("Student", "count", 2000)
        for _ in range(20):
            monitor.record_query("Student", "count", 10)
        analytics = monitor.get_performance_analytics()
        assert analytics.total_queries == 20
        assert analytics.slow_query_count == 0

    def test_recent_slow_capped(self, monitor):
        for ms in range(1100, 1900, 100):
            monitor.record_query("Student", "count", ms)
        recent = monitor.get_performance_analytics().recent_slow_queries
        assert [a.duration_ms for a in recent] == [1400, 1500, 1600, 1700, 1800]

    def test_average_and_slow_queries(self, monitor):
        monitor.record_query("Student", "count", 1200)
        monitor.record_query("Student", "count", 3000)
        monitor.record_query("Student", "count", 300)
        assert monitor.get_average_query_time() == 1500
        assert [m.duration_ms for m in monitor.get_slow_queries()] == [3000, 1200]
        assert len(monitor.get_slow_queries(limit=1)) == 1


class TestMaintenance:
    def test_clear_metrics(self, monitor):
        monitor.record_query("Student", "count", 2000)
        monitor.clear_metrics()
        assert monitor.metrics == []
        assert monitor.slow_queries == []

    def test_export(self, monitor):
        monitor.record_query("Student", "count", 2000)
        export = monitor.export_metrics()
        assert len(export.query_metrics) == 1
        assert len(export.slow_queries) == 1
        assert export.analytics.total_queries == 1

    def test_from_settings(self, settings):
        monitor = PerformanceMonitor.from_settings(
            settings.model_copy(update={"slow_query_threshold_ms": 250.0})
        )
        assert monitor.slow_query_threshold_ms == 250.0
