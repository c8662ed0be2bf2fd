# src/monitoring/models.py - v1
"""Monitoring domain models: QueryMetric, SlowQueryAlert, PerformanceAnalytics, etc."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel


class QueryMetric(BaseModel):
    """One instrumented data-store call. Params are already sanitised."""

    query: str
    model: str
    operation: str
    duration_ms: float
    timestamp: datetime
    params: dict[str, Any] = {}
    status: Literal["success", "failed"] = "success"
    error: str | None = None


class SlowQueryAlert(BaseModel):
    """Raised for a successful call slower than the configured threshold."""

    query: str
    duration_ms: float
    threshold_ms: float
    recommendation: str
    timestamp: datetime


class ModelBreakdown(BaseModel):
    """Per-model timing aggregate over the analytics window."""

    count: int
    total_time: float
    avg_time: float


class SlowestQuery(BaseModel):
    query: str
    duration_ms: float
    timestamp: datetime


class PerformanceAnalytics(BaseModel):
    """Aggregate view of the most recent instrumented calls."""

    total_queries: int
    average_query_time: float
    slow_query_count: int
    slow_query_percentage: int
    slowest_query: SlowestQuery | None = None
    model_breakdown: dict[str, ModelBreakdown] = {}
    recommendations: list[str] = []
    recent_slow_queries: list[SlowQueryAlert] = []


class MetricsExport(BaseModel):
    """Full dump of monitor state for external analysis."""

    query_metrics: list[QueryMetric]
    slow_queries: list[SlowQueryAlert]
    analytics: PerformanceAnalytics
    exported_at: datetime
