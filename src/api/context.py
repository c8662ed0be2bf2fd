# src/api/context.py - v1
"""Application context: one cache, one monitor and one reporting service.

Usage:
    from credreports.api.context import build_context
    ctx = build_context(InMemoryDataStore.from_json(path))
    metrics = await ctx.reporting.get_dashboard_metrics()

Tests build a fresh context per case instead of sharing module-level state.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Callable

from credreports.cache.base_cache_store import BaseCacheStore
from credreports.cache.cache_factory import create_cache_store
from credreports.config.settings import Settings
from credreports.monitoring.instrumented_store import InstrumentedDataStore
from credreports.monitoring.performance_monitor import PerformanceMonitor
from credreports.reporting.reporting_service import ReportingService, utcnow
from credreports.store.base_data_store import AggregateDataStore

logger = logging.getLogger(__name__)


@dataclass
class AppContext:
    """Wired reporting components sharing one cache and one monitor."""

    settings: Settings
    cache: BaseCacheStore
    monitor: PerformanceMonitor
    store: InstrumentedDataStore
    reporting: ReportingService


def build_context(
    store: AggregateDataStore,
    settings: Settings | None = None,
    clock: Callable[[], float] = time.monotonic,
    timer: Callable[[], float] = time.perf_counter,
    now: Callable[[], datetime] = utcnow,
) -> AppContext:
    """Wire cache, monitor and reporting service around ``store``.

    Args:
        store: Underlying data store. It is wrapped so every call is monitored.
        settings: Loaded from .env if None.
        clock: Cache clock in seconds.
        timer: Monitor timer in seconds.
        now: Wall clock for report windows.

    Returns:
        A fresh AppContext.
    """
    settings = settings or Settings()
    cache = create_cache_store(settings, clock=clock)
    monitor = PerformanceMonitor.from_settings(settings, timer=timer)
    instrumented = InstrumentedDataStore(store, monitor)
    reporting = ReportingService(instrumented, cache, settings, now=now)

    logger.debug(
        "Built context: cache=%s, slow_threshold=%.0fms",
        settings.cache_backend, settings.slow_query_threshold_ms,
    )
    return AppContext(
        settings=settings,
        cache=cache,
        monitor=monitor,
        store=instrumented,
        reporting=reporting,
    )
