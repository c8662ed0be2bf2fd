# src/monitoring/instrumented_store.py - v1
"""AggregateDataStore decorator that routes every call through a PerformanceMonitor.

This is the interception point between the reporting layer and the real data
store: results and exceptions pass through untouched.
"""

from __future__ import annotations

from typing import Any

from credreports.monitoring.performance_monitor import PerformanceMonitor
from credreports.store.base_data_store import AggregateDataStore
from credreports.store.models import Aggregation, EntityName, GroupRow, OrderBy, QueryFilter


class InstrumentedDataStore(AggregateDataStore):
    """Wraps ``inner`` so each call is timed and recorded by ``monitor``."""

    def __init__(self, inner: AggregateDataStore, monitor: PerformanceMonitor) -> None:
        self._inner = inner
        self._monitor = monitor

    @property
    def inner(self) -> AggregateDataStore:
        return self._inner

    async def count(self, entity: EntityName, where: QueryFilter | None = None) -> int:
        return await self._monitor.observe(
            entity, "count",
            lambda: self._inner.count(entity, where),
            params={"where": _dump(where)},
        )

    async def group_by(
        self,
        entity: EntityName,
        by: list[str],
        where: QueryFilter | None = None,
        aggregate: Aggregation | None = None,
    ) -> list[GroupRow]:
        return await self._monitor.observe(
            entity, "group_by",
            lambda: self._inner.group_by(entity, by, where, aggregate),
            params={"by": list(by), "where": _dump(where), "aggregate": _dump(aggregate)},
        )

    async def find_many(
        self,
        entity: EntityName,
        where: QueryFilter | None = None,
        select: list[str] | None = None,
        order_by: list[OrderBy] | None = None,
        skip: int = 0,
        take: int | None = None,
    ) -> list[dict[str, Any]]:
        return await self._monitor.observe(
            entity, "find_many",
            lambda: self._inner.find_many(entity, where, select, order_by, skip, take),
            params={
                "where": _dump(where),
                "select": select,
                "order_by": [o.model_dump() for o in order_by or []],
                "skip": skip,
                "take": take,
            },
        )


def _dump(model: QueryFilter | Aggregation | None) -> dict[str, Any] | None:
    if model is None:
        return None
    return model.model_dump(mode="json", exclude_defaults=True)
