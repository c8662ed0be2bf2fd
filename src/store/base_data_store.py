# src/store/base_data_store.py - v1
"""Abstract aggregate data-store interface.

All calls are coroutines and may be dispatched concurrently; no transactional
isolation is implied between them.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from credreports.store.models import Aggregation, EntityName, GroupRow, OrderBy, QueryFilter


class AggregateDataStore(ABC):
    """Count / group-by / filtered-list primitives over credential entities."""

    @abstractmethod
    async def count(self, entity: EntityName, where: QueryFilter | None = None) -> int:
        """Count records matching ``where``."""

    @abstractmethod
    async def group_by(
        self,
        entity: EntityName,
        by: list[str],
        where: QueryFilter | None = None,
        aggregate: Aggregation | None = None,
    ) -> list[GroupRow]:
        """Group matching records by ``by`` and compute ``aggregate`` per group."""

    @abstractmethod
    async def find_many(
        self,
        entity: EntityName,
        where: QueryFilter | None = None,
        select: list[str] | None = None,
        order_by: list[OrderBy] | None = None,
        skip: int = 0,
        take: int | None = None,
    ) -> list[dict[str, Any]]:
        """Return matching records, projected to ``select`` when given."""
