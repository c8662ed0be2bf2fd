# src/store/memory_store.py - v1
"""In-memory aggregate data store.

Evaluates QueryFilter / Aggregation / OrderBy directly over lists of dict
records. Used by the test-suite and the CLI, and as the reference for how an
ORM-backed adapter must behave.
"""

from __future__ import annotations

import asyncio
import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from credreports.store.base_data_store import AggregateDataStore
from credreports.store.models import (
    Aggregation,
    EntityName,
    FieldRange,
    GroupRow,
    OrderBy,
    QueryFilter,
)

logger = logging.getLogger(__name__)

# Dataset file section -> entity name.
DATASET_SECTIONS: dict[str, EntityName] = {
    "students": "Student",
    "documents": "Document",
    "departments": "Department",
    "faculties": "Faculty",
    "academic_years": "AcademicYear",
    "audit_logs": "AuditLog",
    "users": "User",
}

_DATETIME_SUFFIXES = ("_at", "_date", "timestamp")


class InMemoryDataStore(AggregateDataStore):
    """Aggregate store over process-local record lists."""

    def __init__(
        self,
        records: dict[str, list[dict[str, Any]]] | None = None,
        latency_seconds: float = 0.0,
    ) -> None:
        self._records: dict[str, list[dict[str, Any]]] = {
            entity: [_parse_datetimes(r) for r in rows]
            for entity, rows in (records or {}).items()
        }
        self._latency = latency_seconds

    # --- Loading ---

    @classmethod
    def from_dataset(
        cls, data: dict[str, list[dict[str, Any]]], latency_seconds: float = 0.0
    ) -> InMemoryDataStore:
        """Build a store from a dataset dict keyed by section name ("students", ...)."""
        records: dict[str, list[dict[str, Any]]] = {}
        for section, rows in data.items():
            entity = DATASET_SECTIONS.get(section)
            if entity is None:
                logger.warning("Ignoring unknown dataset section %r", section)
                continue
            records[entity] = rows
        return cls(records, latency_seconds=latency_seconds)

    @classmethod
    def from_json(cls, path: Path, latency_seconds: float = 0.0) -> InMemoryDataStore:
        """Load a JSON dataset file."""
        data = json.loads(Path(path).read_text(encoding="utf-8"))
        return cls.from_dataset(data, latency_seconds=latency_seconds)

    def add(self, entity: EntityName, record: dict[str, Any]) -> None:
        """Append a record (test helper and write-path stand-in)."""
        self._records.setdefault(entity, []).append(_parse_datetimes(record))

    def update(self, entity: EntityName, record_id: Any, **changes: Any) -> bool:
        """Apply ``changes`` to the record with ``id == record_id``."""
        for row in self._records.get(entity, []):
            if row.get("id") == record_id:
                row.update(_parse_datetimes(changes))
                return True
        return False

    # --- AggregateDataStore ---

    async def count(self, entity: EntityName, where: QueryFilter | None = None) -> int:
        await self._simulate_latency()
        return sum(1 for _ in self._matching(entity, where))

    async def group_by(
        self,
        entity: EntityName,
        by: list[str],
        where: QueryFilter | None = None,
        aggregate: Aggregation | None = None,
    ) -> list[GroupRow]:
        await self._simulate_latency()
        aggregate = aggregate or Aggregation()

        groups: dict[tuple[Any, ...], list[dict[str, Any]]] = {}
        for row in self._matching(entity, where):
            groups.setdefault(tuple(row.get(f) for f in by), []).append(row)

        result: list[GroupRow] = []
        for key, rows in groups.items():
            result.append(GroupRow(
                keys=dict(zip(by, key)),
                count=len(rows) if aggregate.count else 0,
                avg={f: _mean(rows, f) for f in aggregate.avg},
                sum={f: _total(rows, f) for f in aggregate.sum},
            ))
        return result

    async def find_many(
        self,
        entity: EntityName,
        where: QueryFilter | None = None,
        select: list[str] | None = None,
        order_by: list[OrderBy] | None = None,
        skip: int = 0,
        take: int | None = None,
    ) -> list[dict[str, Any]]:
        await self._simulate_latency()
        rows = list(self._matching(entity, where))

        # Stable sorts applied last key first give multi-key ordering.
        for order in reversed(order_by or []):
            present = [r for r in rows if r.get(order.field) is not None]
            missing = [r for r in rows if r.get(order.field) is None]
            present.sort(
                key=lambda r: r[order.field], reverse=order.direction == "desc"
            )
            rows = present + missing

        end = None if take is None else skip + take
        rows = rows[skip:end]

        if select is None:
            return [dict(r) for r in rows]
        return [{f: r.get(f) for f in select} for r in rows]

    # --- Internals ---

    async def _simulate_latency(self) -> None:
        # Always yield so concurrently dispatched calls genuinely interleave.
        await asyncio.sleep(self._latency)

    def _matching(self, entity: EntityName, where: QueryFilter | None):
        for row in self._records.get(entity, []):
            if where is None or matches(row, where):
                yield row


def matches(row: dict[str, Any], where: QueryFilter) -> bool:
    """Evaluate a QueryFilter against a single record."""
    for field, expected in where.equals.items():
        if row.get(field) != expected:
            return False

    for field, allowed in where.in_.items():
        if row.get(field) not in allowed:
            return False

    for field in where.not_null:
        if row.get(field) is None:
            return False

    for field, bounds in where.ranges.items():
        if not _in_range(row.get(field), bounds):
            return False

    if where.search is not None:
        term = where.search.term.lower()
        if not any(
            term in str(row.get(f)).lower()
            for f in where.search.fields
            if row.get(f) is not None
        ):
            return False

    return True


def _in_range(value: Any, bounds: FieldRange) -> bool:
    if value is None:
        return False
    if bounds.gte is not None and not value >= bounds.gte:
        return False
    if bounds.gt is not None and not value > bounds.gt:
        return False
    if bounds.lte is not None and not value <= bounds.lte:
        return False
    if bounds.lt is not None and not value < bounds.lt:
        return False
    return True


def _mean(rows: list[dict[str, Any]], field: str) -> float | None:
    values = [float(r[field]) for r in rows if r.get(field) is not None]
    if not values:
        return None
    return sum(values) / len(values)


def _total(rows: list[dict[str, Any]], field: str) -> float | None:
    values = [float(r[field]) for r in rows if r.get(field) is not None]
    if not values:
        return None
    return sum(values)


def _parse_datetimes(row: dict[str, Any]) -> dict[str, Any]:
    """Copy ``row`` with ISO strings in datetime fields parsed to aware datetimes.

    Raises:
        ValueError: A datetime field holds a string that is not ISO 8601.
    """
    parsed = dict(row)
    for field, value in row.items():
        if isinstance(value, str) and field.endswith(_DATETIME_SUFFIXES):
            try:
                dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
            except ValueError as exc:
                raise ValueError(f"Invalid datetime for {field}: {value!r}") from exc
            # Naive values are taken as UTC so they compare with report windows.
            parsed[field] = dt if dt.tzinfo else dt.replace(tzinfo=timezone.utc)
    return parsed
