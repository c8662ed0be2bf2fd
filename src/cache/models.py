# src/cache/models.py - v1
"""Cache domain models: CacheKey, CacheEntry, CacheStats."""

from __future__ import annotations

import json
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict

CacheCategory = Literal["student", "document", "audit", "dashboard", "academic"]

# Write-side categories accepted by ReportingService.invalidate_related_cache.
WRITE_CATEGORIES: tuple[str, ...] = ("student", "document", "audit")


class CacheKey(BaseModel):
    """Structured cache key.

    Renders to ``category:name`` or ``category:name:{json}``. The JSON part is
    canonical (sorted keys, None values dropped) so equal parameter sets map
    to one key and different ones never collide.
    """

    model_config = ConfigDict(frozen=True)

    category: CacheCategory
    name: str
    params: dict[str, Any] | None = None

    def render(self) -> str:
        base = f"{self.category}:{self.name}"
        if not self.params:
            return base
        cleaned = {k: v for k, v in self.params.items() if v is not None}
        if not cleaned:
            return base
        payload = json.dumps(cleaned, sort_keys=True, separators=(",", ":"), default=str)
        return f"{base}:{payload}"

    def __str__(self) -> str:
        return self.render()


class CacheEntry(BaseModel):
    """Single cached value. Never mutated; a refresh replaces it."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    key: str
    data: Any
    timestamp: float
    ttl_seconds: float
    tags: frozenset[str] = frozenset()

    def is_expired(self, now: float) -> bool:
        """Expired once ``now - timestamp`` reaches the TTL."""
        return now - self.timestamp >= self.ttl_seconds


class CacheStats(BaseModel):
    """Observability snapshot of a cache store."""

    size: int
    keys: list[str]
    ttl_seconds: float
    short_ttl_seconds: float
