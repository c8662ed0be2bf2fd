# src/cache/base_cache_store.py - v2
"""Abstract cache store interface.

Cache operations are synchronous and in-memory: they never suspend the event
loop, so no two callers interleave inside one operation.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Iterable

from credreports.cache.models import CacheStats


class BaseCacheStore(ABC):
    """Unified interface for cache storage backends."""

    @abstractmethod
    def get(self, key: str) -> Any | None:
        """Return cached data, or None on miss or expiry (expired entry is dropped)."""

    @abstractmethod
    def set(
        self,
        key: str,
        data: Any,
        ttl: float | None = None,
        tags: Iterable[str] | None = None,
    ) -> None:
        """Store or replace the entry for ``key``."""

    @abstractmethod
    def clear(self, key: str | None = None) -> None:
        """Remove one entry, or every entry when ``key`` is None."""

    @abstractmethod
    def invalidate(self, pattern: str) -> int:
        """Remove entries whose key contains ``pattern``. Returns the count."""

    @abstractmethod
    def invalidate_tags(self, *tags: str) -> int:
        """Remove entries carrying any of ``tags``. Returns the count."""

    @abstractmethod
    def stats(self) -> CacheStats:
        """Entry count, keys and configured TTLs."""
