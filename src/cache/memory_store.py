# src/cache/memory_store.py - v1
"""Process-local TTL cache store (default CACHE_BACKEND=memory).

One dict per store instance. Expired entries are evicted lazily on read, or
eagerly through purge_expired(). There are no background timers.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Callable, Iterable

from credreports.cache.base_cache_store import BaseCacheStore
from credreports.cache.models import CacheEntry, CacheStats

logger = logging.getLogger(__name__)


class MemoryCacheStore(BaseCacheStore):
    """In-memory key -> CacheEntry map with per-entry TTL and tags."""

    def __init__(
        self,
        default_ttl: float = 300.0,
        short_ttl: float = 30.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._entries: dict[str, CacheEntry] = {}
        self._default_ttl = default_ttl
        self._short_ttl = short_ttl
        self._clock = clock

    @property
    def default_ttl(self) -> float:
        return self._default_ttl

    @property
    def short_ttl(self) -> float:
        return self._short_ttl

    def get(self, key: str) -> Any | None:
        """Retrieve cached data by key."""
        entry = self._entries.get(key)
        if entry is None:
            logger.debug("Cache miss: %s", key)
            return None
        if entry.is_expired(self._clock()):
            del self._entries[key]
            logger.debug("Cache expired: %s", key)
            return None
        logger.debug("Cache hit: %s", key)
        return entry.data

    def set(
        self,
        key: str,
        data: Any,
        ttl: float | None = None,
        tags: Iterable[str] | None = None,
    ) -> None:
        """Store data under key, replacing any previous entry."""
        self._entries[key] = CacheEntry(
            key=key,
            data=data,
            timestamp=self._clock(),
            ttl_seconds=self._default_ttl if ttl is None else ttl,
            tags=frozenset(tags or ()),
        )

    def clear(self, key: str | None = None) -> None:
        """Remove one entry or all entries."""
        if key is None:
            count = len(self._entries)
            self._entries.clear()
            logger.info("Cleared all %d cache entries", count)
            return
        if self._entries.pop(key, None) is not None:
            logger.info("Cleared cache entry %s", key)

    def invalidate(self, pattern: str) -> int:
        """Remove entries whose key contains pattern."""
        return self._evict([k for k in self._entries if pattern in k])

    def invalidate_tags(self, *tags: str) -> int:
        """Remove entries tagged with any of tags."""
        wanted = set(tags)
        return self._evict(
            [k for k, e in self._entries.items() if e.tags & wanted]
        )

    def purge_expired(self) -> int:
        """Drop every expired entry now instead of waiting for a read."""
        now = self._clock()
        return self._evict(
            [k for k, e in self._entries.items() if e.is_expired(now)]
        )

    def stats(self) -> CacheStats:
        return CacheStats(
            size=len(self._entries),
            keys=list(self._entries),
            ttl_seconds=self._default_ttl,
            short_ttl_seconds=self._short_ttl,
        )

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def _evict(self, keys: list[str]) -> int:
        for key in keys:
            del self._entries[key]
        return len(keys)
