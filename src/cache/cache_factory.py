# src/cache/cache_factory.py - v3
"""Factory for cache store instantiation."""

from __future__ import annotations

import time
from typing import Callable

from credreports.cache.base_cache_store import BaseCacheStore
from credreports.config.settings import Settings


def create_cache_store(
    settings: Settings | None = None,
    clock: Callable[[], float] = time.monotonic,
) -> BaseCacheStore:
    """Instantiate the configured cache backend.

    Args:
        settings: Application settings. Defaults to the memory backend with
            the standard 5 min / 30 s TTL tiers.
        clock: Monotonic clock in seconds (injectable for tests).

    Returns:
        Configured BaseCacheStore implementation.
    """
    backend = "memory" if settings is None else settings.cache_backend

    if backend == "memory":
        from credreports.cache.memory_store import MemoryCacheStore
        if settings is None:
            return MemoryCacheStore(clock=clock)
        return MemoryCacheStore(
            default_ttl=settings.cache_ttl_seconds,
            short_ttl=settings.cache_short_ttl_seconds,
            clock=clock,
        )

    raise ValueError(f"Unsupported cache backend: {backend!r}")
