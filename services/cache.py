"""Multi-level caching layer for commission and sales aggregates."""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Awaitable, Callable, Dict, Optional

from cachetools import TTLCache

from core.constants import CacheDefaults


REPORT_PREFIX = "report:"


class CacheLevel:
    """Cache level configuration."""
    HOT = "hot"
    WARM = "warm"
    COLD = "cold"


class MultiLevelCache:
    """Multi-level cache with hot, warm, and cold tiers.

    Hot tier: dashboard figures that change with every sale
    Warm tier: per-lottery summaries
    Cold tier: reports over closed periods
    """

    def __init__(
        self,
        hot_ttl: int,
        warm_ttl: int,
        cold_ttl: int,
        hot_size: int = CacheDefaults.HOT_SIZE,
        warm_size: int = CacheDefaults.WARM_SIZE,
        cold_size: int = CacheDefaults.COLD_SIZE,
    ) -> None:
        self.hot_cache = TTLCache(maxsize=hot_size, ttl=hot_ttl)
        self.warm_cache = TTLCache(maxsize=warm_size, ttl=warm_ttl)
        self.cold_cache = TTLCache(maxsize=cold_size, ttl=cold_ttl)
        self._locks: Dict[str, asyncio.Lock] = {}
        self._lock_users: Dict[str, int] = {}
        self._generation = 0

    @asynccontextmanager
    async def _key_lock(self, key: str) -> AsyncIterator[None]:
        """Hold the lock for ``key``; the lock is dropped once nobody holds or awaits it."""
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        self._lock_users[key] = self._lock_users.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            remaining = self._lock_users[key] - 1
            if remaining:
                self._lock_users[key] = remaining
            else:
                del self._lock_users[key]
                del self._locks[key]

    async def get_or_set(
        self,
        key: str,
        loader: Callable[[], Awaitable[Any]],
        level: str = CacheLevel.HOT,
    ) -> Any:
        """Get value from cache or load and cache it.

        Concurrent callers for one key share a single load. A value loaded
        while an invalidation happened is returned but not stored.
        """
        cache = self._pick_cache(level)
        if key in cache:
            return cache[key]

        async with self._key_lock(key):
            if key in cache:
                return cache[key]
            generation = self._generation
            value = await loader()
            if generation == self._generation:
                cache[key] = value
            return value

    def invalidate_pattern(self, pattern: str) -> int:
        """Invalidate all keys starting with ``pattern``; returns how many were dropped."""
        self._generation += 1
        count = 0
        for cache in (self.hot_cache, self.warm_cache, self.cold_cache):
            keys_to_delete = [k for k in list(cache) if k.startswith(pattern)]
            for key in keys_to_delete:
                cache.pop(key, None)
                count += 1
        return count

    def stats(self) -> Dict[str, Dict[str, Any]]:
        return {
            name: {"size": len(cache), "maxsize": cache.maxsize, "ttl": cache.ttl}
            for name, cache in (
                ("hot", self.hot_cache),
                ("warm", self.warm_cache),
                ("cold", self.cold_cache),
            )
        }

    def _pick_cache(self, level: str) -> TTLCache:
        if level == CacheLevel.HOT:
            return self.hot_cache
        if level == CacheLevel.WARM:
            return self.warm_cache
        if level == CacheLevel.COLD:
            return self.cold_cache
        raise ValueError(f"Unknown cache level: {level}")


_cache_instance: Optional[MultiLevelCache] = None


def init_cache(
    hot_ttl: int = CacheDefaults.HOT_TTL,
    warm_ttl: int = CacheDefaults.WARM_TTL,
    cold_ttl: int = CacheDefaults.COLD_TTL,
) -> MultiLevelCache:
    """Initialize the global cache instance."""
    global _cache_instance
    _cache_instance = MultiLevelCache(hot_ttl=hot_ttl, warm_ttl=warm_ttl, cold_ttl=cold_ttl)
    return _cache_instance


def get_cache() -> Optional[MultiLevelCache]:
    """Global cache instance, or None when caching is not set up."""
    return _cache_instance


def report_key(*parts: Any) -> str:
    return REPORT_PREFIX + ":".join("" if part is None else str(part) for part in parts)


def invalidate_reports() -> None:
    """Drop every cached aggregate; called after any write that changes ticket state."""
    if _cache_instance is not None:
        _cache_instance.invalidate_pattern(REPORT_PREFIX)


async def cached_report(key: str, loader: Callable[[], Awaitable[Any]], level: str = CacheLevel.HOT) -> Any:
    if _cache_instance is None:
        return await loader()
    return await _cache_instance.get_or_set(key, loader, level)
