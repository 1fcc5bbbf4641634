"""Tests for the multi-level report cache."""

import asyncio

import pytest

from services.cache import CacheLevel, MultiLevelCache


def _cache():
    return MultiLevelCache(hot_ttl=60, warm_ttl=60, cold_ttl=60)


@pytest.mark.asyncio
async def test_concurrent_callers_share_one_load():
    cache = _cache()
    loads = []

    async def loader():
        loads.append(1)
        await asyncio.sleep(0.01)
        return {"ticketsSold": 3}

    results = await asyncio.gather(*(cache.get_or_set("report:1", loader) for _ in range(5)))

    assert len(loads) == 1
    assert all(result == {"ticketsSold": 3} for result in results)
    assert cache._locks == {}
    assert cache._lock_users == {}


@pytest.mark.asyncio
async def test_key_locks_do_not_accumulate():
    """Test one lock per distinct key is released once its load finishes."""
    cache = _cache()

    async def loader():
        return 0

    for day in range(50):
        await cache.get_or_set(f"report:commissions:2026-01-{day:02d}", loader, CacheLevel.COLD)

    assert cache._locks == {}
    assert cache.stats()["cold"]["size"] == 50


@pytest.mark.asyncio
async def test_failed_load_releases_lock():
    cache = _cache()

    async def loader():
        raise RuntimeError("boom")

    with pytest.raises(RuntimeError):
        await cache.get_or_set("report:broken", loader)

    assert cache._locks == {}
    assert cache.stats()["hot"]["size"] == 0


@pytest.mark.asyncio
async def test_value_loaded_across_invalidation_is_not_stored():
    cache = _cache()
    started = asyncio.Event()
    release = asyncio.Event()

    async def loader():
        started.set()
        await release.wait()
        return "stale"

    task = asyncio.create_task(cache.get_or_set("report:1", loader, CacheLevel.WARM))
    await started.wait()
    assert cache.invalidate_pattern("report:") == 0
    release.set()

    assert await task == "stale"
    assert cache.stats()["warm"]["size"] == 0
