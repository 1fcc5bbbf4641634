"""Pytest configuration and fixtures."""

import asyncio
import itertools
import threading
from dataclasses import replace
from types import SimpleNamespace

import pytest
import pytest_asyncio

import services.cache as cache_module
from config import load_config
from database import SellerRepository, close_db_pool, init_db_pool, run_migrations
from services import LotteryService, set_main_loop
from web import create_app
from web.rate_limit import sell_limiter


async def _open_database(path: str):
    pool = await init_db_pool(database_path=path, pool_size=12, busy_timeout_ms=5000)
    await run_migrations(pool)
    return pool


@pytest_asyncio.fixture
async def db_pool(tmp_path):
    """Fresh SQLite file with the full schema and a real connection pool."""
    cache_module._cache_instance = None
    pool = await _open_database(str(tmp_path / "lottery_test.sqlite"))
    yield pool
    await close_db_pool()


@pytest.fixture
def make_seller(db_pool):
    """Factory creating seller accounts with unique phone numbers."""
    counter = itertools.count(1)

    async def factory(role="seller", commission_rate=0.0, is_active=True, name=None):
        n = next(counter)
        return await SellerRepository.create(
            name or f"{role.capitalize()} {n}",
            f"091{n:07d}",
            role,
            commission_rate,
            is_active,
        )

    return factory


@pytest.fixture
def make_lottery(db_pool):
    """Factory creating active lotteries; ``prizes`` is the number of prize ranks."""
    service = LotteryService()

    async def factory(ticket_count=10, prizes=3, ticket_price=50.0, commission_per_ticket=5.0, created_by=None):
        return await service.create_lottery(
            title="Weekly Draw",
            description="Test lottery",
            ticket_count=ticket_count,
            ticket_price=ticket_price,
            commission_per_ticket=commission_per_ticket,
            prizes=[{"title": f"Prize {rank}"} for rank in range(1, prizes + 1)],
            created_by=created_by,
        )

    return factory


@pytest.fixture
def api(tmp_path):
    """Flask test client backed by a real pool on a background event loop."""
    loop = asyncio.new_event_loop()
    thread = threading.Thread(target=loop.run_forever, daemon=True)
    thread.start()
    set_main_loop(loop)
    cache_module._cache_instance = None

    def run(coro):
        return asyncio.run_coroutine_threadsafe(coro, loop).result(timeout=10)

    run(_open_database(str(tmp_path / "api_test.sqlite")))
    config = replace(load_config(), admin_username="admin", admin_password="secret", poll_jitter_ms=500)
    app = create_app(config, testing=True)
    sell_limiter.reset()

    yield SimpleNamespace(client=app.test_client(), app=app, run=run)

    sell_limiter.reset()
    run(close_db_pool())
    loop.call_soon_threadsafe(loop.stop)
    thread.join(timeout=5)
    loop.close()
    set_main_loop(None)
