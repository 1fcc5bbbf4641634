"""Application initialization orchestrator."""

from __future__ import annotations

import asyncio
import os
from typing import Optional

from aiohttp import web as aiohttp_web
from aiohttp_wsgi import WSGIHandler

from config import Config, load_config
from core.logger import get_logger

logger = get_logger(__name__)


class ApplicationInitializer:
    """Orchestrates application initialization and lifecycle.

    The Flask app runs inside aiohttp through ``WSGIHandler`` so that its
    worker threads can hand coroutines to the same loop that owns the
    database pool.
    """

    def __init__(self, config: Optional[Config] = None):
        self.config = config or load_config()
        self.db_pool = None
        self.cache = None
        self.flask_app = None
        self.web_runner = None

    async def initialize(self) -> None:
        """Initialize all application components."""
        await self._init_database()
        self._init_cache()
        await self._init_web_server()

    async def run(self) -> None:
        """Serve until cancelled."""
        try:
            logger.info("Back office running, press Ctrl+C to stop")
            while True:
                await asyncio.sleep(3600)
        except asyncio.CancelledError:
            logger.info("Shutting down...")
            raise
        finally:
            await self.cleanup()

    async def cleanup(self) -> None:
        from database import close_db_pool

        if self.web_runner is not None:
            await self.web_runner.cleanup()
            self.web_runner = None
        await close_db_pool()
        logger.info("Resources released")

    async def _init_database(self) -> None:
        """Initialize database pool and run migrations."""
        from database import init_db_pool, run_migrations

        self.db_pool = await init_db_pool(
            database_path=self.config.database_path,
            pool_size=self.config.db_pool_size,
            busy_timeout_ms=self.config.db_busy_timeout,
        )
        await run_migrations(self.db_pool)
        logger.info("✅ Database initialized at %s", self.config.database_path)

    def _init_cache(self) -> None:
        """Initialize cache service."""
        from services.cache import init_cache

        self.cache = init_cache(
            hot_ttl=self.config.cache_ttl_hot,
            warm_ttl=self.config.cache_ttl_warm,
            cold_ttl=self.config.cache_ttl_cold,
        )
        logger.info("✅ Cache initialized")

    async def _init_web_server(self) -> None:
        """Initialize web server."""
        from web import create_app

        self.flask_app = create_app(self.config)

        # Create WSGI handler for Flask app
        wsgi_handler = WSGIHandler(self.flask_app)

        # Create aiohttp app and add Flask routes
        aio_app = aiohttp_web.Application()
        aio_app.router.add_route("*", "/{path_info:.*}", wsgi_handler)

        self.web_runner = aiohttp_web.AppRunner(aio_app)
        await self.web_runner.setup()

        # Bind to PORT env var if present (Render/Heroku)
        effective_port = int(os.getenv("PORT", str(self.config.web_port)))
        effective_host = "0.0.0.0" if os.getenv("PORT") else self.config.web_host

        site = aiohttp_web.TCPSite(self.web_runner, effective_host, effective_port)
        await site.start()

        logger.info(f"🚀 Web server started on http://{effective_host}:{effective_port}")
        logger.info(f"🔗 API root: http://{effective_host}:{effective_port}/api")
