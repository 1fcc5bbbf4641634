"""Performance middleware for Flask application."""

import time
from flask import request, g
import logging

from database.connection import get_db_pool
from core.exceptions import ConnectionPoolError
from utils.performance import monitor

logger = logging.getLogger(__name__)

SLOW_REQUEST_SECONDS = 1.0


def init_performance_middleware(app):
    """Log slow requests and expose timing and pool usage."""

    @app.before_request
    def before_request():
        g.start_time = time.time()

    @app.after_request
    def after_request(response):
        if hasattr(g, 'start_time'):
            duration = time.time() - g.start_time
            if duration > SLOW_REQUEST_SECONDS:
                logger.warning(f"Slow request: {request.method} {request.path} took {duration:.2f}s")

            response.headers['X-Response-Time'] = f"{duration:.3f}s"

        try:
            pool = get_db_pool()
        except ConnectionPoolError:
            return response
        monitor.record_db_pool(pool.size, pool.in_use)
        return response
