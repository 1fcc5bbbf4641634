"""Health check blueprint."""

from __future__ import annotations

from flask import Blueprint, jsonify

from database.connection import get_db_pool
from services import get_cache
from utils.performance import monitor
from web.rate_limit import sell_limiter


health_bp = Blueprint("health", __name__)


@health_bp.route("/health")
def health_check():
    db_pool = get_db_pool()
    monitor.record_db_pool(db_pool.size, db_pool.in_use)
    cache = get_cache()

    data = {
        "status": "ok",
        "db_pool_size": db_pool.size,
        "db_pool_in_use": db_pool.in_use,
        "cache": cache.stats() if cache else None,
        "rate_limited_clients": sell_limiter.tracked_clients,
        "host": monitor.gather_host_metrics(),
    }
    return jsonify(data)
