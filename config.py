"""Application configuration module.

Reads settings from environment variables with defaults suitable for a
single back-office deployment backed by one SQLite file.
"""

from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv

load_dotenv()


def _get_bool(name: str, default: bool = False) -> bool:
    """Get boolean from environment variable."""
    value = os.getenv(name)
    if value is None:
        return default
    return value.lower() in {"1", "true", "yes", "on"}


def _get_int(name: str, default: int) -> int:
    """Get integer from environment variable with fallback."""
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _get_float(name: str, default: float) -> float:
    """Get float from environment variable with fallback."""
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        return default


def _get_str(name: str, default: str = "") -> str:
    """Get string from environment variable."""
    return os.getenv(name, default)


@dataclass(frozen=True)
class Config:
    admin_username: str
    admin_password: str
    environment: str
    debug: bool
    web_host: str
    web_port: int
    secret_key: str
    database_path: str
    log_folder: str
    db_pool_size: int
    db_busy_timeout: int
    cache_ttl_hot: int
    cache_ttl_warm: int
    cache_ttl_cold: int

    # Sold-ticket polling hints returned to clients
    poll_interval_ms: int
    poll_jitter_ms: int

    # Per-IP limit on the sell endpoint; 0 disables it
    sell_rate_limit: int
    sell_rate_window: float

    # Trend value reported when the previous period is zero
    trend_clamp: float


def load_config() -> Config:
    """Load application configuration from environment variables.

    Returns:
        Config: Application configuration with validated values
    """
    return Config(
        admin_username=_get_str("ADMIN_USERNAME", "admin"),
        admin_password=_get_str("ADMIN_PASSWORD", "123456"),
        environment=_get_str("ENVIRONMENT", "development"),
        debug=_get_bool("DEBUG", False),
        web_host=_get_str("WEB_HOST", "0.0.0.0"),
        web_port=_get_int("WEB_PORT", 5000),
        secret_key=_get_str(
            "SECRET_KEY",
            "production_secret_key_must_be_changed_in_production_environment"
        ),
        database_path=_get_str("DATABASE_PATH", "data/lottery_office.sqlite"),
        log_folder=_get_str("LOG_FOLDER", "logs"),
        db_pool_size=_get_int("DB_POOL_SIZE", 10),
        db_busy_timeout=_get_int("DB_BUSY_TIMEOUT", 5000),
        cache_ttl_hot=_get_int("CACHE_TTL_HOT", 30),
        cache_ttl_warm=_get_int("CACHE_TTL_WARM", 300),
        cache_ttl_cold=_get_int("CACHE_TTL_COLD", 3600),
        poll_interval_ms=_get_int("POLL_INTERVAL_MS", 4500),
        poll_jitter_ms=_get_int("POLL_JITTER_MS", 500),
        sell_rate_limit=_get_int("SELL_RATE_LIMIT", 20),
        sell_rate_window=_get_float("SELL_RATE_WINDOW", 60.0),
        trend_clamp=_get_float("TREND_CLAMP", 100.0),
    )
