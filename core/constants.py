"""Application-wide constants and configuration values."""

from __future__ import annotations

from enum import Enum


# Database constants
class DatabaseDefaults:
    """Default database configuration."""
    POOL_SIZE = 10
    BUSY_TIMEOUT = 5000  # milliseconds


# Cache constants
class CacheDefaults:
    """Default cache configuration."""
    HOT_TTL = 30  # seconds
    WARM_TTL = 300  # seconds
    COLD_TTL = 3600  # seconds
    HOT_SIZE = 1000
    WARM_SIZE = 500
    COLD_SIZE = 200


# Status enums
class LotteryStatus(str, Enum):
    """Lottery lifecycle status."""
    ACTIVE = "active"
    ENDED = "ended"


class LotteryType(str, Enum):
    """Who runs the lottery."""
    COMPANY = "company"
    AGENT = "agent"


class TicketStatus(str, Enum):
    """Sold ticket status.

    ``LOST`` is accepted by the schema but never written by the engine:
    non-winning tickets of a resolved lottery stay ``SOLD``.
    """
    SOLD = "sold"
    WINNER = "winner"
    LOST = "lost"


class SellerRole(str, Enum):
    """Back-office account roles."""
    ADMIN = "admin"
    MANAGER = "manager"
    SELLER = "seller"
    OPERATOR = "operator"
    AGENT = "agent"


SELLING_ROLES = frozenset({
    SellerRole.ADMIN.value,
    SellerRole.MANAGER.value,
    SellerRole.SELLER.value,
    SellerRole.AGENT.value,
})


class ActivitySeverity(str, Enum):
    """Activity log severity."""
    SUCCESS = "success"
    INFO = "info"
    WARNING = "warning"


# Lottery constants
class LotteryDefaults:
    """Lottery field limits."""
    TITLE_MAX_LENGTH = 100
    DESCRIPTION_MAX_LENGTH = 500
    PRIZE_TITLE_MAX_LENGTH = 200
    SOLD_NUMBERS_CHUNK = 500


# Customer constants
class CustomerDefaults:
    """Customer field limits."""
    NAME_MAX_LENGTH = 100


# Commission / reporting
class ReportDefaults:
    """Reporting windows and trend handling."""
    TODAY_HOURS = 24
    WEEK_DAYS = 7
    TREND_CLAMP = 100.0  # reported when the previous period is zero


# Polling
class PollingDefaults:
    """Client polling hints for sold-ticket availability."""
    INTERVAL_MS = 4500
    JITTER_MS = 500


# Rate limiting
class RateLimitDefaults:
    """Rate limiting configuration."""
    SELL_MAX_REQUESTS = 20  # per window per IP
    SELL_WINDOW_SECONDS = 60.0
