"""Services package."""

from .async_runner import set_main_loop, run_coroutine_sync
from .cache import MultiLevelCache, init_cache, get_cache, invalidate_reports
from .inventory import can_resize, is_sellable, sold_count, ticket_range
from .sale_allocator import SaleAllocator
from .commission import CommissionCalculator, compute_trend, commission_for_sale
from .winner_resolver import WinnerResolver, parse_assignments
from .notification_tracker import NotificationTracker
from .lottery_service import LotteryService
from .activity_service import ActivityService

__all__ = [
    "set_main_loop",
    "run_coroutine_sync",
    "MultiLevelCache",
    "init_cache",
    "get_cache",
    "invalidate_reports",
    # Ticket engine
    "can_resize",
    "is_sellable",
    "sold_count",
    "ticket_range",
    "SaleAllocator",
    "CommissionCalculator",
    "compute_trend",
    "commission_for_sale",
    "WinnerResolver",
    "parse_assignments",
    "NotificationTracker",
    # Back office
    "LotteryService",
    "ActivityService",
]
