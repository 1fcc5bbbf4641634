"""Database package public API."""

from .connection import OptimizedSQLitePool, close_db_pool, get_db_pool, init_db_pool
from .migrations import run_migrations
from .repositories import (
    ActivityRepository,
    CustomerRepository,
    LotteryRepository,
    SellerRepository,
    TicketRepository,
)

__all__ = [
    "OptimizedSQLitePool",
    "close_db_pool",
    "get_db_pool",
    "init_db_pool",
    "run_migrations",
    "ActivityRepository",
    "CustomerRepository",
    "LotteryRepository",
    "SellerRepository",
    "TicketRepository",
]
