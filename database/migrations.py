"""Database schema migrations."""

from __future__ import annotations


from core.logger import get_logger
from .connection import OptimizedSQLitePool

logger = get_logger(__name__)


SCHEMA_SQL: tuple[str, ...] = (
    """
    CREATE TABLE IF NOT EXISTS sellers (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        name TEXT NOT NULL,
        phone TEXT UNIQUE NOT NULL,
        role TEXT NOT NULL,
        commission_rate REAL NOT NULL DEFAULT 0,
        is_active BOOLEAN NOT NULL DEFAULT TRUE,
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    );
    """,
    "CREATE INDEX IF NOT EXISTS idx_sellers_role ON sellers(role);",
    """
    CREATE TABLE IF NOT EXISTS lotteries (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        title TEXT NOT NULL,
        description TEXT NOT NULL DEFAULT '',
        type TEXT NOT NULL DEFAULT 'company',
        created_by INTEGER,
        ticket_count INTEGER NOT NULL CHECK (ticket_count >= 0),
        ticket_price REAL NOT NULL CHECK (ticket_price > 0),
        commission_per_ticket REAL NOT NULL DEFAULT 0,
        status TEXT NOT NULL DEFAULT 'active',
        winning_ticket_numbers TEXT NOT NULL DEFAULT '[]',
        tiktok_stream_link TEXT,
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        ended_at TIMESTAMP,
        resolved_at TIMESTAMP
    );
    """,
    "CREATE INDEX IF NOT EXISTS idx_lotteries_status ON lotteries(status, created_at);",
    """
    CREATE TABLE IF NOT EXISTS prizes (
        lottery_id INTEGER NOT NULL,
        rank INTEGER NOT NULL CHECK (rank >= 1),
        title TEXT NOT NULL,
        image_url TEXT,
        PRIMARY KEY (lottery_id, rank),
        FOREIGN KEY(lottery_id) REFERENCES lotteries(id) ON DELETE CASCADE
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS customers (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        name TEXT NOT NULL,
        phone TEXT UNIQUE NOT NULL,
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    );
    """,
    # sold_by is a plain seller id: no foreign key, deleting a seller leaves tickets intact
    """
    CREATE TABLE IF NOT EXISTS tickets (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        lottery_id INTEGER NOT NULL,
        ticket_number INTEGER NOT NULL CHECK (ticket_number >= 1),
        unique_ticket_code TEXT UNIQUE NOT NULL,
        customer_id INTEGER NOT NULL,
        sold_by INTEGER NOT NULL,
        sold_at TIMESTAMP NOT NULL,
        status TEXT NOT NULL DEFAULT 'sold',
        winner_rank INTEGER,
        sms_sent BOOLEAN NOT NULL DEFAULT FALSE,
        sms_sent_at TIMESTAMP,
        winner_sms_sent BOOLEAN NOT NULL DEFAULT FALSE,
        winner_sms_sent_at TIMESTAMP,
        UNIQUE (lottery_id, ticket_number),
        CHECK ((status = 'winner') = (winner_rank IS NOT NULL)),
        FOREIGN KEY(lottery_id) REFERENCES lotteries(id),
        FOREIGN KEY(customer_id) REFERENCES customers(id)
    );
    """,
    "CREATE INDEX IF NOT EXISTS idx_tickets_status ON tickets(lottery_id, status);",
    "CREATE INDEX IF NOT EXISTS idx_tickets_sms ON tickets(sms_sent, sold_at);",
    "CREATE INDEX IF NOT EXISTS idx_tickets_winner_sms ON tickets(winner_sms_sent, lottery_id);",
    "CREATE INDEX IF NOT EXISTS idx_tickets_seller ON tickets(sold_by, sold_at);",
    """
    CREATE TABLE IF NOT EXISTS activity_log (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        action TEXT NOT NULL,
        details TEXT NOT NULL DEFAULT '',
        severity TEXT NOT NULL DEFAULT 'info',
        actor_id INTEGER,
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    );
    """,
    "CREATE INDEX IF NOT EXISTS idx_activity_log_created ON activity_log(created_at);",
)


async def run_migrations(pool: OptimizedSQLitePool) -> None:
    async with pool.connection() as conn:
        await conn.execute("BEGIN")
        try:
            for statement in SCHEMA_SQL:
                await conn.execute(statement)
        except Exception:
            await conn.rollback()
            raise
        else:
            await conn.commit()
    logger.info("Schema ready (%d statements)", len(SCHEMA_SQL))
