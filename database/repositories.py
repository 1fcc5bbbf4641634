"""Database access layer helpers."""

from __future__ import annotations

import json
import sqlite3
from datetime import datetime
from typing import Any, AsyncIterator, Dict, List, Optional, Sequence

import aiosqlite

from core.constants import LotteryStatus, TicketStatus
from database.base_repository import BaseRepository, db_timestamp
from database.models import (
    ActivityEntry,
    Customer,
    Lottery,
    Prize,
    Seller,
    Ticket,
    WinnerRow,
    _parse_ts,
)

TICKET_DETAIL_SELECT = """
    SELECT t.*, c.name AS customer_name, c.phone AS customer_phone, l.title AS lottery_title
    FROM tickets t
    JOIN customers c ON c.id = t.customer_id
    JOIN lotteries l ON l.id = t.lottery_id
"""


class SellerRepository(BaseRepository):
    """Staff and agent accounts, as far as ticket sales need them."""

    @staticmethod
    async def create(
        name: str,
        phone: str,
        role: str,
        commission_rate: float = 0.0,
        is_active: bool = True,
    ) -> Seller:
        row = await BaseRepository.fetch_one(
            """
            INSERT INTO sellers (name, phone, role, commission_rate, is_active)
            VALUES (?, ?, ?, ?, ?)
            RETURNING *
            """,
            (name, phone, role, commission_rate, is_active),
        )
        return Seller.from_row(row)

    @staticmethod
    async def get(seller_id: int, conn: Optional[aiosqlite.Connection] = None) -> Optional[Seller]:
        row = await BaseRepository.fetch_one("SELECT * FROM sellers WHERE id=?", (seller_id,), conn)
        return Seller.from_row(row) if row else None

    @staticmethod
    async def get_many(seller_ids: Sequence[int]) -> Dict[int, Seller]:
        if not seller_ids:
            return {}
        placeholders = ",".join(["?"] * len(seller_ids))
        rows = await BaseRepository.fetch_all(
            f"SELECT * FROM sellers WHERE id IN ({placeholders})",
            tuple(seller_ids),
        )
        return {row["id"]: Seller.from_row(row) for row in rows}

    @staticmethod
    async def delete(seller_id: int) -> bool:
        return await BaseRepository.execute("DELETE FROM sellers WHERE id=?", (seller_id,)) == 1


class LotteryRepository(BaseRepository):
    """Repository for lotteries and their prize lists."""

    @staticmethod
    async def _load_prizes(
        lottery_ids: Sequence[int],
        conn: Optional[aiosqlite.Connection] = None,
    ) -> Dict[int, List[Prize]]:
        if not lottery_ids:
            return {}
        placeholders = ",".join(["?"] * len(lottery_ids))
        rows = await BaseRepository.fetch_all(
            f"SELECT * FROM prizes WHERE lottery_id IN ({placeholders}) ORDER BY lottery_id, rank",
            tuple(lottery_ids),
            conn,
        )
        prizes: Dict[int, List[Prize]] = {}
        for row in rows:
            prizes.setdefault(row["lottery_id"], []).append(
                Prize(rank=row["rank"], title=row["title"], image_url=row["image_url"])
            )
        return prizes

    @staticmethod
    async def insert(
        conn: aiosqlite.Connection,
        *,
        title: str,
        description: str,
        lottery_type: str,
        created_by: Optional[int],
        ticket_count: int,
        ticket_price: float,
        commission_per_ticket: float,
        prizes: Sequence[Prize],
    ) -> int:
        row = await BaseRepository.fetch_one(
            """
            INSERT INTO lotteries (
                title, description, type, created_by, ticket_count,
                ticket_price, commission_per_ticket, status
            )
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            RETURNING id
            """,
            (
                title, description, lottery_type, created_by, ticket_count,
                ticket_price, commission_per_ticket, LotteryStatus.ACTIVE.value,
            ),
            conn,
        )
        lottery_id = row["id"]
        await LotteryRepository.replace_prizes(conn, lottery_id, prizes)
        return lottery_id

    @staticmethod
    async def replace_prizes(conn: aiosqlite.Connection, lottery_id: int, prizes: Sequence[Prize]) -> None:
        await BaseRepository.execute("DELETE FROM prizes WHERE lottery_id=?", (lottery_id,), conn)
        await BaseRepository.execute_many(
            "INSERT INTO prizes (lottery_id, rank, title, image_url) VALUES (?, ?, ?, ?)",
            [(lottery_id, p.rank, p.title, p.image_url) for p in prizes],
            conn,
        )

    @staticmethod
    async def get(lottery_id: int, conn: Optional[aiosqlite.Connection] = None) -> Optional[Lottery]:
        row = await BaseRepository.fetch_one("SELECT * FROM lotteries WHERE id=?", (lottery_id,), conn)
        if row is None:
            return None
        prizes = await LotteryRepository._load_prizes([lottery_id], conn)
        return Lottery.from_row(row, prizes.get(lottery_id, []))

    @staticmethod
    async def search(
        status: Optional[str] = None,
        lottery_type: Optional[str] = None,
        search: str = "",
        limit: int = 100,
        offset: int = 0,
    ) -> List[Lottery]:
        query = "SELECT * FROM lotteries"
        conditions: List[str] = []
        params: List[Any] = []
        if status:
            conditions.append("status=?")
            params.append(status)
        if lottery_type:
            conditions.append("type=?")
            params.append(lottery_type)
        if search:
            conditions.append("title LIKE ?")
            params.append(f"%{search}%")
        if conditions:
            query += " WHERE " + " AND ".join(conditions)
        # active before ended, newest first within each status
        query += " ORDER BY status ASC, created_at DESC, id DESC LIMIT ? OFFSET ?"
        params.extend([limit, offset])

        rows = await BaseRepository.fetch_all(query, params)
        prizes = await LotteryRepository._load_prizes([row["id"] for row in rows])
        return [Lottery.from_row(row, prizes.get(row["id"], [])) for row in rows]

    @staticmethod
    async def list_awaiting_resolution() -> List[Lottery]:
        rows = await BaseRepository.fetch_all(
            "SELECT * FROM lotteries WHERE status=? AND winning_ticket_numbers='[]' ORDER BY ended_at DESC",
            (LotteryStatus.ENDED.value,),
        )
        prizes = await LotteryRepository._load_prizes([row["id"] for row in rows])
        return [Lottery.from_row(row, prizes.get(row["id"], [])) for row in rows]

    @staticmethod
    async def update_fields(conn: aiosqlite.Connection, lottery_id: int, fields: Dict[str, Any]) -> None:
        if not fields:
            return
        assignments = ", ".join(f"{column}=?" for column in fields)
        await BaseRepository.execute(
            f"UPDATE lotteries SET {assignments} WHERE id=?",
            (*fields.values(), lottery_id),
            conn,
        )

    @staticmethod
    async def set_status(
        lottery_id: int,
        status: LotteryStatus,
        ended_at: Optional[datetime] = None,
    ) -> int:
        return await BaseRepository.execute(
            "UPDATE lotteries SET status=?, ended_at=COALESCE(?, ended_at) WHERE id=? AND status<>?",
            (status.value, db_timestamp(ended_at) if ended_at else None, lottery_id, status.value),
        )

    @staticmethod
    async def record_winners(
        conn: aiosqlite.Connection,
        lottery_id: int,
        winning_numbers: Sequence[int],
        tiktok_stream_link: Optional[str],
        resolved_at: datetime,
    ) -> int:
        return await BaseRepository.execute(
            """
            UPDATE lotteries
            SET winning_ticket_numbers=?, tiktok_stream_link=?, resolved_at=?
            WHERE id=?
            """,
            (json.dumps(list(winning_numbers)), tiktok_stream_link, db_timestamp(resolved_at), lottery_id),
            conn,
        )

    @staticmethod
    async def delete(conn: aiosqlite.Connection, lottery_id: int) -> None:
        await BaseRepository.execute("DELETE FROM tickets WHERE lottery_id=?", (lottery_id,), conn)
        await BaseRepository.execute("DELETE FROM prizes WHERE lottery_id=?", (lottery_id,), conn)
        await BaseRepository.execute("DELETE FROM lotteries WHERE id=?", (lottery_id,), conn)


class CustomerRepository(BaseRepository):
    """Customers keyed by normalized phone number."""

    @staticmethod
    async def upsert(conn: aiosqlite.Connection, name: str, phone: str) -> int:
        """Return the customer id for ``phone``, creating the customer if absent.

        An existing customer keeps its stored name.
        """
        row = await BaseRepository.fetch_one(
            """
            INSERT INTO customers (name, phone) VALUES (?, ?)
            ON CONFLICT(phone) DO UPDATE SET phone=excluded.phone
            RETURNING id
            """,
            (name, phone),
            conn,
        )
        return row["id"]

    @staticmethod
    async def get_by_phone(phone: str) -> Optional[Customer]:
        row = await BaseRepository.fetch_one("SELECT * FROM customers WHERE phone=?", (phone,))
        if row is None:
            return None
        return Customer(id=row["id"], name=row["name"], phone=row["phone"], created_at=_parse_ts(row["created_at"]))

    @staticmethod
    async def count() -> int:
        return await BaseRepository.fetch_value("SELECT COUNT(*) FROM customers") or 0


class TicketRepository(BaseRepository):
    """Repository for sold tickets."""

    @staticmethod
    async def insert(
        conn: aiosqlite.Connection,
        *,
        lottery_id: int,
        ticket_number: int,
        customer_id: int,
        sold_by: int,
        sold_at: datetime,
    ) -> Ticket:
        """Insert a sold ticket.

        Raises ``sqlite3.IntegrityError`` when the number is already taken.
        """
        row = await BaseRepository.fetch_one(
            """
            INSERT INTO tickets (
                lottery_id, ticket_number, unique_ticket_code, customer_id,
                sold_by, sold_at, status
            )
            VALUES (?, ?, ?, ?, ?, ?, ?)
            RETURNING *
            """,
            (
                lottery_id, ticket_number, f"{lottery_id}-{ticket_number}", customer_id,
                sold_by, db_timestamp(sold_at), TicketStatus.SOLD.value,
            ),
            conn,
        )
        return Ticket.from_row(row)

    @staticmethod
    async def get(ticket_id: int, conn: Optional[aiosqlite.Connection] = None) -> Optional[Ticket]:
        row = await BaseRepository.fetch_one(f"{TICKET_DETAIL_SELECT} WHERE t.id=?", (ticket_id,), conn)
        return Ticket.from_row(row) if row else None

    @staticmethod
    async def exists(lottery_id: int, ticket_number: int) -> bool:
        return await BaseRepository.fetch_value(
            "SELECT 1 FROM tickets WHERE lottery_id=? AND ticket_number=?",
            (lottery_id, ticket_number),
        ) is not None

    @staticmethod
    async def count_for_lottery(lottery_id: int, conn: Optional[aiosqlite.Connection] = None) -> int:
        return await BaseRepository.fetch_value(
            "SELECT COUNT(*) FROM tickets WHERE lottery_id=?", (lottery_id,), conn
        ) or 0

    @staticmethod
    async def count_by_lottery(lottery_ids: Sequence[int]) -> Dict[int, int]:
        if not lottery_ids:
            return {}
        placeholders = ",".join(["?"] * len(lottery_ids))
        rows = await BaseRepository.fetch_all(
            f"SELECT lottery_id, COUNT(*) AS sold FROM tickets "
            f"WHERE lottery_id IN ({placeholders}) GROUP BY lottery_id",
            tuple(lottery_ids),
        )
        return {row["lottery_id"]: row["sold"] for row in rows}

    @staticmethod
    def iter_sold_numbers(lottery_id: int, after: int = 0, page_size: int = 500) -> AsyncIterator[sqlite3.Row]:
        return BaseRepository.iter_pages(
            "SELECT ticket_number FROM tickets WHERE lottery_id=? AND ticket_number>? "
            "ORDER BY ticket_number LIMIT ?",
            (lottery_id,),
            after,
            page_size,
        )

    @staticmethod
    async def by_numbers(
        conn: aiosqlite.Connection,
        lottery_id: int,
        ticket_numbers: Sequence[int],
    ) -> Dict[int, Ticket]:
        if not ticket_numbers:
            return {}
        placeholders = ",".join(["?"] * len(ticket_numbers))
        rows = await BaseRepository.fetch_all(
            f"SELECT * FROM tickets WHERE lottery_id=? AND ticket_number IN ({placeholders})",
            (lottery_id, *ticket_numbers),
            conn,
        )
        return {row["ticket_number"]: Ticket.from_row(row) for row in rows}

    @staticmethod
    async def list_for_lottery(lottery_id: int) -> List[Ticket]:
        rows = await BaseRepository.fetch_all(
            f"{TICKET_DETAIL_SELECT} WHERE t.lottery_id=? ORDER BY t.ticket_number",
            (lottery_id,),
        )
        return [Ticket.from_row(row) for row in rows]

    @staticmethod
    async def clear_winners(conn: aiosqlite.Connection, lottery_id: int) -> int:
        return await BaseRepository.execute(
            """
            UPDATE tickets
            SET status=?, winner_rank=NULL, winner_sms_sent=FALSE, winner_sms_sent_at=NULL
            WHERE lottery_id=? AND status=?
            """,
            (TicketStatus.SOLD.value, lottery_id, TicketStatus.WINNER.value),
            conn,
        )

    @staticmethod
    async def mark_winner(
        conn: aiosqlite.Connection,
        lottery_id: int,
        ticket_number: int,
        rank: int,
        allowed_statuses: Sequence[str],
    ) -> int:
        placeholders = ",".join(["?"] * len(allowed_statuses))
        return await BaseRepository.execute(
            f"""
            UPDATE tickets
            SET status=?, winner_rank=?, winner_sms_sent=FALSE, winner_sms_sent_at=NULL
            WHERE lottery_id=? AND ticket_number=? AND status IN ({placeholders})
            """,
            (TicketStatus.WINNER.value, rank, lottery_id, ticket_number, *allowed_statuses),
            conn,
        )

    @staticmethod
    async def list_winners(lottery_id: Optional[int] = None) -> List[WinnerRow]:
        query = """
            SELECT t.id, t.lottery_id, l.title AS lottery_title, t.ticket_number,
                   t.unique_ticket_code, t.winner_rank, COALESCE(p.title, '') AS prize_title,
                   c.name AS customer_name, c.phone AS customer_phone, t.winner_sms_sent
            FROM tickets t
            JOIN lotteries l ON l.id = t.lottery_id
            JOIN customers c ON c.id = t.customer_id
            LEFT JOIN prizes p ON p.lottery_id = t.lottery_id AND p.rank = t.winner_rank
            WHERE t.status=?
        """
        params: List[Any] = [TicketStatus.WINNER.value]
        if lottery_id is not None:
            query += " AND t.lottery_id=?"
            params.append(lottery_id)
        query += " ORDER BY t.lottery_id DESC, t.winner_rank ASC"
        rows = await BaseRepository.fetch_all(query, params)
        return [
            WinnerRow(
                ticket_id=row["id"],
                lottery_id=row["lottery_id"],
                lottery_title=row["lottery_title"],
                ticket_number=row["ticket_number"],
                unique_ticket_code=row["unique_ticket_code"],
                winner_rank=row["winner_rank"],
                prize_title=row["prize_title"],
                customer_name=row["customer_name"],
                customer_phone=row["customer_phone"],
                winner_sms_sent=bool(row["winner_sms_sent"]),
            )
            for row in rows
        ]

    @staticmethod
    async def list_pending_sale_sms(lottery_id: Optional[int] = None) -> List[Ticket]:
        query = f"{TICKET_DETAIL_SELECT} WHERE t.sms_sent=FALSE AND t.status IN (?, ?)"
        params: List[Any] = [TicketStatus.SOLD.value, TicketStatus.WINNER.value]
        if lottery_id is not None:
            query += " AND t.lottery_id=?"
            params.append(lottery_id)
        query += " ORDER BY t.sold_at DESC, t.id DESC"
        rows = await BaseRepository.fetch_all(query, params)
        return [Ticket.from_row(row) for row in rows]

    @staticmethod
    async def list_pending_winner_sms(lottery_id: Optional[int] = None) -> List[Ticket]:
        """Unacknowledged winner-announcement tickets of resolved, ended lotteries."""
        query = (
            f"{TICKET_DETAIL_SELECT} WHERE t.winner_sms_sent=FALSE "
            "AND l.status=? AND l.winning_ticket_numbers<>'[]'"
        )
        params: List[Any] = [LotteryStatus.ENDED.value]
        if lottery_id is not None:
            query += " AND t.lottery_id=?"
            params.append(lottery_id)
        query += " ORDER BY t.winner_rank IS NULL, t.winner_rank, t.sold_at DESC"
        rows = await BaseRepository.fetch_all(query, params)
        return [Ticket.from_row(row) for row in rows]

    @staticmethod
    async def mark_sale_sms_sent(ticket_id: int, sent_at: datetime) -> int:
        return await BaseRepository.execute(
            "UPDATE tickets SET sms_sent=TRUE, sms_sent_at=? WHERE id=? AND sms_sent=FALSE",
            (db_timestamp(sent_at), ticket_id),
        )

    @staticmethod
    async def mark_winner_sms_sent(ticket_id: int, sent_at: datetime) -> int:
        return await BaseRepository.execute(
            "UPDATE tickets SET winner_sms_sent=TRUE, winner_sms_sent_at=? WHERE id=? AND winner_sms_sent=FALSE",
            (db_timestamp(sent_at), ticket_id),
        )

    @staticmethod
    async def count_where(condition: str, params: Sequence[Any] = ()) -> int:
        return await BaseRepository.fetch_value(
            f"SELECT COUNT(*) FROM tickets t JOIN lotteries l ON l.id = t.lottery_id WHERE {condition}",
            params,
        ) or 0

    @staticmethod
    async def sales_rows(
        lottery_id: Optional[int] = None,
        seller_id: Optional[int] = None,
        since: Optional[datetime] = None,
        until: Optional[datetime] = None,
    ) -> List[sqlite3.Row]:
        """Ticket rows joined with their lottery's pricing, for commission reports."""
        query = """
            SELECT t.id, t.lottery_id, t.ticket_number, t.sold_by, t.sold_at,
                   l.title AS lottery_title, l.ticket_price, l.commission_per_ticket
            FROM tickets t
            JOIN lotteries l ON l.id = t.lottery_id
            WHERE t.status IN (?, ?)
        """
        params: List[Any] = [TicketStatus.SOLD.value, TicketStatus.WINNER.value]
        if lottery_id is not None:
            query += " AND t.lottery_id=?"
            params.append(lottery_id)
        if seller_id is not None:
            query += " AND t.sold_by=?"
            params.append(seller_id)
        if since is not None:
            query += " AND t.sold_at>=?"
            params.append(db_timestamp(since))
        if until is not None:
            query += " AND t.sold_at<?"
            params.append(db_timestamp(until))
        query += " ORDER BY t.sold_at"
        return await BaseRepository.fetch_all(query, params)

    @staticmethod
    async def delete(conn: aiosqlite.Connection, ticket_id: int) -> int:
        return await BaseRepository.execute("DELETE FROM tickets WHERE id=?", (ticket_id,), conn)


class ActivityRepository(BaseRepository):
    """Append-only operator activity log."""

    @staticmethod
    async def insert(
        action: str,
        details: str,
        severity: str,
        actor_id: Optional[int],
        created_at: datetime,
    ) -> int:
        row = await BaseRepository.fetch_one(
            """
            INSERT INTO activity_log (action, details, severity, actor_id, created_at)
            VALUES (?, ?, ?, ?, ?)
            RETURNING id
            """,
            (action, details, severity, actor_id, db_timestamp(created_at)),
        )
        return row["id"]

    @staticmethod
    async def recent(limit: int = 20) -> List[ActivityEntry]:
        rows = await BaseRepository.fetch_all(
            "SELECT * FROM activity_log ORDER BY created_at DESC, id DESC LIMIT ?",
            (limit,),
        )
        return [
            ActivityEntry(
                id=row["id"],
                action=row["action"],
                details=row["details"],
                severity=row["severity"],
                actor_id=row["actor_id"],
                created_at=_parse_ts(row["created_at"]),
            )
            for row in rows
        ]
