"""Base repository pattern for database operations."""

from __future__ import annotations

import sqlite3
from datetime import datetime, timezone
from typing import Any, AsyncIterator, List, Optional, Sequence

import aiosqlite

from database.connection import get_db_pool


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def db_timestamp(value: datetime) -> str:
    """Serialize a timestamp so that string order matches time order."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec="microseconds")


class BaseRepository:
    """Base repository with common database operations.

    Every helper accepts an optional ``conn`` so that callers holding a
    transaction can reuse it; without one a pooled connection is borrowed
    for the single statement. Cursors are always closed before returning
    so that no statement keeps the write lock.
    """

    @staticmethod
    async def _run(conn: aiosqlite.Connection, query: str, params: Sequence[Any], fetch: str) -> Any:
        async with conn.execute(query, params) as cursor:
            if fetch == "one":
                rows = await cursor.fetchall()
                return rows[0] if rows else None
            if fetch == "all":
                return list(await cursor.fetchall())
            return cursor.rowcount

    @staticmethod
    async def _dispatch(
        query: str,
        params: Sequence[Any],
        conn: Optional[aiosqlite.Connection],
        fetch: str,
    ) -> Any:
        if conn is not None:
            return await BaseRepository._run(conn, query, params, fetch)
        pool = get_db_pool()
        async with pool.connection() as pooled:
            return await BaseRepository._run(pooled, query, params, fetch)

    @staticmethod
    async def execute(
        query: str,
        params: Sequence[Any] = (),
        conn: Optional[aiosqlite.Connection] = None,
    ) -> int:
        """Execute a statement and return the affected row count."""
        return await BaseRepository._dispatch(query, params, conn, "rowcount")

    @staticmethod
    async def execute_many(
        query: str,
        params: Sequence[Sequence[Any]],
        conn: Optional[aiosqlite.Connection] = None,
    ) -> None:
        """Execute a query multiple times with different parameters."""
        if conn is not None:
            await conn.executemany(query, params)
            return
        pool = get_db_pool()
        async with pool.transaction() as tx:
            await tx.executemany(query, params)

    @staticmethod
    async def fetch_one(
        query: str,
        params: Sequence[Any] = (),
        conn: Optional[aiosqlite.Connection] = None,
    ) -> Optional[sqlite3.Row]:
        """Fetch a single row."""
        return await BaseRepository._dispatch(query, params, conn, "one")

    @staticmethod
    async def fetch_all(
        query: str,
        params: Sequence[Any] = (),
        conn: Optional[aiosqlite.Connection] = None,
    ) -> List[sqlite3.Row]:
        """Fetch all rows."""
        return await BaseRepository._dispatch(query, params, conn, "all")

    @staticmethod
    async def fetch_value(
        query: str,
        params: Sequence[Any] = (),
        conn: Optional[aiosqlite.Connection] = None,
    ) -> Optional[Any]:
        """Fetch a single value from a single row."""
        row = await BaseRepository.fetch_one(query, params, conn)
        return row[0] if row else None

    @staticmethod
    async def iter_pages(
        query: str,
        params: Sequence[Any],
        start_after: Any,
        page_size: int,
    ) -> AsyncIterator[sqlite3.Row]:
        """Keyset pagination over ``query``.

        ``query`` must take the cursor value and page size as its last two
        parameters and order by the cursor column; the first column of each
        row is used as the next cursor. Each page borrows a connection only
        for its own fetch.
        """
        cursor_value = start_after
        while True:
            rows = await BaseRepository.fetch_all(query, (*params, cursor_value, page_size))
            for row in rows:
                yield row
            if len(rows) < page_size:
                return
            cursor_value = rows[-1][0]
