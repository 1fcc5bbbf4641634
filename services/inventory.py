"""Ticket number space and lottery preconditions."""

from __future__ import annotations

from typing import Optional

import aiosqlite

from core.exceptions import StateError
from database.models import Lottery
from database.repositories import TicketRepository


def ticket_range(lottery: Lottery) -> range:
    """Valid ticket numbers of ``lottery``: 1 through ``ticket_count``."""
    return range(1, lottery.ticket_count + 1)


async def sold_count(lottery_id: int, conn: Optional[aiosqlite.Connection] = None) -> int:
    return await TicketRepository.count_for_lottery(lottery_id, conn)


async def is_sellable(lottery: Lottery, ticket_number: int) -> bool:
    """True when ``lottery`` is active, the number is in range and not yet sold.

    Advisory only: a sale is decided by the unique index when the ticket is
    inserted.
    """
    if not lottery.is_active:
        return False
    if ticket_number not in ticket_range(lottery):
        return False
    return not await TicketRepository.exists(lottery.id, ticket_number)


async def can_resize(
    lottery: Lottery,
    new_count: int,
    conn: Optional[aiosqlite.Connection] = None,
) -> bool:
    """True when ``new_count`` leaves room for every ticket already sold.

    Raises ``StateError`` for an ended lottery.
    """
    if lottery.is_ended:
        raise StateError(
            "Cannot resize an ended lottery",
            {"lotteryId": lottery.id, "status": lottery.status.value},
        )
    return new_count >= await sold_count(lottery.id, conn)
