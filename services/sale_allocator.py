"""Ticket sales: the only writer that creates ticket records."""

from __future__ import annotations

import sqlite3
from datetime import datetime
from typing import Any, AsyncIterator, List, Optional

from core import get_logger
from core.constants import SELLING_ROLES, LotteryDefaults
from core.exceptions import (
    InvalidSeller,
    InvalidTicketNumber,
    LotteryNotActive,
    NotFoundError,
    TicketAlreadySold,
)
from database.base_repository import utc_now
from database.connection import get_db_pool
from database.models import Ticket
from database.repositories import (
    CustomerRepository,
    LotteryRepository,
    SellerRepository,
    TicketRepository,
)
from services.cache import invalidate_reports
from services.inventory import ticket_range
from utils.performance import monitor
from utils.validators import clean_customer_name, normalize_phone, parse_ticket_number

logger = get_logger(__name__)


class SaleAllocator:
    """Reserves ticket numbers for customers.

    At most one sale per (lottery, ticket number) ever succeeds. The check
    is not done in Python: the ``UNIQUE(lottery_id, ticket_number)`` index
    rejects the second insert and that rejection becomes
    ``TicketAlreadySold``.
    """

    async def sell(
        self,
        lottery_id: int,
        ticket_number: Any,
        customer_name: Any,
        customer_phone: Any,
        sold_by: int,
        now: Optional[datetime] = None,
    ) -> Ticket:
        number = parse_ticket_number(ticket_number)
        name = clean_customer_name(customer_name)
        phone = normalize_phone(customer_phone if isinstance(customer_phone, str) else "")
        sold_at = now or utc_now()

        pool = get_db_pool()
        with monitor.track_operation("sell"):
            try:
                async with pool.transaction() as conn:
                    lottery = await LotteryRepository.get(lottery_id, conn)
                    if lottery is None:
                        raise NotFoundError(f"Lottery {lottery_id} not found", {"lotteryId": lottery_id})
                    if not lottery.is_active:
                        raise LotteryNotActive(
                            "This lottery is no longer active",
                            {"lotteryId": lottery_id, "status": lottery.status.value},
                        )
                    if number not in ticket_range(lottery):
                        raise InvalidTicketNumber(
                            f"Ticket number must be between 1 and {lottery.ticket_count}",
                            {"lotteryId": lottery_id, "ticketNumber": number, "ticketCount": lottery.ticket_count},
                        )

                    seller = await SellerRepository.get(sold_by, conn)
                    if seller is None or not seller.is_active or seller.role.value not in SELLING_ROLES:
                        raise InvalidSeller("Seller is not allowed to sell tickets", {"sellerId": sold_by})

                    customer_id = await CustomerRepository.upsert(conn, name, phone)
                    try:
                        ticket = await TicketRepository.insert(
                            conn,
                            lottery_id=lottery_id,
                            ticket_number=number,
                            customer_id=customer_id,
                            sold_by=sold_by,
                            sold_at=sold_at,
                        )
                    except sqlite3.IntegrityError:
                        raise TicketAlreadySold(lottery_id, number) from None
            except TicketAlreadySold:
                monitor.record_sale_conflict()
                logger.info("Ticket %s of lottery %s already sold; sale by %s rejected", number, lottery_id, sold_by)
                raise

        monitor.record_sale()
        invalidate_reports()
        logger.info("Ticket %s of lottery %s sold by %s", number, lottery_id, sold_by)

        ticket.customer_name = name
        ticket.customer_phone = phone
        ticket.lottery_title = lottery.title
        return ticket

    async def iter_sold(
        self,
        lottery_id: int,
        after: int = 0,
        chunk_size: int = LotteryDefaults.SOLD_NUMBERS_CHUNK,
    ) -> AsyncIterator[int]:
        """Sold ticket numbers in ascending order, starting after ``after``.

        Each chunk is read separately, so iteration can be abandoned and
        resumed from the last number seen.
        """
        async for row in TicketRepository.iter_sold_numbers(lottery_id, after, chunk_size):
            yield row["ticket_number"]

    async def list_sold(self, lottery_id: int) -> List[int]:
        if await LotteryRepository.get(lottery_id) is None:
            raise NotFoundError(f"Lottery {lottery_id} not found", {"lotteryId": lottery_id})
        return [number async for number in self.iter_sold(lottery_id)]
