"""Lottery lifecycle: creation, edits, closing and deletion."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional, Sequence

from core import get_logger
from core.constants import LotteryDefaults, LotteryStatus, LotteryType
from core.exceptions import InvalidSeller, NotFoundError, StateError, ValidationError
from database.base_repository import utc_now
from database.connection import get_db_pool
from database.models import Lottery, Prize, Ticket
from database.repositories import LotteryRepository, SellerRepository, TicketRepository
from services.cache import invalidate_reports
from services.inventory import can_resize, sold_count
from utils.validators import (
    require_amount,
    require_positive_int,
    require_text,
    validate_prize_title,
)

logger = get_logger(__name__)


def build_prizes(raw: Any, ticket_count: int) -> List[Prize]:
    """Validate a prize list and number it 1..n in the given order."""
    if not isinstance(raw, Sequence) or isinstance(raw, (str, bytes)) or not raw:
        raise ValidationError("At least one prize is required", {"field": "prizes"})
    if len(raw) > ticket_count:
        raise ValidationError(
            "Number of prizes cannot exceed the number of tickets",
            {"prizes": len(raw), "ticketCount": ticket_count},
        )
    prizes = []
    for position, item in enumerate(raw):
        if isinstance(item, Prize):
            item = {"title": item.title, "imageUrl": item.image_url}
        if not isinstance(item, Mapping):
            raise ValidationError(f"Prize {position + 1} must have a title", {"position": position})
        prizes.append(
            Prize(
                rank=position + 1,
                title=validate_prize_title(item.get("title"), position),
                image_url=item.get("imageUrl") or item.get("image_url") or None,
            )
        )
    return prizes


class LotteryService:
    async def create_lottery(
        self,
        title: Any,
        ticket_count: Any,
        ticket_price: Any,
        prizes: Any,
        description: Any = "",
        commission_per_ticket: Any = 0,
        created_by: Optional[int] = None,
    ) -> Lottery:
        title = require_text(title, "title", LotteryDefaults.TITLE_MAX_LENGTH)
        description = require_text(
            description, "description", LotteryDefaults.DESCRIPTION_MAX_LENGTH, required=False
        )
        count = require_positive_int(ticket_count, "ticketCount")
        price = require_amount(ticket_price, "ticketPrice")
        commission = require_amount(commission_per_ticket, "commissionPerTicket", allow_zero=True)
        prize_list = build_prizes(prizes, count)

        lottery_type = LotteryType.COMPANY
        if created_by is not None:
            creator = await SellerRepository.get(created_by)
            if creator is None or not creator.is_active:
                raise InvalidSeller("Creator account is unknown or inactive", {"createdBy": created_by})
            if creator.is_agent:
                lottery_type = LotteryType.AGENT

        pool = get_db_pool()
        async with pool.transaction() as conn:
            lottery_id = await LotteryRepository.insert(
                conn,
                title=title,
                description=description,
                lottery_type=lottery_type.value,
                created_by=created_by,
                ticket_count=count,
                ticket_price=price,
                commission_per_ticket=commission,
                prizes=prize_list,
            )
            lottery = await LotteryRepository.get(lottery_id, conn)

        logger.info("Lottery %s '%s' created with %d tickets", lottery_id, title, count)
        return lottery

    async def get_lottery(self, lottery_id: int) -> Lottery:
        lottery = await LotteryRepository.get(lottery_id)
        if lottery is None:
            raise NotFoundError(f"Lottery {lottery_id} not found", {"lotteryId": lottery_id})
        return lottery

    async def list_lotteries(
        self,
        status: Optional[str] = None,
        lottery_type: Optional[str] = None,
        search: str = "",
        limit: int = 100,
        offset: int = 0,
    ) -> List[Lottery]:
        if status is not None and status not in {s.value for s in LotteryStatus}:
            raise ValidationError("Unknown lottery status", {"status": status})
        if lottery_type is not None and lottery_type not in {t.value for t in LotteryType}:
            raise ValidationError("Unknown lottery type", {"type": lottery_type})
        return await LotteryRepository.search(status, lottery_type, search or "", limit, offset)

    async def sold_counts(self, lotteries: Sequence[Lottery]) -> Dict[int, int]:
        return await TicketRepository.count_by_lottery([lottery.id for lottery in lotteries])

    async def update_lottery(self, lottery_id: int, changes: Mapping[str, Any]) -> Lottery:
        """Apply edits to an active lottery.

        ``ticketCount`` may not drop below the number of tickets sold and a
        new prize list may not hold more prizes than tickets.
        """
        pool = get_db_pool()
        async with pool.transaction() as conn:
            lottery = await LotteryRepository.get(lottery_id, conn)
            if lottery is None:
                raise NotFoundError(f"Lottery {lottery_id} not found", {"lotteryId": lottery_id})
            if lottery.is_ended:
                raise StateError("Cannot edit an ended lottery", {"lotteryId": lottery_id})

            fields: Dict[str, Any] = {}
            if "title" in changes:
                fields["title"] = require_text(changes["title"], "title", LotteryDefaults.TITLE_MAX_LENGTH)
            if "description" in changes:
                fields["description"] = require_text(
                    changes["description"], "description",
                    LotteryDefaults.DESCRIPTION_MAX_LENGTH, required=False,
                )
            if "ticketPrice" in changes:
                fields["ticket_price"] = require_amount(changes["ticketPrice"], "ticketPrice")
            if "commissionPerTicket" in changes:
                fields["commission_per_ticket"] = require_amount(
                    changes["commissionPerTicket"], "commissionPerTicket", allow_zero=True
                )

            new_count = lottery.ticket_count
            if "ticketCount" in changes:
                new_count = require_positive_int(changes["ticketCount"], "ticketCount")
                if not await can_resize(lottery, new_count, conn):
                    sold = await sold_count(lottery_id, conn)
                    raise ValidationError(
                        f"Ticket count cannot be less than sold tickets ({sold})",
                        {"ticketCount": new_count, "soldTickets": sold},
                    )
                fields["ticket_count"] = new_count

            prizes = None
            if "prizes" in changes:
                prizes = build_prizes(changes["prizes"], new_count)
            elif len(lottery.prizes) > new_count:
                raise ValidationError(
                    "Number of prizes cannot exceed the number of tickets",
                    {"prizes": len(lottery.prizes), "ticketCount": new_count},
                )

            await LotteryRepository.update_fields(conn, lottery_id, fields)
            if prizes is not None:
                await LotteryRepository.replace_prizes(conn, lottery_id, prizes)
            updated = await LotteryRepository.get(lottery_id, conn)

        invalidate_reports()
        logger.info("Lottery %s updated: %s", lottery_id, sorted(changes))
        return updated

    async def close_lottery(self, lottery_id: int, now: Optional[datetime] = None) -> Lottery:
        lottery = await self.get_lottery(lottery_id)
        if lottery.is_active:
            await LotteryRepository.set_status(lottery_id, LotteryStatus.ENDED, now or utc_now())
            invalidate_reports()
            logger.info("Lottery %s closed", lottery_id)
            lottery = await self.get_lottery(lottery_id)
        return lottery

    async def delete_ticket(self, ticket_id: int) -> Ticket:
        """Delete a sold ticket while its lottery is active or ended without winners."""
        pool = get_db_pool()
        async with pool.transaction() as conn:
            ticket = await TicketRepository.get(ticket_id, conn)
            if ticket is None:
                raise NotFoundError(f"Ticket {ticket_id} not found", {"ticketId": ticket_id})
            lottery = await LotteryRepository.get(ticket.lottery_id, conn)
            if lottery.is_ended and lottery.has_winners:
                raise StateError(
                    "Tickets cannot be deleted once winners are entered",
                    {"ticketId": ticket_id, "lotteryId": lottery.id},
                )
            await TicketRepository.delete(conn, ticket_id)

        invalidate_reports()
        logger.info("Ticket %s deleted", ticket.unique_ticket_code)
        return ticket

    async def delete_lottery(self, lottery_id: int) -> None:
        pool = get_db_pool()
        async with pool.transaction() as conn:
            lottery = await LotteryRepository.get(lottery_id, conn)
            if lottery is None:
                raise NotFoundError(f"Lottery {lottery_id} not found", {"lotteryId": lottery_id})
            if lottery.has_winners:
                raise StateError("Cannot delete a lottery with recorded winners", {"lotteryId": lottery_id})
            await LotteryRepository.delete(conn, lottery_id)

        invalidate_reports()
        logger.info("Lottery %s deleted", lottery_id)
