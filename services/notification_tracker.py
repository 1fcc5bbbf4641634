"""SMS acknowledgment queues for operators.

Messages are typed and sent by an operator from a phone; this module only
lists what still needs sending and records the operator's confirmation.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional

from core import get_logger
from core.constants import LotteryStatus, ReportDefaults, TicketStatus
from core.exceptions import NotFoundError
from database.base_repository import db_timestamp, utc_now
from database.models import Ticket
from database.repositories import TicketRepository
from services.commission import compute_trend
from utils.performance import monitor

logger = get_logger(__name__)

SALE = "sale"
WINNER = "winner"


class NotificationTracker:
    """Pending sale and winner-announcement SMS, and their acknowledgment."""

    def __init__(self, trend_clamp: float = ReportDefaults.TREND_CLAMP) -> None:
        self.trend_clamp = trend_clamp

    async def pending_sale_notifications(self, lottery_id: Optional[int] = None) -> List[Ticket]:
        return await TicketRepository.list_pending_sale_sms(lottery_id)

    async def pending_winner_notifications(self, lottery_id: Optional[int] = None) -> Dict[str, List[Ticket]]:
        tickets = await TicketRepository.list_pending_winner_sms(lottery_id)
        return {
            "winner_tickets": [t for t in tickets if t.status is TicketStatus.WINNER],
            "non_winner_tickets": [t for t in tickets if t.status is not TicketStatus.WINNER],
        }

    async def mark_sale_sent(self, ticket_id: int, now: Optional[datetime] = None) -> Ticket:
        """Record that the sale SMS went out; repeating the call changes nothing."""
        changed = await TicketRepository.mark_sale_sms_sent(ticket_id, now or utc_now())
        return await self._acknowledged(ticket_id, SALE, changed)

    async def mark_winner_sent(self, ticket_id: int, now: Optional[datetime] = None) -> Ticket:
        """Record that the winner announcement went out; repeating the call changes nothing."""
        changed = await TicketRepository.mark_winner_sms_sent(ticket_id, now or utc_now())
        return await self._acknowledged(ticket_id, WINNER, changed)

    async def _acknowledged(self, ticket_id: int, kind: str, changed: int) -> Ticket:
        ticket = await TicketRepository.get(ticket_id)
        if ticket is None:
            raise NotFoundError(f"Ticket {ticket_id} not found", {"ticketId": ticket_id})
        if changed:
            monitor.record_acknowledgment(kind)
            logger.info("%s SMS for ticket %s acknowledged", kind.capitalize(), ticket.unique_ticket_code)
        else:
            logger.debug("%s SMS for ticket %s was already acknowledged", kind.capitalize(), ticket_id)
        return ticket

    async def operator_stats(self, now: Optional[datetime] = None) -> dict:
        """Queue sizes and acknowledgments in the last 24 hours, with trends.

        Pending counts are compared with the tickets that became pending in
        the previous 24 hours.
        """
        now = now or utc_now()
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)
        day = timedelta(hours=ReportDefaults.TODAY_HOURS)
        start, prev_start = db_timestamp(now - day), db_timestamp(now - 2 * day)
        end = db_timestamp(now)
        resolved = "l.status=? AND l.winning_ticket_numbers<>'[]'"
        sold = f"t.status IN ('{TicketStatus.SOLD.value}', '{TicketStatus.WINNER.value}')"
        ended = LotteryStatus.ENDED.value

        pending_sms = await TicketRepository.count_where(f"t.sms_sent=FALSE AND {sold}")
        new_pending = await TicketRepository.count_where(
            f"t.sms_sent=FALSE AND {sold} AND t.sold_at>=? AND t.sold_at<?", (start, end)
        )
        prev_pending = await TicketRepository.count_where(
            f"t.sms_sent=FALSE AND {sold} AND t.sold_at>=? AND t.sold_at<?", (prev_start, start)
        )
        sent_today = await TicketRepository.count_where(
            "t.sms_sent_at>=? AND t.sms_sent_at<?", (start, end)
        )
        sent_yesterday = await TicketRepository.count_where(
            "t.sms_sent_at>=? AND t.sms_sent_at<?", (prev_start, start)
        )

        pending_winner = await TicketRepository.count_where(
            f"t.winner_sms_sent=FALSE AND {resolved}", (ended,)
        )
        new_pending_winner = await TicketRepository.count_where(
            f"t.winner_sms_sent=FALSE AND {resolved} AND l.resolved_at>=? AND l.resolved_at<?",
            (ended, start, end),
        )
        prev_pending_winner = await TicketRepository.count_where(
            f"t.winner_sms_sent=FALSE AND {resolved} AND l.resolved_at>=? AND l.resolved_at<?",
            (ended, prev_start, start),
        )
        winner_sent_today = await TicketRepository.count_where(
            "t.winner_sms_sent_at>=? AND t.winner_sms_sent_at<?", (start, end)
        )
        winner_sent_yesterday = await TicketRepository.count_where(
            "t.winner_sms_sent_at>=? AND t.winner_sms_sent_at<?", (prev_start, start)
        )

        def stat(value: int, current: int, previous: int) -> dict:
            return {"value": value, "trend": compute_trend(current, previous, self.trend_clamp)}

        return {
            "pendingSms": stat(pending_sms, new_pending, prev_pending),
            "smsSentToday": stat(sent_today, sent_today, sent_yesterday),
            "pendingWinnerSms": stat(pending_winner, new_pending_winner, prev_pending_winner),
            "winnerSmsSentToday": stat(winner_sent_today, winner_sent_today, winner_sent_yesterday),
        }
