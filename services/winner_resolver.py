"""Winner resolution for ended lotteries."""

from __future__ import annotations

import sqlite3
from collections import Counter
from datetime import datetime
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Union

import aiosqlite

from core import get_logger
from core.constants import TicketStatus
from core.exceptions import (
    AlreadyResolved,
    LotteryNotEnded,
    NotFoundError,
    ResolutionConflict,
    UnknownPrizeRank,
    ValidationError,
    Violation,
    WinnerValidationError,
)
from database.base_repository import utc_now
from database.connection import get_db_pool
from database.models import Lottery, RankAssignment, WinnerRow
from database.repositories import LotteryRepository, TicketRepository
from services.cache import invalidate_reports
from utils.performance import monitor
from utils.validators import parse_ticket_number, require_positive_int

logger = get_logger(__name__)

AssignmentInput = Union[RankAssignment, Mapping[str, object]]


def parse_assignments(raw: Iterable[AssignmentInput]) -> List[RankAssignment]:
    """Coerce ``{"rank": .., "ticketNumber": ..}`` mappings into ``RankAssignment`` values."""
    if raw is None:
        raise ValidationError("winningTickets is required", {"field": "winningTickets"})
    assignments: List[RankAssignment] = []
    for position, item in enumerate(raw):
        if isinstance(item, RankAssignment):
            assignments.append(item)
            continue
        if not isinstance(item, Mapping):
            raise ValidationError(
                "Each winning ticket must have a rank and a ticket number",
                {"position": position},
            )
        rank = require_positive_int(item.get("rank"), f"winningTickets[{position}].rank")
        number = item.get("ticketNumber", item.get("ticket_number"))
        assignments.append(RankAssignment(rank=rank, ticket_number=parse_ticket_number(number)))
    return assignments


def collect_violations(
    prize_ranks: Sequence[int],
    assignments: Sequence[RankAssignment],
    eligible_numbers: Iterable[int],
) -> List[Violation]:
    """Every broken assignment rule, in rank order, without touching storage."""
    violations: List[Violation] = []
    rank_counts = Counter(a.rank for a in assignments)
    ticket_counts = Counter(a.ticket_number for a in assignments)
    eligible = set(eligible_numbers)

    for rank in sorted(prize_ranks):
        if rank_counts[rank] == 0:
            violations.append(Violation("missing_rank", rank=rank))
        elif rank_counts[rank] > 1:
            violations.append(Violation("duplicate_rank", rank=rank))

    reported = set()
    for assignment in assignments:
        number = assignment.ticket_number
        if number in reported:
            continue
        if ticket_counts[number] > 1:
            violations.append(Violation("duplicate_ticket", ticket_number=number))
            reported.add(number)
        if number not in eligible:
            violations.append(Violation("ticket_not_sold", ticket_number=number))
            reported.add(number)
    return violations


class WinnerResolver:
    """Binds prize ranks to sold tickets of an ended lottery.

    Validation happens before anything is written and the commit is a
    single transaction, so a rejected or interrupted call leaves every
    ticket and the lottery as they were.
    """

    async def resolve(
        self,
        lottery_id: int,
        tiktok_link: Optional[str],
        assignments: Iterable[AssignmentInput],
        edit_mode: bool = False,
        now: Optional[datetime] = None,
    ) -> Lottery:
        parsed = parse_assignments(assignments)
        resolved_at = now or utc_now()
        eligible_statuses = [TicketStatus.SOLD.value]
        if edit_mode:
            eligible_statuses.append(TicketStatus.WINNER.value)

        pool = get_db_pool()
        with monitor.track_operation("resolve"):
            async with pool.transaction() as conn:
                lottery = await LotteryRepository.get(lottery_id, conn)
                if lottery is None:
                    raise NotFoundError(f"Lottery {lottery_id} not found", {"lotteryId": lottery_id})
                if not lottery.is_ended:
                    raise LotteryNotEnded(
                        "Winners can only be entered for ended lotteries",
                        {"lotteryId": lottery_id, "status": lottery.status.value},
                    )
                if lottery.has_winners and not edit_mode:
                    raise AlreadyResolved(
                        "Winners already entered; use update-winners to change them",
                        {"lotteryId": lottery_id},
                    )

                unknown = [a.rank for a in parsed if a.rank not in lottery.prize_ranks]
                if unknown:
                    raise UnknownPrizeRank(lottery_id, unknown)

                tickets = await TicketRepository.by_numbers(
                    conn, lottery_id, sorted({a.ticket_number for a in parsed})
                )
                eligible = [
                    number for number, ticket in tickets.items()
                    if ticket.status.value in eligible_statuses
                ]
                violations = collect_violations(lottery.prize_ranks, parsed, eligible)
                if violations:
                    raise WinnerValidationError(violations)

                ordered = sorted(parsed, key=lambda a: a.rank)
                winning_numbers = [a.ticket_number for a in ordered]
                try:
                    await self._commit_winners(
                        conn, lottery_id, ordered, tiktok_link, resolved_at, edit_mode
                    )
                except sqlite3.IntegrityError as err:
                    raise ResolutionConflict(
                        "Integrity check failed while winners were being saved",
                        {"lotteryId": lottery_id},
                    ) from err

        monitor.record_resolution(edit_mode)
        invalidate_reports()
        logger.info(
            "Lottery %s resolved (%s): winning numbers %s",
            lottery_id, "edit" if edit_mode else "initial", winning_numbers,
        )

        lottery.winning_ticket_numbers = winning_numbers
        lottery.tiktok_stream_link = tiktok_link
        lottery.resolved_at = resolved_at
        return lottery

    @staticmethod
    async def _commit_winners(
        conn: aiosqlite.Connection,
        lottery_id: int,
        ordered: Sequence[RankAssignment],
        tiktok_link: Optional[str],
        resolved_at: datetime,
        edit_mode: bool,
    ) -> None:
        """Write one resolution; must run inside the caller's transaction."""
        eligible_statuses = [TicketStatus.SOLD.value]
        if edit_mode:
            cleared = await TicketRepository.clear_winners(conn, lottery_id)
            logger.info("Cleared %d previous winner(s) of lottery %s", cleared, lottery_id)

        for assignment in ordered:
            updated = await TicketRepository.mark_winner(
                conn, lottery_id, assignment.ticket_number, assignment.rank, eligible_statuses
            )
            if updated != 1:
                raise ResolutionConflict(
                    f"Ticket {assignment.ticket_number} changed while winners were being saved",
                    {"lotteryId": lottery_id, "rank": assignment.rank,
                     "ticketNumber": assignment.ticket_number},
                )

        winning_numbers = [a.ticket_number for a in ordered]
        if await LotteryRepository.record_winners(
            conn, lottery_id, winning_numbers, tiktok_link, resolved_at
        ) != 1:
            raise ResolutionConflict("Lottery changed while winners were being saved", {"lotteryId": lottery_id})

    async def awaiting_resolution(self) -> List[Lottery]:
        return await LotteryRepository.list_awaiting_resolution()

    async def list_winners(self, lottery_id: Optional[int] = None) -> List[WinnerRow]:
        return await TicketRepository.list_winners(lottery_id)

    async def winners_by_lottery(self) -> Dict[int, List[WinnerRow]]:
        grouped: Dict[int, List[WinnerRow]] = {}
        for row in await self.list_winners():
            grouped.setdefault(row.lottery_id, []).append(row)
        return grouped
