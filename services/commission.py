"""Read-side commission and sales aggregation."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Iterable, List, Optional

from core import get_logger
from core.constants import ReportDefaults
from core.exceptions import NotFoundError
from database.base_repository import utc_now
from database.models import Lottery, Seller, _parse_ts
from database.repositories import LotteryRepository, SellerRepository, TicketRepository
from services.cache import CacheLevel, cached_report, report_key

logger = get_logger(__name__)


def compute_trend(current: float, previous: float, clamp: float = ReportDefaults.TREND_CLAMP) -> float:
    """Percentage change of ``current`` against ``previous``, rounded to 2 places.

    A zero base has no percentage: the result is 0 when both are zero and
    ``clamp`` when something appeared out of nothing.
    """
    if previous == 0:
        return 0.0 if current == 0 else clamp
    return round((current - previous) / previous * 100, 2)


def commission_for_sale(seller: Seller, ticket_price: float, commission_per_ticket: float) -> float:
    """Agents earn a percentage of the price, staff a flat amount per ticket."""
    if seller.is_agent:
        return ticket_price * seller.commission_rate / 100
    return commission_per_ticket


@dataclass(slots=True)
class PeriodStats:
    tickets: int = 0
    commission: float = 0.0

    def add(self, commission: float) -> None:
        self.tickets += 1
        self.commission += commission


@dataclass(slots=True)
class SellerReportRow:
    seller_id: int
    seller_name: str
    role: str
    tickets_sold: int = 0
    amount_collected: float = 0.0
    commission: float = 0.0

    def to_dict(self) -> dict:
        return {
            "sellerId": self.seller_id,
            "sellerName": self.seller_name,
            "role": self.role,
            "ticketsSold": self.tickets_sold,
            "collectedAmount": round(self.amount_collected, 2),
            "commissionEarned": round(self.commission, 2),
        }


@dataclass(slots=True)
class SalesSummary:
    lottery_id: int
    status: str
    total: int
    sold: int
    sellers: List[SellerReportRow] = field(default_factory=list)

    def to_dict(self) -> dict:
        data: Dict[str, Any] = {
            "lotteryId": self.lottery_id,
            "type": self.status,
            "sold": self.sold,
            "unsold": self.total - self.sold,
            "total": self.total,
        }
        if self.status == "ended":
            data["sellers"] = [row.to_dict() for row in self.sellers]
            data["totalSold"] = sum(row.tickets_sold for row in self.sellers)
            data["totalCollected"] = round(sum(row.amount_collected for row in self.sellers), 2)
            data["totalCommission"] = round(sum(row.commission for row in self.sellers), 2)
        return data


class CommissionCalculator:
    """Derives earnings from committed tickets without writing anything."""

    def __init__(self, trend_clamp: float = ReportDefaults.TREND_CLAMP) -> None:
        self.trend_clamp = trend_clamp

    def trend(self, current: float, previous: float) -> float:
        return compute_trend(current, previous, self.trend_clamp)

    async def seller_summary(self, seller_id: int, now: Optional[datetime] = None) -> dict:
        """Tickets and commission for the last 24 hours and the last 7 days.

        Each bucket is compared with the equal-length window right before
        it.
        """
        seller = await SellerRepository.get(seller_id)
        if seller is None:
            raise NotFoundError(f"Seller {seller_id} not found", {"sellerId": seller_id})

        now = now or utc_now()
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)
        day = timedelta(hours=ReportDefaults.TODAY_HOURS)
        week = timedelta(days=ReportDefaults.WEEK_DAYS)
        windows = {
            "today": (now - day, now),
            "previousDay": (now - 2 * day, now - day),
            "week": (now - week, now),
            "previousWeek": (now - 2 * week, now - week),
        }
        stats = {name: PeriodStats() for name in windows}

        earliest = min(start for start, _ in windows.values())
        rows = await TicketRepository.sales_rows(seller_id=seller_id, since=earliest, until=now)
        for row in rows:
            sold_at = _parse_ts(row["sold_at"])
            commission = commission_for_sale(seller, row["ticket_price"], row["commission_per_ticket"])
            for name, (start, end) in windows.items():
                if start <= sold_at < end:
                    stats[name].add(commission)

        all_time = await TicketRepository.count_where("t.sold_by=? AND t.status IN ('sold', 'winner')", (seller_id,))

        def bucket(current: PeriodStats, previous: PeriodStats) -> dict:
            return {
                "ticketsSold": current.tickets,
                "commission": round(current.commission, 2),
                "ticketsTrend": self.trend(current.tickets, previous.tickets),
                "commissionTrend": self.trend(current.commission, previous.commission),
            }

        return {
            "seller": seller.to_dict(),
            "today": bucket(stats["today"], stats["previousDay"]),
            "thisWeek": bucket(stats["week"], stats["previousWeek"]),
            "totalTicketsSold": all_time,
        }

    async def report_by_seller(
        self,
        lottery_id: Optional[int] = None,
        since: Optional[datetime] = None,
        until: Optional[datetime] = None,
    ) -> List[SellerReportRow]:
        key = report_key(
            "by_seller",
            lottery_id,
            since.isoformat() if since else None,
            until.isoformat() if until else None,
        )

        async def load() -> List[SellerReportRow]:
            rows = await TicketRepository.sales_rows(lottery_id=lottery_id, since=since, until=until)
            return await self._aggregate(rows)

        return await cached_report(key, load, CacheLevel.HOT)

    async def lottery_sales_summary(self, lottery_id: int) -> SalesSummary:
        lottery = await LotteryRepository.get(lottery_id)
        if lottery is None:
            raise NotFoundError(f"Lottery {lottery_id} not found", {"lotteryId": lottery_id})

        async def load() -> SalesSummary:
            return await self._summarize(lottery)

        level = CacheLevel.WARM if lottery.is_ended else CacheLevel.HOT
        return await cached_report(report_key("lottery", lottery_id, lottery.status.value), load, level)

    async def _summarize(self, lottery: Lottery) -> SalesSummary:
        if lottery.is_active:
            sold = await TicketRepository.count_for_lottery(lottery.id)
            return SalesSummary(lottery.id, lottery.status.value, lottery.ticket_count, sold)

        rows = await TicketRepository.sales_rows(lottery_id=lottery.id)
        sellers = await self._aggregate(rows)
        return SalesSummary(lottery.id, lottery.status.value, lottery.ticket_count, len(rows), sellers)

    async def _aggregate(self, rows: Iterable[Any]) -> List[SellerReportRow]:
        rows = list(rows)
        sellers = await SellerRepository.get_many(sorted({row["sold_by"] for row in rows}))

        report: Dict[int, SellerReportRow] = {}
        skipped: Dict[int, int] = {}
        for row in rows:
            seller = sellers.get(row["sold_by"])
            if seller is None:
                skipped[row["sold_by"]] = skipped.get(row["sold_by"], 0) + 1
                continue
            entry = report.get(seller.id)
            if entry is None:
                entry = report[seller.id] = SellerReportRow(seller.id, seller.name, seller.role.value)
            entry.tickets_sold += 1
            entry.amount_collected += row["ticket_price"]
            entry.commission += commission_for_sale(seller, row["ticket_price"], row["commission_per_ticket"])

        for seller_id, count in skipped.items():
            logger.warning("Skipped %d ticket(s) sold by missing seller %s", count, seller_id)

        return sorted(report.values(), key=lambda entry: (-entry.tickets_sold, entry.seller_id))
