"""Data access layer models implemented with handcrafted queries."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, List, Mapping, Optional

from core.constants import LotteryStatus, LotteryType, SellerRole, TicketStatus


def _parse_ts(value: Any) -> Optional[datetime]:
    if value is None or isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value))


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


@dataclass(slots=True, frozen=True)
class Prize:
    rank: int
    title: str
    image_url: Optional[str] = None

    def to_dict(self) -> dict:
        data = {"rank": self.rank, "title": self.title}
        if self.image_url:
            data["imageUrl"] = self.image_url
        return data


@dataclass(slots=True)
class Lottery:
    id: int
    title: str
    description: str
    type: LotteryType
    created_by: Optional[int]
    ticket_count: int
    ticket_price: float
    commission_per_ticket: float
    status: LotteryStatus
    winning_ticket_numbers: List[int]
    tiktok_stream_link: Optional[str]
    created_at: Optional[datetime]
    ended_at: Optional[datetime]
    resolved_at: Optional[datetime]
    prizes: List[Prize] = field(default_factory=list)

    @property
    def is_active(self) -> bool:
        return self.status is LotteryStatus.ACTIVE

    @property
    def is_ended(self) -> bool:
        return self.status is LotteryStatus.ENDED

    @property
    def has_winners(self) -> bool:
        return bool(self.winning_ticket_numbers)

    @property
    def prize_ranks(self) -> List[int]:
        return [prize.rank for prize in self.prizes]

    def prize_title(self, rank: Optional[int]) -> str:
        for prize in self.prizes:
            if prize.rank == rank:
                return prize.title
        return ""

    @classmethod
    def from_row(cls, row: Mapping[str, Any], prizes: Optional[List[Prize]] = None) -> "Lottery":
        return cls(
            id=row["id"],
            title=row["title"],
            description=row["description"] or "",
            type=LotteryType(row["type"]),
            created_by=row["created_by"],
            ticket_count=row["ticket_count"],
            ticket_price=row["ticket_price"],
            commission_per_ticket=row["commission_per_ticket"],
            status=LotteryStatus(row["status"]),
            winning_ticket_numbers=json.loads(row["winning_ticket_numbers"] or "[]"),
            tiktok_stream_link=row["tiktok_stream_link"],
            created_at=_parse_ts(row["created_at"]),
            ended_at=_parse_ts(row["ended_at"]),
            resolved_at=_parse_ts(row["resolved_at"]),
            prizes=prizes or [],
        )

    def to_dict(self, sold_count: Optional[int] = None) -> dict:
        data = {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "type": self.type.value,
            "createdBy": self.created_by,
            "ticketCount": self.ticket_count,
            "ticketPrice": self.ticket_price,
            "commissionPerTicket": self.commission_per_ticket,
            "status": self.status.value,
            "winningTicketNumber": list(self.winning_ticket_numbers),
            "tiktokStreamLink": self.tiktok_stream_link,
            "prizes": [prize.to_dict() for prize in self.prizes],
            "createdAt": _iso(self.created_at),
            "endedAt": _iso(self.ended_at),
            "resolvedAt": _iso(self.resolved_at),
        }
        if sold_count is not None:
            data["soldTickets"] = sold_count
            data["ticketsLeft"] = self.ticket_count - sold_count
        return data


@dataclass(slots=True)
class Customer:
    id: int
    name: str
    phone: str
    created_at: Optional[datetime] = None


@dataclass(slots=True)
class Seller:
    id: int
    name: str
    phone: str
    role: SellerRole
    commission_rate: float
    is_active: bool
    created_at: Optional[datetime] = None

    @property
    def is_agent(self) -> bool:
        return self.role is SellerRole.AGENT

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Seller":
        return cls(
            id=row["id"],
            name=row["name"],
            phone=row["phone"],
            role=SellerRole(row["role"]),
            commission_rate=row["commission_rate"] or 0.0,
            is_active=bool(row["is_active"]),
            created_at=_parse_ts(row["created_at"]),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "phone": self.phone,
            "role": self.role.value,
            "commissionRate": self.commission_rate,
            "isActive": self.is_active,
        }


@dataclass(slots=True)
class Ticket:
    id: int
    lottery_id: int
    ticket_number: int
    unique_ticket_code: str
    customer_id: int
    sold_by: int
    sold_at: datetime
    status: TicketStatus
    winner_rank: Optional[int]
    sms_sent: bool
    sms_sent_at: Optional[datetime]
    winner_sms_sent: bool
    winner_sms_sent_at: Optional[datetime]
    customer_name: Optional[str] = None
    customer_phone: Optional[str] = None
    lottery_title: Optional[str] = None

    @property
    def is_winner(self) -> bool:
        return self.status is TicketStatus.WINNER

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Ticket":
        keys = row.keys()
        return cls(
            id=row["id"],
            lottery_id=row["lottery_id"],
            ticket_number=row["ticket_number"],
            unique_ticket_code=row["unique_ticket_code"],
            customer_id=row["customer_id"],
            sold_by=row["sold_by"],
            sold_at=_parse_ts(row["sold_at"]),
            status=TicketStatus(row["status"]),
            winner_rank=row["winner_rank"],
            sms_sent=bool(row["sms_sent"]),
            sms_sent_at=_parse_ts(row["sms_sent_at"]),
            winner_sms_sent=bool(row["winner_sms_sent"]),
            winner_sms_sent_at=_parse_ts(row["winner_sms_sent_at"]),
            customer_name=row["customer_name"] if "customer_name" in keys else None,
            customer_phone=row["customer_phone"] if "customer_phone" in keys else None,
            lottery_title=row["lottery_title"] if "lottery_title" in keys else None,
        )

    def to_dict(self) -> dict:
        data = {
            "id": self.id,
            "lotteryId": self.lottery_id,
            "ticketNumber": self.ticket_number,
            "uniqueTicketCode": self.unique_ticket_code,
            "customerId": self.customer_id,
            "soldBy": self.sold_by,
            "soldAt": _iso(self.sold_at),
            "status": self.status.value,
            "winnerRank": self.winner_rank,
            "smsSent": self.sms_sent,
            "smsSentAt": _iso(self.sms_sent_at),
            "winnerSmsSent": self.winner_sms_sent,
            "winnerSmsSentAt": _iso(self.winner_sms_sent_at),
        }
        if self.customer_name is not None:
            data["customer"] = {"name": self.customer_name, "phone": self.customer_phone}
        if self.lottery_title is not None:
            data["lotteryTitle"] = self.lottery_title
        return data


@dataclass(slots=True, frozen=True)
class RankAssignment:
    rank: int
    ticket_number: int


@dataclass(slots=True)
class WinnerRow:
    """One winning ticket, rebuilt from the tickets table."""
    ticket_id: int
    lottery_id: int
    lottery_title: str
    ticket_number: int
    unique_ticket_code: str
    winner_rank: int
    prize_title: str
    customer_name: str
    customer_phone: str
    winner_sms_sent: bool

    @property
    def prize_level(self) -> str:
        return prize_level_label(self.winner_rank)

    def to_dict(self) -> dict:
        return {
            "id": self.ticket_id,
            "lotteryId": self.lottery_id,
            "lottery": self.lottery_title,
            "ticketId": self.unique_ticket_code,
            "ticketNumber": self.ticket_number,
            "winnerRank": self.winner_rank,
            "prizeTitle": self.prize_title,
            "prizeLevel": self.prize_level,
            "name": self.customer_name,
            "phone": self.customer_phone,
            "winnerSmsSent": self.winner_sms_sent,
        }


@dataclass(slots=True)
class ActivityEntry:
    id: int
    action: str
    details: str
    severity: str
    actor_id: Optional[int]
    created_at: Optional[datetime]

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "action": self.action,
            "details": self.details,
            "severity": self.severity,
            "actorId": self.actor_id,
            "createdAt": _iso(self.created_at),
        }


def prize_level_label(rank: int) -> str:
    """Human label for a prize rank: 1st Prize, 2nd Prize, 11th Prize, ..."""
    if 10 <= rank % 100 <= 20:
        suffix = "th"
    else:
        suffix = {1: "st", 2: "nd", 3: "rd"}.get(rank % 10, "th")
    return f"{rank}{suffix} Prize"
