"""Application-wide exception classes.

Every domain error carries an ``http_status`` and a ``details`` mapping so
the web layer can render it without knowing the concrete type.
"""

from __future__ import annotations

from dataclasses import dataclass, asdict
from typing import Any, Dict, List, Optional, Sequence


class ApplicationError(Exception):
    """Base exception for all application errors."""

    http_status = 500
    kind = "application_error"

    def __init__(self, message: str = "", details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details: Dict[str, Any] = details or {}

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.kind, "message": self.message, "details": self.details}


class ConfigurationError(ApplicationError):
    """Raised when configuration is invalid."""
    kind = "configuration_error"


class DatabaseError(ApplicationError):
    """Base exception for database-related errors."""
    kind = "database_error"


class ConnectionPoolError(DatabaseError):
    """Raised when database connection pool has issues."""
    pass


# Caller-fixable input problems

class ValidationError(ApplicationError):
    """Raised when data validation fails."""
    http_status = 400
    kind = "validation_error"


class InvalidTicketNumber(ValidationError):
    """Ticket number is not a positive integer or lies outside the lottery range."""
    kind = "invalid_ticket_number"


class InvalidCustomer(ValidationError):
    """Customer name or phone failed validation."""
    kind = "invalid_customer"


class InvalidSeller(ValidationError):
    """Seller reference is unknown, inactive or not allowed to sell."""
    kind = "invalid_seller"


@dataclass(frozen=True)
class Violation:
    """One broken rule in a winner assignment."""
    rule: str
    rank: Optional[int] = None
    ticket_number: Optional[int] = None

    def describe(self) -> str:
        if self.rule == "missing_rank":
            return f"Prize rank {self.rank} has no ticket assigned"
        if self.rule == "duplicate_rank":
            return f"Prize rank {self.rank} is assigned more than once"
        if self.rule == "duplicate_ticket":
            return f"Ticket number {self.ticket_number} is used for multiple prizes"
        if self.rule == "ticket_not_sold":
            return f"Ticket number {self.ticket_number} is not a sold ticket of this lottery"
        return self.rule

    def to_dict(self) -> Dict[str, Any]:
        data = {k: v for k, v in asdict(self).items() if v is not None}
        if "ticket_number" in data:
            data["ticketNumber"] = data.pop("ticket_number")
        data["message"] = self.describe()
        return data


class WinnerValidationError(ValidationError):
    """Winner assignment rejected; lists every violated rule."""
    kind = "winner_validation_error"

    def __init__(self, violations: Sequence[Violation]) -> None:
        self.violations: List[Violation] = list(violations)
        super().__init__(
            "; ".join(v.describe() for v in self.violations),
            {"violations": [v.to_dict() for v in self.violations]},
        )

    @property
    def missing_ranks(self) -> List[int]:
        return [v.rank for v in self.violations if v.rule == "missing_rank"]

    @property
    def offending_tickets(self) -> List[int]:
        return [
            v.ticket_number for v in self.violations
            if v.ticket_number is not None
        ]


# Races and integrity conflicts

class ConflictError(ApplicationError):
    """Concurrent-safe conflict; caller should refresh and retry."""
    http_status = 409
    kind = "conflict"


class TicketAlreadySold(ConflictError):
    """The (lottery, ticket number) pair already has a ticket."""
    kind = "ticket_already_sold"

    def __init__(self, lottery_id: int, ticket_number: int) -> None:
        super().__init__(
            f"Ticket {ticket_number} is already sold",
            {"lotteryId": lottery_id, "ticketNumber": ticket_number},
        )
        self.lottery_id = lottery_id
        self.ticket_number = ticket_number


class ResolutionConflict(ConflictError):
    """Integrity failure detected while committing winners; nothing was written."""
    kind = "resolution_conflict"


# Lottery status problems

class StateError(ApplicationError):
    """Operation is invalid for the current lottery status."""
    http_status = 409
    kind = "state_error"


class LotteryNotActive(StateError):
    """Sale attempted on a lottery that is no longer active."""
    http_status = 410
    kind = "lottery_not_active"


class LotteryNotEnded(StateError, ValidationError):
    """Winners submitted for a lottery that has not ended."""
    http_status = 400
    kind = "lottery_not_ended"


class AlreadyResolved(StateError):
    """Winners were already entered; an edit must be used instead."""
    kind = "already_resolved"


# Missing references

class NotFoundError(ApplicationError):
    """Unknown lottery, ticket, seller or prize rank."""
    http_status = 404
    kind = "not_found"


class UnknownPrizeRank(NotFoundError):
    """Assignment references a rank the lottery does not have."""
    kind = "unknown_prize_rank"

    def __init__(self, lottery_id: int, ranks: Sequence[int]) -> None:
        ranks = sorted(set(ranks))
        super().__init__(
            f"Lottery {lottery_id} has no prize rank(s) {', '.join(map(str, ranks))}",
            {"lotteryId": lottery_id, "ranks": ranks},
        )
        self.ranks = ranks


class RateLimitError(ApplicationError):
    """Raised when rate limit is exceeded."""
    http_status = 429
    kind = "rate_limited"


class AuthenticationError(ApplicationError):
    """Raised when authentication fails."""
    http_status = 401
    kind = "authentication_failed"
