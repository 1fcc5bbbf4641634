"""Input validation helpers."""

import html
import re
from typing import Any

from core.constants import CustomerDefaults, LotteryDefaults
from core.exceptions import InvalidCustomer, InvalidTicketNumber, ValidationError


PHONE_RE = re.compile(r"^(\+2519|\+2517|2519|2517|09|07)\d{8}$")
WHITESPACE_RE = re.compile(r"\s+")


def validate_phone(value: str) -> bool:
    """Accept local mobile numbers: 09/07 prefix or the +251/251 international form."""
    if not value:
        return False
    return bool(PHONE_RE.match(WHITESPACE_RE.sub("", value)))


def normalize_phone(value: str) -> str:
    """Normalize an accepted phone number to its ten-digit ``09``/``07`` form.

    Raises ``InvalidCustomer`` when the value is not an accepted format.
    """
    clean_phone = WHITESPACE_RE.sub("", value or "")
    if not PHONE_RE.match(clean_phone):
        raise InvalidCustomer(
            "Phone number must look like 09xxxxxxxx, 07xxxxxxxx or +2519xxxxxxxx",
            {"field": "customerPhone"},
        )

    # +2519xxxxxxxx / 2519xxxxxxxx -> 09xxxxxxxx
    if clean_phone.startswith("+251"):
        return "0" + clean_phone[4:]
    if clean_phone.startswith("251"):
        return "0" + clean_phone[3:]
    return clean_phone


def validate_full_name(value: str) -> bool:
    if not value:
        return False
    stripped = value.strip()
    return 1 <= len(stripped) <= CustomerDefaults.NAME_MAX_LENGTH


def clean_customer_name(value: Any) -> str:
    """Trim, length-check and HTML-escape a customer name."""
    if not isinstance(value, str) or not validate_full_name(value):
        raise InvalidCustomer(
            f"Customer name is required and must be at most {CustomerDefaults.NAME_MAX_LENGTH} characters",
            {"field": "customerName"},
        )
    return html.escape(value.strip(), quote=True)


def parse_ticket_number(value: Any) -> int:
    """Return ``value`` as a positive int; booleans and floats with a fraction are refused."""
    if isinstance(value, bool):
        raise InvalidTicketNumber("Ticket number must be a positive integer", {"ticketNumber": value})
    if isinstance(value, float):
        if not value.is_integer():
            raise InvalidTicketNumber("Ticket number must be a positive integer", {"ticketNumber": value})
        value = int(value)
    if isinstance(value, str):
        value = value.strip()
        if not value.isdigit():
            raise InvalidTicketNumber("Ticket number must be a positive integer", {"ticketNumber": value})
        value = int(value)
    if not isinstance(value, int) or value < 1:
        raise InvalidTicketNumber("Ticket number must be a positive integer", {"ticketNumber": value})
    return value


def require_text(value: Any, field: str, max_length: int, required: bool = True) -> str:
    if value is None:
        value = ""
    if not isinstance(value, str):
        raise ValidationError(f"{field} must be a string", {"field": field})
    value = value.strip()
    if required and not value:
        raise ValidationError(f"{field} is required", {"field": field})
    if len(value) > max_length:
        raise ValidationError(
            f"{field} cannot be more than {max_length} characters",
            {"field": field, "maxLength": max_length},
        )
    return value


def require_positive_int(value: Any, field: str, allow_zero: bool = False) -> int:
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be an integer", {"field": field})
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be an integer", {"field": field}) from None
    if isinstance(value, float) and not value.is_integer():
        raise ValidationError(f"{field} must be an integer", {"field": field})
    if number < 0 or (number == 0 and not allow_zero):
        raise ValidationError(f"{field} must be greater than 0", {"field": field})
    return number


def require_amount(value: Any, field: str, allow_zero: bool = False) -> float:
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be a number", {"field": field})
    try:
        amount = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be a number", {"field": field}) from None
    if amount < 0 or (amount == 0 and not allow_zero):
        qualifier = "0 or more" if allow_zero else "greater than 0"
        raise ValidationError(f"{field} must be {qualifier}", {"field": field})
    return amount


def validate_prize_title(value: Any, position: int) -> str:
    return require_text(value, f"prizes[{position}].title", LotteryDefaults.PRIZE_TITLE_MAX_LENGTH)
