"""Unit tests for input validators."""

import pytest

from core.exceptions import InvalidCustomer, InvalidTicketNumber, ValidationError
from utils.validators import (
    clean_customer_name,
    normalize_phone,
    parse_ticket_number,
    require_amount,
    require_positive_int,
    validate_phone,
)


@pytest.mark.parametrize("raw, expected", [
    ("0911223344", "0911223344"),
    ("0711223344", "0711223344"),
    ("+251911223344", "0911223344"),
    ("+251711223344", "0711223344"),
    ("251911223344", "0911223344"),
    (" 09 1122 3344 ", "0911223344"),
])
def test_normalize_phone_accepts_local_formats(raw, expected):
    """Test accepted phone formats normalize to the 09/07 form."""
    assert validate_phone(raw)
    assert normalize_phone(raw) == expected


@pytest.mark.parametrize("raw", ["", "0811223344", "091122334", "+7911223344", "09112233445", "phone"])
def test_normalize_phone_rejects_other_formats(raw):
    assert not validate_phone(raw)
    with pytest.raises(InvalidCustomer):
        normalize_phone(raw)


def test_customer_name_is_trimmed_and_escaped():
    assert clean_customer_name("  Abebe <b>K</b> ") == "Abebe &lt;b&gt;K&lt;/b&gt;"
    assert clean_customer_name("O'Neil & Co") == "O&#x27;Neil &amp; Co"


def test_customer_name_limits():
    assert clean_customer_name("x" * 100) == "x" * 100
    for bad in ("", "   ", "x" * 101, None, 42):
        with pytest.raises(InvalidCustomer):
            clean_customer_name(bad)


def test_parse_ticket_number():
    assert parse_ticket_number(5) == 5
    assert parse_ticket_number("7") == 7
    assert parse_ticket_number(3.0) == 3
    for bad in (0, -1, 2.5, "abc", "", None, True):
        with pytest.raises(InvalidTicketNumber):
            parse_ticket_number(bad)


def test_numeric_field_helpers():
    assert require_positive_int("10", "ticketCount") == 10
    assert require_positive_int(0, "offset", allow_zero=True) == 0
    assert require_amount("12.5", "ticketPrice") == 12.5
    assert require_amount(0, "commissionPerTicket", allow_zero=True) == 0.0
    with pytest.raises(ValidationError):
        require_positive_int(0, "ticketCount")
    with pytest.raises(ValidationError):
        require_amount(0, "ticketPrice")
    with pytest.raises(ValidationError):
        require_amount("free", "ticketPrice")
