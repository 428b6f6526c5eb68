"""Tests for amount and date parsing."""

from datetime import date
from decimal import Decimal

import pytest

from finledger.utils.amount_parser import has_sub_cent_digits, parse_amount, round_cents, to_decimal
from finledger.utils.date_parser import month_of, parse_date, parse_month, previous_month

TODAY = date(2025, 6, 15)


@pytest.mark.parametrize(
    "text,expected",
    [
        ("123.45", Decimal("123.45")),
        ("$1,234.56", Decimal("1234.56")),
        ("฿99", Decimal("99")),
        ("-12.30", Decimal("-12.30")),
        ("(50.00)", Decimal("-50.00")),
    ],
)
def test_parse_amount(text, expected):
    """Currency symbols, separators and negatives are understood."""
    assert parse_amount(text) == expected


@pytest.mark.parametrize("text", ["", "   ", "abc", "NaN", "Infinity"])
def test_parse_amount_invalid(text):
    """Non-numeric input raises ValueError."""
    with pytest.raises(ValueError):
        parse_amount(text)


def test_to_decimal():
    """Debit/credit values are coerced to Decimal."""
    assert to_decimal(None) == Decimal("0")
    assert to_decimal("") == Decimal("0")
    assert to_decimal(0.1) == Decimal("0.1")
    assert to_decimal(5) == Decimal("5")
    with pytest.raises(ValueError):
        to_decimal(True)


def test_cents_helpers():
    """Sub-cent digits are detected and rounding is half up."""
    assert has_sub_cent_digits(Decimal("1.005"))
    assert not has_sub_cent_digits(Decimal("1.50"))
    assert not has_sub_cent_digits(Decimal("1.500"))
    assert round_cents(Decimal("2.345")) == Decimal("2.35")


def test_parse_date_formats():
    """ISO, day-first and day-month-name formats are accepted."""
    assert parse_date("2025-03-01") == date(2025, 3, 1)
    assert parse_date("01/03/2025") == date(2025, 3, 1)
    assert parse_date("05-Feb", today=TODAY) == date(2025, 2, 5)


@pytest.mark.parametrize("text", ["2025-02-30", "31/04/2025", "32-Jan", "01-Foo", "tomorrow"])
def test_parse_date_invalid(text):
    """Impossible dates and unknown formats raise ValueError."""
    with pytest.raises(ValueError):
        parse_date(text, today=TODAY)


def test_month_helpers():
    """Month keys and calendar arithmetic."""
    assert month_of(date(2025, 3, 9)) == "2025-03"
    assert previous_month("2025-03") == "2025-02"
    assert previous_month("2025-01") == "2024-12"


@pytest.mark.parametrize(
    "text,expected",
    [
        ("2025-03", "2025-03"),
        ("this month", "2025-06"),
        ("Last Month", "2025-05"),
        ("next month", "2025-07"),
        ("2025-03-17", "2025-03"),
    ],
)
def test_parse_month(text, expected):
    """Month expressions resolve to YYYY-MM."""
    assert parse_month(text, today=TODAY) == expected


def test_parse_month_invalid():
    """Month numbers outside 1-12 are rejected."""
    with pytest.raises(ValueError):
        parse_month("2025-13", today=TODAY)
