"""Amount parsing utilities."""

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
import re
from typing import Any

CENT = Decimal("0.01")
ZERO = Decimal("0")


def parse_amount(amount_str: str) -> Decimal:
    """Parse an amount string into a Decimal.

    Handles various formats:
    - "123.45"
    - "$123.45" or "฿123.45"
    - "-123.45"
    - "1,234.56"
    - "(123.45)" (negative in parentheses)

    Args:
        amount_str: Amount string

    Returns:
        Decimal amount

    Raises:
        ValueError: If amount string cannot be parsed
    """
    if not amount_str or not amount_str.strip():
        raise ValueError("Empty amount string")

    amount_str = amount_str.strip()

    # Handle parentheses notation (negative)
    is_negative = False
    if amount_str.startswith("(") and amount_str.endswith(")"):
        is_negative = True
        amount_str = amount_str[1:-1]

    amount_str = re.sub(r"[$€£¥฿₹]", "", amount_str)
    amount_str = amount_str.replace(",", "").strip()

    try:
        amount = Decimal(amount_str)
    except InvalidOperation as e:
        raise ValueError(f"Could not parse amount '{amount_str}': {e}")
    if not amount.is_finite():
        raise ValueError(f"Could not parse amount '{amount_str}': not a finite number")
    return -amount if is_negative else amount


def to_decimal(value: Any) -> Decimal:
    """Coerce a debit/credit value to Decimal.

    None and empty strings count as zero. Floats go through str() so that
    0.1 becomes Decimal("0.1") rather than its binary expansion.

    Raises:
        ValueError: If the value is not numeric
    """
    if value is None or value == "":
        return ZERO
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise ValueError(f"Not a numeric amount: {value!r}")
    if isinstance(value, (int, float)):
        return Decimal(str(value))
    return parse_amount(str(value))


def has_sub_cent_digits(amount: Decimal) -> bool:
    """Return True if amount cannot be represented exactly in cents."""
    if not amount.is_finite():
        return True
    if amount.as_tuple().exponent >= -2:
        return False
    try:
        return amount != amount.quantize(CENT)
    except InvalidOperation:
        return True


def round_cents(amount: Decimal) -> Decimal:
    """Round to 2 decimal places, half up."""
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)
