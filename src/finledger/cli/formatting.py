"""Output formatting helpers shared by CLI commands."""

from decimal import Decimal


def money(amount: Decimal) -> str:
    """Format an amount with thousands separators and 2 decimals."""
    return f"{amount:,.2f}"


def percent(value: Decimal) -> str:
    """Format a percentage value."""
    return f"{value:.2f}%"
