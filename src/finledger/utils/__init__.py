"""Utility functions for finledger."""

from finledger.utils.date_parser import parse_date, parse_month
from finledger.utils.amount_parser import parse_amount

__all__ = ["parse_date", "parse_month", "parse_amount"]
