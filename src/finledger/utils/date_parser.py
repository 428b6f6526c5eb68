"""Date parsing utilities."""

import re
from datetime import date, datetime
from typing import Optional

from dateutil.relativedelta import relativedelta

ISO_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")
DAY_MONTH_YEAR_PATTERN = re.compile(r"^\d{2}/\d{2}/\d{4}$")
DAY_MONTH_NAME_PATTERN = re.compile(r"^\d{2}-[A-Za-z]{3}$")
MONTH_PATTERN = re.compile(r"^\d{4}-\d{2}$")

MONTH_NAMES = {
    "jan": 1, "feb": 2, "mar": 3, "apr": 4, "may": 5, "jun": 6,
    "jul": 7, "aug": 8, "sep": 9, "oct": 10, "nov": 11, "dec": 12,
}


def parse_date(date_str: str, today: Optional[date] = None) -> date:
    """Parse a date string into a date object.

    Supported formats:
    - ISO: "2025-03-01"
    - Day first: "01/03/2025"
    - Day and month name: "01-Mar" (current year assumed)

    Args:
        date_str: Date string
        today: Reference date for the year of "DD-MMM" input (defaults to today)

    Returns:
        Date object

    Raises:
        ValueError: If date string is not in a supported format or not a real date
    """
    date_str = date_str.strip()
    today = today or date.today()

    try:
        if ISO_PATTERN.match(date_str):
            return datetime.strptime(date_str, "%Y-%m-%d").date()

        if DAY_MONTH_YEAR_PATTERN.match(date_str):
            return datetime.strptime(date_str, "%d/%m/%Y").date()

        if DAY_MONTH_NAME_PATTERN.match(date_str):
            day, month_name = date_str.split("-")
            month = MONTH_NAMES.get(month_name.lower())
            if month is None:
                raise ValueError(f"unknown month '{month_name}'")
            return date(today.year, month, int(day))
    except ValueError as e:
        raise ValueError(f"Could not parse date '{date_str}': {e}")

    raise ValueError(
        f"Could not parse date '{date_str}'. Use YYYY-MM-DD, DD/MM/YYYY, or DD-MMM"
    )


def month_of(value: date) -> str:
    """Return the 'YYYY-MM' month key of a date."""
    return value.strftime("%Y-%m")


def current_month(today: Optional[date] = None) -> str:
    """Return the current month as 'YYYY-MM'."""
    return month_of(today or date.today())


def previous_month(month: str) -> str:
    """Return the calendar month before a 'YYYY-MM' month."""
    first_day = datetime.strptime(f"{month}-01", "%Y-%m-%d").date()
    return month_of(first_day - relativedelta(months=1))


def parse_month(month_str: str, today: Optional[date] = None) -> str:
    """Parse a month expression into 'YYYY-MM'.

    Supports:
    - "2025-03"
    - Any date accepted by parse_date (its month is used)
    - Relative months: "this month", "last month", "next month"

    Raises:
        ValueError: If the expression is not recognized
    """
    value = month_str.strip().lower()
    today = today or date.today()

    relative_months = {
        "this month": today,
        "last month": today - relativedelta(months=1),
        "next month": today + relativedelta(months=1),
    }
    if value in relative_months:
        return month_of(relative_months[value])

    if MONTH_PATTERN.match(value):
        month_number = int(value[5:])
        if not 1 <= month_number <= 12:
            raise ValueError(f"Invalid month '{month_str}'")
        return value

    return month_of(parse_date(month_str, today=today))
