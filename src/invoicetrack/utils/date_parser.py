"""Date parsing utilities."""

import re
from datetime import date, datetime, timedelta
from typing import Optional
from dateutil import parser as date_parser
from dateutil.relativedelta import relativedelta

_IN_DAYS = re.compile(r"^in (\d+) days?$")
_DAYS_AGO = re.compile(r"^(\d+) days? ago$")
_NET_TERMS = re.compile(r"^net ?(\d+)$")


def parse_date(date_str: str, today: Optional[date] = None) -> date:
    """Parse a date string into a date object.

    Supports various formats including relative dates:
    - Absolute dates: "2024-01-15", "January 15, 2024", etc.
    - Relative dates: "today", "yesterday", "tomorrow", "in 14 days",
      "3 days ago", "next month", "end of month"

    Args:
        date_str: Date string in various formats
        today: Reference date for relative expressions (defaults to today)

    Returns:
        Date object

    Raises:
        ValueError: If date string cannot be parsed
    """
    date_str = date_str.strip().lower()
    today = today or date.today()

    relative_dates = {
        "today": today,
        "yesterday": today - timedelta(days=1),
        "tomorrow": today + timedelta(days=1),
        "next week": today + timedelta(days=7),
        "next month": today + relativedelta(months=1),
        "end of month": (today + relativedelta(months=1)).replace(day=1) - timedelta(days=1),
    }

    if date_str in relative_dates:
        return relative_dates[date_str]

    match = _IN_DAYS.match(date_str)
    if match:
        return today + timedelta(days=int(match.group(1)))

    match = _DAYS_AGO.match(date_str)
    if match:
        return today - timedelta(days=int(match.group(1)))

    # Try parsing as absolute date
    try:
        dt = date_parser.parse(date_str)
        return dt.date()
    except (ValueError, TypeError, OverflowError) as e:
        raise ValueError(f"Could not parse date '{date_str}': {e}")


def resolve_due_date(due: str, issue_date: date) -> date:
    """Resolve a due date given either a date or payment terms.

    Payment terms such as "net 30" or "net30" count days from the issue date;
    anything else is parsed with parse_date.
    """
    match = _NET_TERMS.match(due.strip().lower())
    if match:
        return issue_date + timedelta(days=int(match.group(1)))
    return parse_date(due)


def format_date(value: date | datetime) -> str:
    """Format a date for display in emails, e.g. "Mar 15, 2024"."""
    return f"{value:%b} {value.day}, {value.year}"


def days_between(start: datetime, end: datetime) -> int:
    """Whole days from start to end, floored (negative when end is earlier)."""
    return (end - start) // timedelta(days=1)
