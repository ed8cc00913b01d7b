"""Timestamp formatting utilities."""

from datetime import date, datetime
from typing import Optional


def now() -> str:
    """Compact timestamp for directory names (e.g., "20261018_101500")."""
    return datetime.now().strftime("%Y%m%d_%H%M%S")


def today() -> date:
    """Current local calendar date."""
    return date.today()


def format_long_date(day: Optional[date] = None) -> str:
    """
    Format a date the way CV footers print it.

    Args:
        day: Date to format (defaults to today)

    Returns:
        Long US-style date

    Examples:
        format_long_date(date(2026, 10, 8))
        # "October 8, 2026"
    """
    day = day or today()
    return f"{day.strftime('%B')} {day.day}, {day.year}"
