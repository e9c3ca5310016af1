"""
Day-key helpers.

Puzzles are identified by their UTC calendar day, written as YYYY-MM-DD. These
helpers parse and compare such keys without ever raising on malformed input.
"""

import re
from datetime import date, datetime, timedelta, timezone
from typing import Optional

DAY_KEY_PATTERN = re.compile(r'^\d{4}-\d{2}-\d{2}$')


def today_utc() -> date:
    """Current UTC calendar day."""
    return datetime.now(timezone.utc).date()


def format_day_key(day: date) -> str:
    return day.strftime('%Y-%m-%d')


def is_day_key(value) -> bool:
    """True if value looks like YYYY-MM-DD. Does not check the calendar."""
    return isinstance(value, str) and bool(DAY_KEY_PATTERN.match(value))


def is_day_shaped(value) -> bool:
    """True if value splits into exactly three '-' separated parts."""
    return isinstance(value, str) and len(value.split('-')) == 3


def parse_day_key(value) -> Optional[date]:
    """
    Parse a YYYY-MM-DD key into a date.

    Args:
        value: Candidate key

    Returns:
        The calendar date, or None if the key is not exactly three '-' separated
        numeric parts forming a real date (e.g. '2024-02-30' is None)
    """
    if not isinstance(value, str):
        return None
    parts = value.split('-')
    if len(parts) != 3:
        return None
    try:
        year, month, day = (int(part) for part in parts)
        return date(year, month, day)
    except ValueError:
        return None


def is_day_after(previous: Optional[str], current: Optional[str]) -> bool:
    """True when current is exactly one UTC calendar day after previous."""
    previous_day = parse_day_key(previous)
    current_day = parse_day_key(current)
    if previous_day is None or current_day is None:
        return False
    return current_day - previous_day == timedelta(days=1)
