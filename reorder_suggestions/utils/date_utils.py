# reorder_suggestions/utils/date_utils.py
from datetime import date, datetime, timedelta
from typing import Dict, Optional, Tuple, Union
import calendar
import re

_DAY_MONTH_PATTERN = re.compile(r'^(\d{2})-(\d{2})$')


def convert_to_date(value: Union[date, datetime, str, None]) -> Optional[date]:
    """Convert a date-like value to a date.

    Args:
        value: date, datetime or ISO string (YYYY-MM-DD)

    Returns:
        Date object or None if the value is empty
    """
    if value is None or value == '':
        return None

    if isinstance(value, datetime):
        return value.date()

    if isinstance(value, date):
        return value

    return datetime.strptime(value[:10], '%Y-%m-%d').date()

def add_days(start: date, days: int) -> date:
    """Add a number of whole days to a date."""
    return start + timedelta(days=days)

def days_between(start: date, end: date) -> int:
    """Whole calendar days from start to end (negative when end precedes start)."""
    return (end - start).days

def parse_day_month(value: Optional[str]) -> Optional[Tuple[int, int]]:
    """Parse a DD-MM string into a (day, month) tuple.

    Args:
        value: String such as '24-12'

    Returns:
        (day, month) or None when the value is malformed or out of range
    """
    if not value:
        return None

    match = _DAY_MONTH_PATTERN.match(value.strip())
    if not match:
        return None

    day = int(match.group(1))
    month = int(match.group(2))

    if day < 1 or day > 31 or month < 1 or month > 12:
        return None

    return day, month

def safe_date(year: int, month: int, day: int) -> date:
    """Build a date, clamping the day to the last day of the month."""
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(day, last_day))

def days_per_month(start: date, days: int) -> Dict[int, int]:
    """Apportion a window of consecutive days over calendar months.

    Args:
        start: First day of the window
        days: Window length in days

    Returns:
        Mapping of month number (1-12) to the number of window days in it
    """
    result: Dict[int, int] = {}
    current = start
    remaining = max(0, int(days))

    while remaining > 0:
        last_day = calendar.monthrange(current.year, current.month)[1]
        in_month = min(remaining, last_day - current.day + 1)
        result[current.month] = result.get(current.month, 0) + in_month
        remaining -= in_month
        current = add_days(current, in_month)

    return result

def is_within_days(day: Optional[date], today: date, days: int) -> bool:
    """True when day lies no more than the given number of days before today."""
    if day is None:
        return False
    return day >= add_days(today, -days)
