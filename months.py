"""
Calendar month helpers.

Months are "YYYY-MM" strings, so plain string comparison is chronological.
Dates crossing the store boundary are "YYYY-MM-DD" strings.
"""

import calendar
import re
from datetime import date, datetime
from typing import List, Tuple, Union

_MONTH_PATTERN = re.compile(r"^(\d{4})-(\d{2})$")


def _split(month: str) -> Tuple[int, int]:
    match = _MONTH_PATTERN.match(month or "")
    if not match:
        raise ValueError(f"Invalid month '{month}', expected YYYY-MM")
    year, month_num = int(match.group(1)), int(match.group(2))
    if not 1 <= month_num <= 12:
        raise ValueError(f"Invalid month '{month}', month must be 01-12")
    return year, month_num


def validate_month(month: str) -> str:
    """Return the month unchanged, raising ValueError if it is not YYYY-MM."""
    _split(month)
    return month


def format_month(year: int, month_num: int) -> str:
    """Build a YYYY-MM string."""
    return f"{year:04d}-{month_num:02d}"


def month_of(value: Union[date, datetime, str]) -> str:
    """
    Return the YYYY-MM month containing a date.

    Args:
        value: date, datetime or a "YYYY-MM-DD" string
    """
    if isinstance(value, (date, datetime)):
        return format_month(value.year, value.month)
    month = str(value)[:7]
    return validate_month(month)


def month_start(month: str) -> str:
    """First day of the month as YYYY-MM-DD."""
    validate_month(month)
    return f"{month}-01"


def month_end(month: str) -> str:
    """Last day of the month as YYYY-MM-DD (leap years respected)."""
    year, month_num = _split(month)
    last_day = calendar.monthrange(year, month_num)[1]
    return f"{month}-{last_day:02d}"


def get_month_period(month: str) -> Tuple[str, str]:
    """Return (first_day, last_day) for the month."""
    return month_start(month), month_end(month)


def previous_month(month: str) -> str:
    """Month before the given one, rolling back over year boundaries."""
    year, month_num = _split(month)
    if month_num == 1:
        return format_month(year - 1, 12)
    return format_month(year, month_num - 1)


def next_month(month: str) -> str:
    """Month after the given one, rolling over year boundaries."""
    year, month_num = _split(month)
    if month_num == 12:
        return format_month(year + 1, 1)
    return format_month(year, month_num + 1)


def month_range(start: str, end: str) -> List[str]:
    """Inclusive list of months from start to end; empty when start > end."""
    validate_month(end)
    months: List[str] = []
    current = validate_month(start)
    while current <= end:
        months.append(current)
        current = next_month(current)
    return months


def current_month() -> str:
    """Month containing today's date."""
    return month_of(date.today())
