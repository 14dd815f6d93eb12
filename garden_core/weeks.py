# =============================================================================
# garden_core/weeks.py
# Week Arithmetic (Monday-Start Weeks)
# =============================================================================

from __future__ import annotations
from datetime import date, datetime, timedelta
from typing import Union

DateLike = Union[str, date, datetime]


def parse_date(value: DateLike) -> date:
    """
    Coerce an ISO string, date or datetime to a date.

    Raises:
        ValueError: If a string is not an ISO date
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


def week_start(value: DateLike) -> date:
    """Monday of the week containing value."""
    d = parse_date(value)
    return d - timedelta(days=d.weekday())


def previous_week(value: DateLike) -> date:
    return week_start(value) - timedelta(days=7)


def week_key(value: DateLike) -> str:
    """ISO string of the Monday of value's week, the form stored remotely."""
    return week_start(value).isoformat()
