# =============================================================================
# garden_core/notifications/weekdays.py
# Weekday Numbering and Reminder Time Parsing
# =============================================================================
"""
Reminders store weekdays Sunday-first (0=Sunday .. 6=Saturday), the way the
planner screens present them. APScheduler's cron day_of_week is Monday-first
(0=Monday .. 6=Sunday). The two translation functions are inverses over 0..6.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Iterable, List, Optional

from garden_core.errors import SchedulingError

DAYS_IN_WEEK = 7
ALL_DAYS = tuple(range(DAYS_IN_WEEK))

DAY_NAMES = ("sunday", "monday", "tuesday", "wednesday", "thursday", "friday", "saturday")


def _check_index(day: int) -> int:
    if isinstance(day, bool) or not isinstance(day, int) or not 0 <= day < DAYS_IN_WEEK:
        raise SchedulingError(f"Weekday index out of range: {day!r}", value=day)
    return day


def to_backend_weekday(day: int) -> int:
    """Sunday-first index -> APScheduler day_of_week (Monday = 0)."""
    return (_check_index(day) - 1) % DAYS_IN_WEEK


def from_backend_weekday(day: int) -> int:
    """APScheduler day_of_week (Monday = 0) -> Sunday-first index."""
    return (_check_index(day) + 1) % DAYS_IN_WEEK


def parse_weekday(value: Any) -> int:
    """
    Parse one weekday as stored in a setting.

    Accepts 3, "3", "Wednesday" or "wed".

    Raises:
        SchedulingError: If the value is not a recognizable weekday
    """
    if isinstance(value, str):
        text = value.strip().lower()
        if text.isdigit():
            return _check_index(int(text))
        for index, name in enumerate(DAY_NAMES):
            if len(text) >= 3 and name.startswith(text):
                return index
        raise SchedulingError(f"Unrecognized weekday: {value!r}", value=value)
    return _check_index(value)


def parse_weekdays(values: Optional[Iterable[Any]]) -> Optional[List[int]]:
    """Sorted, de-duplicated weekday indices, or None when absent."""
    if values is None:
        return None
    return sorted({parse_weekday(v) for v in values})


@dataclass(frozen=True)
class ReminderTime:
    hour: int
    minute: int

    @classmethod
    def parse(cls, value: Any) -> ReminderTime:
        """
        Parse "HH:MM" (seconds, if present, are ignored).

        Raises:
            SchedulingError: If value is not a valid 24-hour time
        """
        try:
            parts = str(value).strip().split(":")
            hour, minute = int(parts[0]), int(parts[1])
        except (IndexError, ValueError) as e:
            raise SchedulingError(f"Reminder time must be HH:MM, got {value!r}", value=value) from e
        if not (0 <= hour < 24 and 0 <= minute < 60):
            raise SchedulingError(f"Reminder time out of range: {value!r}", value=value)
        return cls(hour, minute)

    def __str__(self) -> str:
        return f"{self.hour:02d}:{self.minute:02d}"
