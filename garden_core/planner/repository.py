# =============================================================================
# garden_core/planner/repository.py
# Day Planner: Time Blocks and Recurring Time Blocks
# =============================================================================

from __future__ import annotations
from typing import Any, Dict, List, Optional

from garden_core.logging import get_logger
from garden_core.notifications.weekdays import DAYS_IN_WEEK, parse_weekday
from garden_core.offline.entities import RECURRING_TIME_BLOCKS, TIME_BLOCKS
from garden_core.offline.query import RowFilter
from garden_core.offline.repository import EntityRepository
from garden_core.weeks import DateLike, parse_date

logger = get_logger(__name__)

Row = Dict[str, Any]


def sunday_first_weekday(day: DateLike) -> int:
    """0=Sunday .. 6=Saturday for a calendar date."""
    return (parse_date(day).weekday() + 1) % DAYS_IN_WEEK


class TimeBlockRepository(EntityRepository):
    """One-off blocks on a specific date, ordered by start time."""

    def __init__(self, store, remote, timeout_seconds=5.0):
        super().__init__(TIME_BLOCKS, store, remote, timeout_seconds)

    async def get_by_date(self, owner: str, day: DateLike) -> List[Row]:
        return await self.get_by_filter(
            owner, RowFilter().eq("date", parse_date(day)).order_by("start_time")
        )


class RecurringTimeBlockRepository(EntityRepository):
    """
    Blocks that repeat on chosen weekdays.

    days_of_week is a 7-flag list, Sunday first. Selecting by weekday is a
    client-side post-filter over the active rows, identical online and offline.
    """

    def __init__(self, store, remote, timeout_seconds=5.0):
        super().__init__(RECURRING_TIME_BLOCKS, store, remote, timeout_seconds)

    @staticmethod
    def runs_on(row: Row, weekday: int) -> bool:
        flags = row.get("days_of_week") or []
        return len(flags) == DAYS_IN_WEEK and bool(flags[weekday])

    async def get_active(self, owner: str) -> List[Row]:
        return await self.get_by_filter(owner, RowFilter().eq("is_active", True).order_by("start_time"))

    async def get_by_day_of_week(self, owner: str, weekday: Any) -> List[Row]:
        day = parse_weekday(weekday)
        return await self.get_by_filter(
            owner,
            RowFilter().eq("is_active", True).order_by("start_time"),
            post_filter=lambda row: self.runs_on(row, day),
        )

    async def get_for_date(self, owner: str, day: DateLike) -> List[Row]:
        return await self.get_by_day_of_week(owner, sunday_first_weekday(day))

    async def create(self, owner: str, fields: Row) -> Optional[Row]:
        flags = fields.get("days_of_week")
        if flags is not None and len(flags) != DAYS_IN_WEEK:
            logger.warning(f"days_of_week needs {DAYS_IN_WEEK} flags, got {len(flags)}")
            return None
        return await super().create(owner, fields)

    async def toggle_active(self, owner: str, row_id: Any) -> Optional[Row]:
        """Flip is_active; returns the updated row or None on failure."""
        current = await self.get_by_id(owner, row_id)
        if current is None:
            return None
        return await self.update(owner, row_id, {"is_active": not current.get("is_active", True)})
