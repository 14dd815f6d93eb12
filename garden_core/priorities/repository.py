# =============================================================================
# garden_core/priorities/repository.py
# Priority and Priority-Week Repositories
# =============================================================================

from __future__ import annotations
from typing import Any

from garden_core.offline.entities import PRIORITIES, PRIORITY_WEEKS
from garden_core.offline.query import RowFilter
from garden_core.offline.repository import EntityRepository
from garden_core.weeks import DateLike, parse_date, week_key


class PriorityWeekRepository(EntityRepository):
    """(priority_id, week_start_date, rank_order) join rows."""

    def __init__(self, store, remote, timeout_seconds=5.0):
        super().__init__(PRIORITY_WEEKS, store, remote, timeout_seconds)

    @staticmethod
    def week_filter(week: DateLike) -> RowFilter:
        return RowFilter().eq("week_start_date", week_key(week)).order_by("rank_order")

    @staticmethod
    def range_filter(start: DateLike, end: DateLike) -> RowFilter:
        return (
            RowFilter()
            .between("week_start_date", week_key(start), parse_date(end).isoformat())
            .order_by("rank_order")
        )

    @staticmethod
    def link_filter(priority_id: Any, week: DateLike) -> RowFilter:
        return RowFilter().eq("priority_id", priority_id).eq("week_start_date", week_key(week))

    @staticmethod
    def priority_filter(priority_id: Any) -> RowFilter:
        return RowFilter().eq("priority_id", priority_id).order_by("week_start_date")


class PriorityRepository(EntityRepository):
    """
    Long-lived priorities (name, color).

    Deleting a priority deletes its week assignments first; the remote store
    is not relied on to cascade.

    Args:
        weeks: Join-row repository used for the cascade
    """

    def __init__(self, store, remote, weeks: PriorityWeekRepository, timeout_seconds=5.0):
        super().__init__(PRIORITIES, store, remote, timeout_seconds)
        self.weeks = weeks

    async def delete(self, owner: str, row_id: Any) -> bool:
        if not await self.weeks.delete_where(owner, PriorityWeekRepository.priority_filter(row_id)):
            return False
        return await super().delete(owner, row_id)
