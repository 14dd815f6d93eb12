# =============================================================================
# garden_core/habits/repository.py
# Habit, Habit Completion and Weekly Reminder Repositories
# =============================================================================

from __future__ import annotations
from typing import Any, Dict, List, Optional

from garden_core.offline.entities import HABITS, HABIT_COMPLETIONS, HABIT_REMINDERS
from garden_core.offline.query import RowFilter
from garden_core.offline.repository import EntityRepository
from garden_core.logging import get_logger
from garden_core.weeks import DateLike, parse_date, week_key

logger = get_logger(__name__)

Row = Dict[str, Any]

COPY_PROCEDURE = "copy_habits_to_week"


class HabitRepository(EntityRepository):
    """
    Habit rows, one per (habit, week).

    A habit that repeats every week is a family of rows with the same name
    and distinct ids; deleting a row only affects its own week.
    """

    def __init__(self, store, remote, timeout_seconds=5.0):
        super().__init__(HABITS, store, remote, timeout_seconds)

    @staticmethod
    def week_filter(week: DateLike) -> RowFilter:
        return RowFilter().eq("week_start_date", week_key(week)).order_by("sort_order")

    async def get_by_week(self, owner: str, week: DateLike) -> List[Row]:
        return await self.get_by_filter(owner, self.week_filter(week))

    async def copy_to_week(self, owner: str, source_week: DateLike, target_week: DateLike) -> int:
        """
        Ask the remote store to clone source_week's habits into target_week.

        The procedure copies nothing when the target week already has rows,
        so repeated or concurrent calls produce one set of copies.

        Returns:
            Number of rows copied (0 on failure or when nothing was copied)
        """
        try:
            self.check_owner(owner)
            params = {
                "p_user_id": owner,
                "p_source_week_start": week_key(source_week),
                "p_target_week_start": week_key(target_week),
            }
            copied = await self.call_remote("rpc", lambda r: r.rpc(COPY_PROCEDURE, params))
        except Exception as e:
            logger.warning(f"Remote {COPY_PROCEDURE} failed: {e}")
            return 0

        return int(copied or 0)


class HabitCompletionRepository(EntityRepository):
    """
    Completions are sparse: a row for (habit_id, date) means done, no row
    means not done. Rows are scoped through their habit, not an owner column.
    """

    def __init__(self, store, remote, timeout_seconds=5.0):
        super().__init__(HABIT_COMPLETIONS, store, remote, timeout_seconds)

    async def get_by_habit(self, owner: str, habit_id: Any) -> List[Row]:
        return await self.get_by_filter(
            owner, RowFilter().eq("habit_id", habit_id).order_by("date", descending=True)
        )

    async def get_by_date_range(self, owner: str, start: DateLike, end: DateLike) -> List[Row]:
        return await self.get_by_filter(
            owner,
            RowFilter().between("date", parse_date(start), parse_date(end)).order_by("date"),
        )

    async def toggle(
        self,
        owner: str,
        habit_id: Any,
        day: DateLike,
        notes: Optional[str] = None,
    ) -> Optional[bool]:
        """
        Flip completion of habit_id on day.

        Returns:
            True if the habit is now completed, False if it is now not
            completed, None if the toggle failed
        """
        day_key = parse_date(day).isoformat()
        try:
            query = self.scoped(owner, RowFilter().eq("habit_id", habit_id).eq("date", day_key))
            existing = await self.call_remote("get", lambda r: r.get(self.table, query))
        except Exception as e:
            self._log_failure("completion lookup", e)
            return None

        if existing:
            return False if await self.delete(owner, existing["id"]) else None

        created = await self.create(owner, {"habit_id": habit_id, "date": day_key, "notes": notes})
        return True if created else None


class HabitReminderRepository(EntityRepository):
    """One free-text reminder note per owner and week."""

    def __init__(self, store, remote, timeout_seconds=5.0):
        super().__init__(HABIT_REMINDERS, store, remote, timeout_seconds)

    async def get_by_week(self, owner: str, week: DateLike) -> Optional[Row]:
        rows = await self.get_by_filter(owner, RowFilter().eq("week_start_date", week_key(week)))
        return rows[0] if rows else None

    async def upsert(self, owner: str, week: DateLike, content: str) -> Optional[Row]:
        return await self.upsert_where(
            owner, RowFilter().eq("week_start_date", week_key(week)), {"content": content}
        )
