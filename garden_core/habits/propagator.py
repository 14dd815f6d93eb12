# =============================================================================
# garden_core/habits/propagator.py
# Weekly Recurrence Propagator
# =============================================================================
"""
Materializes a week's habits on first view by cloning the week before.

    query target week ──non-empty──> populated
          │ empty
    query previous week ──empty──> no ancestry (valid, returns [])
          │ non-empty
    re-check target ──non-empty──> populated (another caller won)
          │ empty
    copy_habits_to_week (server-side, guarded) ──> re-fetch target

Two concurrent calls for the same (owner, week) may both reach the copy
step. The remote procedure takes a lock per (owner, target week) and copies
only into an empty week, and habits are unique per (owner, week, name), so
the loser copies nothing and both callers re-fetch the same rows.
"""

from __future__ import annotations
import logging
from typing import Any, Dict, List

from garden_core.habits.repository import HabitRepository
from garden_core.logging import LogContext, get_logger
from garden_core.weeks import DateLike, previous_week, week_key

logger = get_logger(__name__)

Row = Dict[str, Any]


class WeeklyRecurrencePropagator:
    """
    Pull-based weekly habit materialization.

    Args:
        habits: Repository used for every read and the copy procedure
    """

    def __init__(self, habits: HabitRepository):
        self.habits = habits

    async def ensure_week(self, owner: str, week: DateLike) -> List[Row]:
        """
        Habits for the week containing `week`, copying last week's if needed.

        Args:
            owner: Owner principal
            week: Any date in the target week

        Returns:
            The target week's habit rows ([] when there is no prior week to copy)
        """
        target = week_key(week)

        existing = await self.habits.get_by_week(owner, target)
        if existing:
            return existing

        source = previous_week(target).isoformat()
        ancestors = await self.habits.get_by_week(owner, source)
        if not ancestors:
            logger.debug(f"No habits in {source} to carry into {target}")
            return []

        with LogContext(logger, f"Propagating {len(ancestors)} habits from {source} into {target}", level=logging.DEBUG):
            existing = await self.habits.get_by_week(owner, target)
            if existing:
                return existing

            copied = await self.habits.copy_to_week(owner, source, target)
            if copied:
                logger.info(f"Copied {copied} habits into week {target}")

            return await self.habits.get_by_week(owner, target)
