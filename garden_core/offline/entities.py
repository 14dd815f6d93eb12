# =============================================================================
# garden_core/offline/entities.py
# Entity Catalogue and Thin Per-Entity Repositories
# =============================================================================
"""
Each entity type is configuration over EntityRepository. Entity-specific
reads are expressed as RowFilters so their offline fallback is exact.

Habits, priorities and time blocks carry more behaviour and live in their
own packages (garden_core.habits, garden_core.priorities, garden_core.planner).
"""

from __future__ import annotations
import json
from datetime import date
from typing import Any, Dict, List, Optional, Union

from garden_core.logging import get_logger
from garden_core.offline.query import RowFilter
from garden_core.offline.repository import EntityRepository, EntitySpec

logger = get_logger(__name__)

Row = Dict[str, Any]
DateLike = Union[str, date]


# =============================================================================
# ENTITY CATALOGUE
# =============================================================================

MEALS = EntitySpec("meals", "meals", order_column="date", descending=True, prepend=True)
GROCERY_ITEMS = EntitySpec("grocery_items", "grocery_items", descending=True, prepend=True)
EXPENSES = EntitySpec("expenses", "expenses", order_column="date", descending=True, prepend=True)
EXPENSE_CATEGORIES = EntitySpec("expense_categories", "expense_categories", order_column="sort_order")
SUBSCRIPTIONS = EntitySpec("subscriptions", "subscriptions", order_column="billing_day")
HABITS = EntitySpec("habits", "habits", order_column="sort_order")
HABIT_COMPLETIONS = EntitySpec(
    "habit_completions", "habit_completions",
    order_column="date", descending=True, owner_column=None,
)
HABIT_REMINDERS = EntitySpec(
    "habit_reminders", "habit_reminders",
    order_column="week_start_date", descending=True, prepend=True,
)
REFLECTIONS = EntitySpec("reflections", "reflections", order_column="date", descending=True, prepend=True)
NOTES = EntitySpec("notes", "notes", descending=True, prepend=True)
NOTIFICATION_SETTINGS = EntitySpec("notification_settings", "notification_settings", descending=True, prepend=True)
STRETCHING_ROUTINES = EntitySpec("stretching_routines", "stretching_routines", descending=True)
STRETCHING_EXERCISES = EntitySpec(
    "stretching_exercises", "stretching_exercises",
    order_column="order_index", owner_column=None,
)
USER_SETTINGS = EntitySpec("user_settings", "user_settings", order_column="setting_key")
PRIORITIES = EntitySpec("priorities", "priorities")
PRIORITY_WEEKS = EntitySpec("priority_weeks", "priority_weeks", order_column="rank_order")
TIME_BLOCKS = EntitySpec("time_blocks", "time_blocks", order_column="start_time")
RECURRING_TIME_BLOCKS = EntitySpec("recurring_time_blocks", "recurring_time_blocks", order_column="start_time")

ENTITY_SPECS: Dict[str, EntitySpec] = {
    spec.name: spec
    for spec in (
        MEALS, GROCERY_ITEMS, EXPENSES, EXPENSE_CATEGORIES, SUBSCRIPTIONS,
        HABITS, HABIT_COMPLETIONS, HABIT_REMINDERS, REFLECTIONS, NOTES,
        NOTIFICATION_SETTINGS, STRETCHING_ROUTINES, STRETCHING_EXERCISES,
        USER_SETTINGS, PRIORITIES, PRIORITY_WEEKS, TIME_BLOCKS,
        RECURRING_TIME_BLOCKS,
    )
}

REFLECTION_TYPES = ("gratitude", "weekly", "looking_forward", "affirmation")


# =============================================================================
# DATED ENTITIES
# =============================================================================

class MealRepository(EntityRepository):
    """Planned meals, newest date first."""

    def __init__(self, store, remote, timeout_seconds=5.0):
        super().__init__(MEALS, store, remote, timeout_seconds)

    async def get_by_date_range(self, owner: str, start: DateLike, end: DateLike) -> List[Row]:
        return await self.get_by_filter(owner, RowFilter().between("date", start, end).order_by("date"))


class ExpenseRepository(EntityRepository):
    """Individual expenses, newest date first."""

    def __init__(self, store, remote, timeout_seconds=5.0):
        super().__init__(EXPENSES, store, remote, timeout_seconds)

    async def get_by_date_range(self, owner: str, start: DateLike, end: DateLike) -> List[Row]:
        return await self.get_by_filter(
            owner, RowFilter().between("date", start, end).order_by("date", descending=True)
        )


class ReflectionRepository(EntityRepository):
    """Journal entries: gratitude, weekly, looking_forward and affirmation."""

    def __init__(self, store, remote, timeout_seconds=5.0):
        super().__init__(REFLECTIONS, store, remote, timeout_seconds)

    async def get_by_type(self, owner: str, reflection_type: str) -> List[Row]:
        if reflection_type not in REFLECTION_TYPES:
            logger.warning(f"Unknown reflection type requested: {reflection_type}")
        return await self.get_by_filter(
            owner, RowFilter().eq("type", reflection_type).order_by("date", descending=True)
        )


# =============================================================================
# SIMPLE LISTS
# =============================================================================

class GroceryItemRepository(EntityRepository):
    def __init__(self, store, remote, timeout_seconds=5.0):
        super().__init__(GROCERY_ITEMS, store, remote, timeout_seconds)


class ExpenseCategoryRepository(EntityRepository):
    """Per-owner spending categories; names are unique per owner remotely."""

    def __init__(self, store, remote, timeout_seconds=5.0):
        super().__init__(EXPENSE_CATEGORIES, store, remote, timeout_seconds)


class SubscriptionRepository(EntityRepository):
    """Recurring charges billed on a day of the month (1-31)."""

    def __init__(self, store, remote, timeout_seconds=5.0):
        super().__init__(SUBSCRIPTIONS, store, remote, timeout_seconds)

    async def get_active(self, owner: str) -> List[Row]:
        return await self.get_by_filter(
            owner, RowFilter().eq("is_active", True).order_by("billing_day")
        )


class NoteRepository(EntityRepository):
    """Free-text notes attached to another entity (entity_type + entity_id)."""

    def __init__(self, store, remote, timeout_seconds=5.0):
        super().__init__(NOTES, store, remote, timeout_seconds)

    async def get_by_entity(self, owner: str, entity_type: str, entity_id: Any) -> List[Row]:
        return await self.get_by_filter(
            owner,
            RowFilter()
            .eq("entity_type", entity_type)
            .eq("entity_id", entity_id)
            .order_by("created_at", descending=True),
        )


class NotificationSettingRepository(EntityRepository):
    """One row per logical reminder."""

    def __init__(self, store, remote, timeout_seconds=5.0):
        super().__init__(NOTIFICATION_SETTINGS, store, remote, timeout_seconds)

    async def get_by_type(self, owner: str, notification_type: str) -> List[Row]:
        return await self.get_by_filter(owner, RowFilter().eq("type", notification_type))

    async def upsert(self, owner: str, notification_type: str, fields: Row) -> Optional[Row]:
        """Update the setting of this type, or create it."""
        return await self.upsert_where(owner, RowFilter().eq("type", notification_type), fields)


# =============================================================================
# STRETCHING
# =============================================================================

class StretchingExerciseRepository(EntityRepository):
    """Exercises belong to a routine and are ordered by order_index."""

    def __init__(self, store, remote, timeout_seconds=5.0):
        super().__init__(STRETCHING_EXERCISES, store, remote, timeout_seconds)

    @staticmethod
    def _routine_filter(routine_id: Any) -> RowFilter:
        return RowFilter().eq("routine_id", routine_id).order_by("order_index")

    async def get_by_routine(self, owner: str, routine_id: Any) -> List[Row]:
        return await self.get_by_filter(owner, self._routine_filter(routine_id))

    async def delete_by_routine(self, owner: str, routine_id: Any) -> bool:
        return await self.delete_where(owner, self._routine_filter(routine_id))


class StretchingRoutineRepository(EntityRepository):
    """
    Named routines. Deleting a routine removes its exercises first.

    Args:
        exercises: Repository used for the cascade
    """

    def __init__(self, store, remote, exercises: StretchingExerciseRepository, timeout_seconds=5.0):
        super().__init__(STRETCHING_ROUTINES, store, remote, timeout_seconds)
        self.exercises = exercises

    async def delete(self, owner: str, row_id: Any) -> bool:
        if not await self.exercises.delete_by_routine(owner, row_id):
            return False
        return await super().delete(owner, row_id)


# =============================================================================
# USER SETTINGS
# =============================================================================

MEAL_OPTIONS_KEY = "meal_options_list"


class UserSettingRepository(EntityRepository):
    """
    Key/value settings per owner. Writes go through the upsert_user_setting
    procedure so a (owner, key) pair never has two rows.
    """

    def __init__(self, store, remote, timeout_seconds=5.0):
        super().__init__(USER_SETTINGS, store, remote, timeout_seconds)

    async def get_setting(self, owner: str, setting_key: str) -> Optional[Any]:
        rows = await self.get_by_filter(owner, RowFilter().eq("setting_key", setting_key))
        return rows[0].get("setting_value") if rows else None

    async def upsert_setting(self, owner: str, setting_key: str, value: Any) -> bool:
        """
        Write one setting.

        Returns:
            True on success, False on failure (cache untouched)
        """
        try:
            self.check_owner(owner)
            params = {
                "p_user_id": owner,
                "p_setting_key": setting_key,
                "p_setting_value": value,
            }
            result = await self.call_remote("rpc", lambda r: r.rpc("upsert_user_setting", params))
        except Exception as e:
            logger.warning(f"Remote upsert_user_setting failed for {setting_key}: {e}")
            return False

        row = result[0] if isinstance(result, list) and result else result
        if not isinstance(row, dict) or "id" not in row:
            # Procedure returned no row; cache the logical value under a synthetic id
            row = {
                "id": f"{owner}:{setting_key}",
                "user_id": owner,
                "setting_key": setting_key,
                "setting_value": value,
            }

        self._drop_rows(owner, lambda r: r.get("setting_key") == setting_key)
        self._put_row(owner, row)
        return True

    async def get_meal_options(self, owner: str) -> List[str]:
        value = await self.get_setting(owner, MEAL_OPTIONS_KEY)
        if isinstance(value, str):
            try:
                value = json.loads(value)
            except ValueError:
                logger.warning("Stored meal options are not valid JSON; ignoring")
                return []
        return [str(v) for v in value] if isinstance(value, list) else []

    async def save_meal_options(self, owner: str, options: List[str]) -> bool:
        cleaned = [o.strip() for o in options if o and o.strip()]
        return await self.upsert_setting(owner, MEAL_OPTIONS_KEY, json.dumps(cleaned))
