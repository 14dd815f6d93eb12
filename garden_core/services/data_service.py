# =============================================================================
# garden_core/services/data_service.py
# Composition Root - Every Repository Wired to One Store and One Remote
# =============================================================================
"""
GardenDataService is built once at startup and passed to whatever needs data.
There are no module-level singletons: tests build their own instance around
an in-memory remote store and a temporary cache.

Usage:
    settings = load_settings()
    service = await connect(settings, dispatch=show_notification)
    meals = await service.meals.get_all(user_id)
"""

from __future__ import annotations
import asyncio
from datetime import timedelta
from typing import Any, Dict, Optional

import pandas as pd

from garden_core.analytics import (
    habit_completion_rates,
    monthly_subscription_total,
    spending_by_category,
    total_spent,
)
from garden_core.config import Settings
from garden_core.habits import (
    HabitCompletionRepository,
    HabitReminderRepository,
    HabitRepository,
    WeeklyRecurrencePropagator,
)
from garden_core.logging import setup_logging
from garden_core.notifications import (
    APSchedulerTriggerBackend,
    NotificationRecurrenceExpander,
    NotificationScheduler,
    TriggerBackend,
)
from garden_core.notifications.backend import Dispatch
from garden_core.offline.entities import (
    ExpenseCategoryRepository,
    ExpenseRepository,
    GroceryItemRepository,
    MealRepository,
    NoteRepository,
    NotificationSettingRepository,
    ReflectionRepository,
    StretchingExerciseRepository,
    StretchingRoutineRepository,
    SubscriptionRepository,
    UserSettingRepository,
)
from garden_core.offline.local_store import KeyedLocalStore
from garden_core.offline.query import RowFilter
from garden_core.offline.remote_store import RemoteStore, create_remote_store
from garden_core.planner import RecurringTimeBlockRepository, TimeBlockRepository
from garden_core.priorities import PriorityRepository, PriorityWeekLedger, PriorityWeekRepository
from garden_core.services.base_service import BaseService
from garden_core.weeks import DateLike, parse_date, week_key


class GardenDataService(BaseService):
    """
    Holds one repository per entity type plus the recurrence components.

    Args:
        store: Local cache shared by every repository (disjoint keys)
        remote: Authoritative store, or None to run from the cache only
        trigger_backend: Where reminder triggers are scheduled
        timeout_seconds: Budget for every remote call
    """

    def __init__(
        self,
        store: KeyedLocalStore,
        remote: Optional[RemoteStore],
        trigger_backend: TriggerBackend,
        timeout_seconds: float = 5.0,
    ):
        super().__init__()
        self.store = store
        self.remote = remote
        self.trigger_backend = trigger_backend

        args = (store, remote)
        t = timeout_seconds

        self.meals = MealRepository(*args, timeout_seconds=t)
        self.grocery_items = GroceryItemRepository(*args, timeout_seconds=t)
        self.expenses = ExpenseRepository(*args, timeout_seconds=t)
        self.expense_categories = ExpenseCategoryRepository(*args, timeout_seconds=t)
        self.subscriptions = SubscriptionRepository(*args, timeout_seconds=t)
        self.reflections = ReflectionRepository(*args, timeout_seconds=t)
        self.notes = NoteRepository(*args, timeout_seconds=t)
        self.user_settings = UserSettingRepository(*args, timeout_seconds=t)
        self.notification_settings = NotificationSettingRepository(*args, timeout_seconds=t)

        self.stretching_exercises = StretchingExerciseRepository(*args, timeout_seconds=t)
        self.stretching_routines = StretchingRoutineRepository(
            *args, exercises=self.stretching_exercises, timeout_seconds=t
        )

        self.habits = HabitRepository(*args, timeout_seconds=t)
        self.habit_completions = HabitCompletionRepository(*args, timeout_seconds=t)
        self.habit_reminders = HabitReminderRepository(*args, timeout_seconds=t)
        self.propagator = WeeklyRecurrencePropagator(self.habits)

        self.priority_weeks = PriorityWeekRepository(*args, timeout_seconds=t)
        self.priorities = PriorityRepository(*args, weeks=self.priority_weeks, timeout_seconds=t)
        self.ledger = PriorityWeekLedger(self.priorities, self.priority_weeks)

        self.time_blocks = TimeBlockRepository(*args, timeout_seconds=t)
        self.recurring_time_blocks = RecurringTimeBlockRepository(*args, timeout_seconds=t)

        self.expander = NotificationRecurrenceExpander(trigger_backend)
        self.notifications = NotificationScheduler(self.notification_settings, self.expander)

    # =========================================================================
    # SUMMARIES
    # =========================================================================

    async def spending_overview(self, owner: str, start: DateLike, end: DateLike) -> Dict[str, Any]:
        """
        Spending between start and end (inclusive).

        Returns:
            {"total": float, "by_category": DataFrame, "subscriptions_total": float}
        """
        expenses, categories, subscriptions = await asyncio.gather(
            self.expenses.get_by_date_range(owner, parse_date(start), parse_date(end)),
            self.expense_categories.get_all(owner),
            self.subscriptions.get_active(owner),
        )
        return {
            "total": total_spent(expenses),
            "by_category": spending_by_category(expenses, categories),
            "subscriptions_total": monthly_subscription_total(subscriptions),
        }

    async def habit_summary(self, owner: str, month: DateLike) -> pd.DataFrame:
        """Per-habit completed days for the month containing `month`."""
        first = parse_date(month).replace(day=1)
        last = (first + timedelta(days=32)).replace(day=1) - timedelta(days=1)

        habits, completions = await asyncio.gather(
            self.habits.get_by_filter(
                owner,
                RowFilter().between("week_start_date", week_key(first), last).order_by("sort_order"),
            ),
            self.habit_completions.get_by_date_range(owner, first, last),
        )
        return habit_completion_rates(habits, completions, first)

    def close(self) -> None:
        if isinstance(self.trigger_backend, APSchedulerTriggerBackend):
            self.trigger_backend.shutdown()
        self.store.close()


def build_data_service(
    settings: Settings,
    remote: Optional[RemoteStore],
    trigger_backend: TriggerBackend,
    store: Optional[KeyedLocalStore] = None,
) -> GardenDataService:
    """Wire a GardenDataService from already-built collaborators."""
    store = store or KeyedLocalStore(settings.local_db_path, namespace=settings.cache_namespace)
    store.initialize()
    return GardenDataService(
        store=store,
        remote=remote,
        trigger_backend=trigger_backend,
        timeout_seconds=settings.remote_timeout_seconds,
    )


async def connect(settings: Settings, dispatch: Dispatch) -> GardenDataService:
    """
    Configure logging, connect to Supabase when credentials exist, and start
    the reminder scheduler.

    Args:
        settings: Loaded settings
        dispatch: Called with a reminder payload when a trigger fires

    Returns:
        Ready-to-use GardenDataService (cache-only if there are no credentials)
    """
    setup_logging(settings.log_level, log_to_file=settings.log_to_file)

    remote = await create_remote_store(settings) if settings.has_remote else None
    backend = APSchedulerTriggerBackend(dispatch)
    service = build_data_service(settings, remote, backend)
    backend.start()
    return service
