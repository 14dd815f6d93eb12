# =============================================================================
# garden_core/habits/__init__.py
# Weekly Habits
# =============================================================================

from .repository import HabitRepository, HabitCompletionRepository, HabitReminderRepository
from .propagator import WeeklyRecurrencePropagator

__all__ = [
    "HabitRepository",
    "HabitCompletionRepository",
    "HabitReminderRepository",
    "WeeklyRecurrencePropagator",
]
