# =============================================================================
# garden_core/notifications/defaults.py
# Built-in Reminder Set
# =============================================================================

from __future__ import annotations
import copy
from typing import Any, Dict, List

DEFAULT_NOTIFICATION_SETTINGS: List[Dict[str, Any]] = [
    {
        "id": "gratitude_morning",
        "type": "daily_prompt",
        "enabled": True,
        "time": "09:00",
        "custom_text": "Take a moment for gratitude 🙏",
    },
    {
        "id": "reflection_evening",
        "type": "daily_prompt",
        "enabled": False,
        "time": "20:00",
        "custom_text": "Evening reflection time ✨",
    },
    {
        "id": "meal_prep_reminder",
        "type": "meal_reminder",
        "enabled": False,
        "time": "18:00",
        "custom_text": "Time to prep tomorrow's meals 🥗",
    },
    {
        "id": "finance_weekly_review",
        "type": "finance_reminder",
        "enabled": False,
        "time": "10:00",
        "days": ["Sunday"],
        "custom_text": "Review this week's spending 💰",
    },
]


def default_settings() -> List[Dict[str, Any]]:
    """Fresh copies of the built-in reminders (callers may mutate them)."""
    return copy.deepcopy(DEFAULT_NOTIFICATION_SETTINGS)
