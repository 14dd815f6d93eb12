# =============================================================================
# garden_core/notifications/__init__.py
# Reminder Scheduling
# =============================================================================

from .weekdays import ReminderTime, to_backend_weekday, from_backend_weekday, parse_weekday, parse_weekdays
from .backend import TriggerBackend, APSchedulerTriggerBackend
from .expander import NotificationRecurrenceExpander, PlannedTrigger
from .defaults import DEFAULT_NOTIFICATION_SETTINGS, default_settings
from .scheduler import NotificationScheduler

__all__ = [
    "ReminderTime",
    "to_backend_weekday",
    "from_backend_weekday",
    "parse_weekday",
    "parse_weekdays",
    "TriggerBackend",
    "APSchedulerTriggerBackend",
    "NotificationRecurrenceExpander",
    "PlannedTrigger",
    "DEFAULT_NOTIFICATION_SETTINGS",
    "default_settings",
    "NotificationScheduler",
]
