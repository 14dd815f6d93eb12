# =============================================================================
# garden_core/notifications/expander.py
# Notification Recurrence Expander
# =============================================================================
"""
Turns one reminder setting into the physical triggers it implies:

- disabled                          -> no triggers
- enabled, days absent/empty/all 7  -> one daily trigger keyed "<id>"
- enabled, strict subset of days    -> one weekly trigger per day keyed "<id>_<day>"

Rescheduling always cancels every trigger belonging to the setting (as
reported by the backend) and then creates the new set.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from garden_core.errors import SchedulingError
from garden_core.logging import get_logger
from garden_core.notifications.backend import TriggerBackend
from garden_core.notifications.weekdays import DAYS_IN_WEEK, ReminderTime, parse_weekdays

logger = get_logger(__name__)

Row = Dict[str, Any]

NOTIFICATION_TITLE = "Eudaimonia"
DEFAULT_MESSAGE = "Time for mindful reflection"


@dataclass(frozen=True)
class PlannedTrigger:
    trigger_id: str
    at: ReminderTime
    weekday: Optional[int] = None
    payload: Dict[str, Any] = field(default_factory=dict, compare=False)

    @property
    def is_daily(self) -> bool:
        return self.weekday is None


def weekday_trigger_id(setting_id: str, weekday: int) -> str:
    return f"{setting_id}_{weekday}"


def belongs_to(setting_id: str, trigger_id: str) -> bool:
    """True for "<id>" itself and its per-weekday variants "<id>_0" .. "<id>_6"."""
    if trigger_id == setting_id:
        return True
    prefix = f"{setting_id}_"
    if not trigger_id.startswith(prefix):
        return False
    suffix = trigger_id[len(prefix):]
    return suffix.isdigit() and int(suffix) < DAYS_IN_WEEK


class NotificationRecurrenceExpander:
    """
    Args:
        backend: Where triggers are scheduled and listed
    """

    def __init__(self, backend: TriggerBackend):
        self.backend = backend

    def plan(self, setting: Row) -> List[PlannedTrigger]:
        """
        Triggers a setting implies, without touching the backend.

        Raises:
            SchedulingError: Missing id, bad time or bad weekday
        """
        setting_id = setting.get("id")
        if not setting_id:
            raise SchedulingError("Reminder setting has no id")
        setting_id = str(setting_id)

        if not setting.get("enabled"):
            return []

        if not setting.get("time"):
            raise SchedulingError("Enabled reminder has no time", setting_id=setting_id)
        at = ReminderTime.parse(setting["time"])
        try:
            days = parse_weekdays(setting.get("days"))
        except SchedulingError as e:
            e.details["setting_id"] = setting_id
            raise

        payload = {
            "setting_id": setting_id,
            "type": setting.get("type"),
            "title": NOTIFICATION_TITLE,
            "message": setting.get("custom_text") or DEFAULT_MESSAGE,
        }

        if not days or len(days) == DAYS_IN_WEEK:
            return [PlannedTrigger(setting_id, at, None, payload)]

        return [
            PlannedTrigger(weekday_trigger_id(setting_id, day), at, day, {**payload, "weekday": day})
            for day in days
        ]

    async def cancel_all(self, setting_id: str) -> List[str]:
        """Cancel every live trigger belonging to setting_id; returns their ids."""
        live = await self.backend.list_scheduled()
        cancelled = [t for t in live if belongs_to(str(setting_id), t)]
        for trigger_id in cancelled:
            await self.backend.cancel(trigger_id)
        return cancelled

    async def apply(self, setting: Row) -> List[str]:
        """
        Make the live triggers for a setting match its current fields.

        The setting is validated before anything is cancelled, so a bad
        edit leaves the previous schedule in place.

        Returns:
            Ids of the triggers now scheduled for the setting
        """
        planned = self.plan(setting)
        setting_id = str(setting["id"])

        cancelled = await self.cancel_all(setting_id)

        for trigger in planned:
            if trigger.is_daily:
                await self.backend.schedule_daily(trigger.trigger_id, trigger.at, trigger.payload)
            else:
                await self.backend.schedule_weekly(trigger.trigger_id, trigger.weekday, trigger.at, trigger.payload)

        scheduled = [t.trigger_id for t in planned]
        logger.info(
            f"Reminder {setting_id}: cancelled {len(cancelled)}, scheduled {len(scheduled)} trigger(s)"
        )
        return scheduled
