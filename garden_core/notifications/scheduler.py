# =============================================================================
# garden_core/notifications/scheduler.py
# Reminder Scheduling Service
# =============================================================================
"""
NotificationScheduler ties stored reminder settings to live triggers.

Settings are read and written through the notification settings repository;
every change is followed by a cancel-then-create pass of the expander.
"""

from __future__ import annotations
from typing import Any, Dict, List, Optional

from garden_core.errors import SchedulingError, handle_error
from garden_core.notifications.defaults import default_settings
from garden_core.notifications.expander import NotificationRecurrenceExpander, belongs_to
from garden_core.offline.entities import NotificationSettingRepository
from garden_core.services.base_service import BaseService

Row = Dict[str, Any]


class NotificationScheduler(BaseService):
    """
    Args:
        settings: Notification settings repository
        expander: Expander bound to the trigger backend
    """

    def __init__(self, settings: NotificationSettingRepository, expander: NotificationRecurrenceExpander):
        super().__init__()
        self.settings = settings
        self.expander = expander

    async def sync(self, owner: str) -> Dict[str, List[str]]:
        """
        Reschedule every reminder of owner and cancel triggers of reminders
        that no longer exist.

        Falls back to the built-in reminder set when owner has no settings
        stored anywhere (remote or cache). A setting that fails validation
        is logged and skipped; its previous triggers are left as they were.

        Returns:
            Mapping of setting id -> trigger ids now scheduled
        """
        with self.log_operation(f"Syncing reminders for {owner}"):
            rows = await self.settings.get_all(owner)
            if not rows:
                self.logger.info("No stored reminders, using the built-in set")
                rows = default_settings()

            result: Dict[str, List[str]] = {}
            for row in rows:
                try:
                    result[str(row.get("id"))] = await self.expander.apply(row)
                except SchedulingError as e:
                    handle_error(e)

            known = [str(r.get("id")) for r in rows if r.get("id")]
            live = await self.expander.backend.list_scheduled()
            for trigger_id in live:
                if not any(belongs_to(setting_id, trigger_id) for setting_id in known):
                    await self.expander.backend.cancel(trigger_id)
                    self.logger.info(f"Cancelled orphaned trigger {trigger_id}")

            return result

    async def save(self, owner: str, notification_type: str, fields: Row) -> Optional[Row]:
        """
        Create or update the reminder of a type and reschedule it.

        Raises:
            SchedulingError: If the new fields cannot be scheduled; nothing
                is written in that case

        Returns:
            The stored setting, or None if the write failed
        """
        # Validate against a placeholder id before writing anything
        self.expander.plan({"id": "pending", "type": notification_type, **fields})

        row = await self.settings.upsert(owner, notification_type, fields)
        if row is None:
            return None

        await self.expander.apply(row)
        return row

    async def set_enabled(self, owner: str, setting_id: Any, enabled: bool) -> Optional[Row]:
        row = await self.settings.update(owner, setting_id, {"enabled": bool(enabled)})
        if row is None:
            return None

        await self.expander.apply(row)
        return row

    async def remove(self, owner: str, setting_id: Any) -> bool:
        """Delete a reminder and cancel all of its triggers."""
        if not await self.settings.delete(owner, setting_id):
            return False

        await self.expander.cancel_all(str(setting_id))
        return True
