# =============================================================================
# garden_core/notifications/backend.py
# Trigger Backend Contract and APScheduler Implementation
# =============================================================================
"""
A trigger backend owns the physical schedule. The expander treats its
list_scheduled() as the truth about what is currently live.
"""

from __future__ import annotations
import inspect
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union

from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from garden_core.errors import ErrorContext
from garden_core.logging import get_logger
from garden_core.notifications.weekdays import ReminderTime, to_backend_weekday

logger = get_logger(__name__)

Payload = Dict[str, Any]
Dispatch = Callable[[Payload], Union[None, Awaitable[None]]]


class TriggerBackend(ABC):
    """Recurring trigger scheduler keyed by string ids."""

    @abstractmethod
    async def schedule_daily(self, trigger_id: str, at: ReminderTime, payload: Payload) -> None:
        """Fire every day at `at`."""

    @abstractmethod
    async def schedule_weekly(self, trigger_id: str, weekday: int, at: ReminderTime, payload: Payload) -> None:
        """Fire every week on `weekday` (0=Sunday .. 6=Saturday) at `at`."""

    @abstractmethod
    async def cancel(self, trigger_id: str) -> None:
        """Remove a trigger. Cancelling an unknown id is not an error."""

    @abstractmethod
    async def list_scheduled(self) -> List[str]:
        """Ids of every live trigger."""


class APSchedulerTriggerBackend(TriggerBackend):
    """
    TriggerBackend on an APScheduler AsyncIOScheduler.

    Jobs can be added before the scheduler is started; they stay pending
    until start().

    Args:
        dispatch: Called with the payload when a trigger fires (sync or async)
        scheduler: Scheduler to use (a new AsyncIOScheduler by default)
        timezone: Timezone for cron triggers (scheduler default if None)
    """

    def __init__(
        self,
        dispatch: Dispatch,
        scheduler: Optional[AsyncIOScheduler] = None,
        timezone: Optional[Any] = None,
    ):
        self.dispatch = dispatch
        self.scheduler = scheduler or AsyncIOScheduler()
        self.timezone = timezone or self.scheduler.timezone

    def start(self) -> None:
        if not self.scheduler.running:
            self.scheduler.start()
            logger.info("Reminder scheduler started")

    def shutdown(self) -> None:
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
            logger.info("Reminder scheduler stopped")

    async def _fire(self, payload: Payload) -> None:
        with ErrorContext(f"Dispatching reminder {payload.get('setting_id')}"):
            result = self.dispatch(payload)
            if inspect.isawaitable(result):
                await result

    def _add(self, trigger_id: str, trigger: CronTrigger, payload: Payload) -> None:
        # replace_existing does not apply to pending jobs of a stopped scheduler
        if not self.scheduler.running and self.scheduler.get_job(trigger_id) is not None:
            self.scheduler.remove_job(trigger_id)
        self.scheduler.add_job(
            self._fire,
            trigger,
            id=trigger_id,
            name=payload.get("title", trigger_id),
            kwargs={"payload": payload},
            replace_existing=True,
            misfire_grace_time=300,
            coalesce=True,
        )

    async def schedule_daily(self, trigger_id: str, at: ReminderTime, payload: Payload) -> None:
        self._add(
            trigger_id,
            CronTrigger(hour=at.hour, minute=at.minute, timezone=self.timezone),
            payload,
        )
        logger.debug(f"Scheduled daily trigger {trigger_id} at {at}")

    async def schedule_weekly(self, trigger_id: str, weekday: int, at: ReminderTime, payload: Payload) -> None:
        self._add(
            trigger_id,
            CronTrigger(
                day_of_week=to_backend_weekday(weekday),
                hour=at.hour,
                minute=at.minute,
                timezone=self.timezone,
            ),
            payload,
        )
        logger.debug(f"Scheduled weekly trigger {trigger_id} on day {weekday} at {at}")

    async def cancel(self, trigger_id: str) -> None:
        try:
            self.scheduler.remove_job(trigger_id)
        except JobLookupError:
            logger.debug(f"Trigger {trigger_id} was not scheduled")
            return
        logger.debug(f"Cancelled trigger {trigger_id}")

    async def list_scheduled(self) -> List[str]:
        return [job.id for job in self.scheduler.get_jobs()]
