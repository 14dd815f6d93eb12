# =============================================================================
# garden_core/services/base_service.py
# Base Service Class with Common Functionality
# =============================================================================

from __future__ import annotations
from abc import ABC

from garden_core.logging import get_logger, LogContext


class BaseService(ABC):
    """
    Abstract base class for services that coordinate several repositories.

    Provides a per-class logger and timed operation logging.

    Usage:
        class MyService(BaseService):
            async def do_something(self):
                with self.log_operation("Doing something"):
                    ...
    """

    def __init__(self):
        self.logger = get_logger(self.__class__.__name__)

    def log_operation(self, operation: str) -> LogContext:
        """
        Create a logging context for an operation.

        Usage:
            with self.log_operation("Syncing reminders"):
                await scheduler.sync(owner)
        """
        return LogContext(self.logger, operation)
