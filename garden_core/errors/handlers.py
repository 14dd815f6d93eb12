# =============================================================================
# garden_core/errors/handlers.py
# Error Handling Utilities for Garden Core
# =============================================================================

from __future__ import annotations
import traceback
from typing import Optional, Dict, Any

from garden_core.logging import get_logger
from .exceptions import GardenError

logger = get_logger(__name__)


def handle_error(
    error: Exception,
    log_error: bool = True,
    message: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Centralized error handling function.

    Args:
        error: The exception to handle
        log_error: Whether to log the error
        message: Custom message (uses the error's own message if None)

    Returns:
        Dictionary form of the error, suitable for structured logs
    """
    if isinstance(error, GardenError):
        info = error.to_dict()
        if message:
            info["message"] = message
    else:
        info = {
            "error_type": error.__class__.__name__,
            "code": "UNKNOWN",
            "message": message or str(error),
            "details": {"traceback": traceback.format_exc()},
            "recoverable": True,
        }

    if log_error:
        logger.error(
            f"[{info['code']}] {info['message']}",
            extra={"details": info["details"]},
            exc_info=error,
        )

    return info


class ErrorContext:
    """
    Context manager for error handling with automatic logging.

    Usage:
        with ErrorContext("Dispatching reminder gratitude_morning"):
            await dispatch(payload)

        # On error, logs "Error during: Dispatching reminder gratitude_morning"
    """

    def __init__(self, operation: str, recoverable: bool = True):
        self.operation = operation
        self.recoverable = recoverable
        self.error: Optional[Dict[str, Any]] = None

    def __enter__(self) -> ErrorContext:
        logger.debug(f"Starting: {self.operation}")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        if exc_type is None:
            logger.debug(f"Completed: {self.operation}")
            return False

        if isinstance(exc_val, GardenError):
            self.error = handle_error(exc_val)
            suppress = self.recoverable and exc_val.recoverable
        else:
            self.error = handle_error(exc_val, message=f"Error during: {self.operation}")
            suppress = self.recoverable

        return suppress
