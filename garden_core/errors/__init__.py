# =============================================================================
# garden_core/errors/__init__.py
# Centralized Error Handling for Garden Core
# =============================================================================

from .exceptions import (
    GardenError,
    RemoteStoreError,
    RemoteTimeoutError,
    AuthorizationError,
    LocalStoreError,
    SchedulingError,
    ConfigurationError,
)

from .handlers import (
    handle_error,
    ErrorContext,
)

__all__ = [
    # Exceptions
    "GardenError",
    "RemoteStoreError",
    "RemoteTimeoutError",
    "AuthorizationError",
    "LocalStoreError",
    "SchedulingError",
    "ConfigurationError",
    # Handlers
    "handle_error",
    "ErrorContext",
]
