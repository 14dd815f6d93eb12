# =============================================================================
# garden_core/errors/exceptions.py
# Custom Exception Hierarchy for Garden Core
# =============================================================================

from typing import Optional, Dict, Any


class GardenError(Exception):
    """
    Base exception for all Garden Core errors.

    Attributes:
        message: Human-readable error description
        code: Machine-readable error code (e.g., "REMOTE_001")
        details: Additional context as a dictionary
        recoverable: Whether the error can be recovered from
    """

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        recoverable: bool = True,
    ):
        super().__init__(message)
        self.message = message
        self.code = code or "GARDEN_000"
        self.details = details or {}
        self.recoverable = recoverable

    def __str__(self) -> str:
        base = f"[{self.code}] {self.message}"
        if self.details:
            base += f" | Details: {self.details}"
        return base

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/serialization"""
        return {
            "error_type": self.__class__.__name__,
            "code": self.code,
            "message": self.message,
            "details": self.details,
            "recoverable": self.recoverable,
        }


# =============================================================================
# REMOTE STORE EXCEPTIONS
# =============================================================================

class RemoteStoreError(GardenError):
    """Raised when the remote store rejects a request or cannot be reached"""

    def __init__(
        self,
        message: str,
        table: Optional[str] = None,
        operation: Optional[str] = None,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        if table:
            details["table"] = table
        if operation:
            details["operation"] = operation

        super().__init__(
            message=message,
            code=kwargs.pop("code", "REMOTE_001"),
            details=details,
            **kwargs,
        )


class RemoteTimeoutError(RemoteStoreError):
    """Raised when a remote call exceeds its time budget"""

    def __init__(
        self,
        message: str,
        timeout_seconds: Optional[float] = None,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        if timeout_seconds is not None:
            details["timeout_seconds"] = timeout_seconds

        super().__init__(
            message=message,
            code="REMOTE_002",
            details=details,
            **kwargs,
        )


class AuthorizationError(GardenError):
    """Raised when a call is made without a usable owner principal"""

    def __init__(self, message: str, owner: Optional[str] = None, **kwargs):
        details = kwargs.pop("details", {})
        if owner is not None:
            details["owner"] = owner

        super().__init__(
            message=message,
            code="AUTH_001",
            details=details,
            **kwargs,
        )


# =============================================================================
# LOCAL STORE EXCEPTIONS
# =============================================================================

class LocalStoreError(GardenError):
    """Raised when the local cache database cannot be opened or written"""

    def __init__(self, message: str, key: Optional[str] = None, **kwargs):
        details = kwargs.pop("details", {})
        if key:
            details["key"] = key

        super().__init__(
            message=message,
            code="LOCAL_001",
            details=details,
            **kwargs,
        )


# =============================================================================
# SCHEDULING EXCEPTIONS
# =============================================================================

class SchedulingError(GardenError):
    """Raised when a reminder cannot be turned into triggers"""

    def __init__(
        self,
        message: str,
        setting_id: Optional[str] = None,
        value: Optional[Any] = None,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        if setting_id:
            details["setting_id"] = setting_id
        if value is not None:
            details["value"] = value

        super().__init__(
            message=message,
            code="NOTIFY_001",
            details=details,
            **kwargs,
        )


# =============================================================================
# CONFIGURATION EXCEPTIONS
# =============================================================================

class ConfigurationError(GardenError):
    """Raised when configuration is invalid or missing"""

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        if config_key:
            details["config_key"] = config_key

        super().__init__(
            message=message,
            code="CONFIG_001",
            details=details,
            recoverable=False,
            **kwargs,
        )
