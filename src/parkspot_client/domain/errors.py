# File: src/parkspot_client/domain/errors.py
"""
Exception hierarchy for the ParkSpot client

Raw failures (transport, normalization, validation) are raised by the lower
layers. Application services classify them once at their public boundary and
re-raise them as ApiError with a single human-readable sentence.
"""

from enum import Enum
from typing import Any, Optional


class ErrorKind(str, Enum):
    """Classified error kinds exposed to callers"""
    NETWORK = "network"
    TIMEOUT = "timeout"
    UNAUTHORIZED = "unauthorized"
    FORBIDDEN = "forbidden"
    NOT_FOUND = "not_found"
    VALIDATION = "validation"
    SERVER = "server"
    NORMALIZATION = "normalization"
    UNKNOWN = "unknown"


class TransportErrorKind(str, Enum):
    """Reasons a transport call could not complete successfully"""
    TIMEOUT = "timeout"
    NETWORK = "network"
    HTTP = "http"


# ============================================================================
# EXCEPTIONS
# ============================================================================

class ParkSpotError(Exception):
    """Base exception for all client errors"""
    pass


class TransportError(ParkSpotError):
    """Raised when a request times out, cannot connect, or returns non-2xx"""

    def __init__(
        self,
        kind: TransportErrorKind,
        message: str = "",
        status: Optional[int] = None,
        body: Any = None,
    ):
        self.kind = kind
        self.status = status
        self.body = body
        super().__init__(message or f"Transport failure ({kind.value})")

    @property
    def backend_message(self) -> Optional[str]:
        """Message or error text supplied by the backend, if any"""
        if isinstance(self.body, dict):
            for key in ("message", "error"):
                value = self.body.get(key)
                if isinstance(value, str) and value.strip():
                    return value
        return None


class NormalizationError(ParkSpotError):
    """Raised when a required identity or text field cannot be resolved"""

    def __init__(self, entity: str, reason: str):
        self.entity = entity
        self.reason = reason
        super().__init__(f"Invalid {entity} data: {reason}")


class BookingValidationError(ParkSpotError):
    """Raised for client-detected problems before any request is sent"""

    def __init__(self, field: str, reason: str):
        self.field = field
        self.reason = reason
        super().__init__(reason)


class ApiError(ParkSpotError):
    """Classified error raised by the application services"""

    def __init__(self, kind: ErrorKind, message: str, status: Optional[int] = None):
        self.kind = kind
        self.message = message
        self.status = status
        super().__init__(message)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(kind={self.kind.value!r}, status={self.status!r}, message={self.message!r})"


class AuthError(ApiError):
    """Raised when login or registration does not yield a usable session"""

    def __init__(
        self,
        reason: str,
        kind: ErrorKind = ErrorKind.NORMALIZATION,
        status: Optional[int] = None,
    ):
        self.reason = reason
        super().__init__(kind, reason, status)
