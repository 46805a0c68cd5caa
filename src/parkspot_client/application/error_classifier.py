# File: src/parkspot_client/application/error_classifier.py
"""
Error Classifier

Maps any failure raised below the service boundary to an ErrorKind and one
human-readable sentence. Message priority:
1. the backend's own `message`/`error` field, verbatim
2. a canned message from the status-code table
3. a canned message for the transport failure (timeout vs. connectivity)
4. a generic fallback

The classifier is pure: identical inputs always produce identical output.
"""

from dataclasses import dataclass
from typing import Dict, Optional, Tuple

from pydantic import ValidationError

from ..domain.errors import (
    ApiError, BookingValidationError, ErrorKind, NormalizationError,
    TransportError, TransportErrorKind,
)

STATUS_TABLE: Dict[int, Tuple[ErrorKind, str]] = {
    400: (ErrorKind.VALIDATION, "Invalid request"),
    401: (ErrorKind.UNAUTHORIZED, "Unauthorized. Please login again"),
    403: (ErrorKind.FORBIDDEN, "Access forbidden"),
    404: (ErrorKind.NOT_FOUND, "Resource not found"),
    422: (ErrorKind.VALIDATION, "Invalid request"),
    500: (ErrorKind.SERVER, "Server error. Please try again later"),
}

TIMEOUT_MESSAGE = "Request timeout. Please try again"
NETWORK_MESSAGE = "Network error. Check your connection"
UNKNOWN_MESSAGE = "An unexpected error occurred"


@dataclass(frozen=True)
class ClassifiedError:
    kind: ErrorKind
    message: str
    status: Optional[int] = None


class ErrorClassifier:

    def classify(self, error: BaseException) -> ClassifiedError:
        if isinstance(error, ApiError):
            return ClassifiedError(error.kind, error.message, error.status)
        if isinstance(error, TransportError):
            return self._classify_transport(error)
        if isinstance(error, NormalizationError):
            return ClassifiedError(ErrorKind.NORMALIZATION, str(error))
        if isinstance(error, BookingValidationError):
            return ClassifiedError(ErrorKind.VALIDATION, error.reason)
        if isinstance(error, ValidationError):
            return ClassifiedError(ErrorKind.VALIDATION, self._validation_message(error))
        return ClassifiedError(ErrorKind.UNKNOWN, str(error) or UNKNOWN_MESSAGE)

    def to_api_error(self, error: BaseException) -> ApiError:
        if isinstance(error, ApiError):
            return error
        classified = self.classify(error)
        return ApiError(classified.kind, classified.message, classified.status)

    def _classify_transport(self, error: TransportError) -> ClassifiedError:
        status = error.status
        if status is not None:
            kind, canned = self._status_entry(status)
            return ClassifiedError(kind, error.backend_message or canned, status)
        if error.kind is TransportErrorKind.TIMEOUT:
            return ClassifiedError(ErrorKind.TIMEOUT, TIMEOUT_MESSAGE)
        if error.kind is TransportErrorKind.NETWORK:
            return ClassifiedError(ErrorKind.NETWORK, NETWORK_MESSAGE)
        return ClassifiedError(ErrorKind.UNKNOWN, error.backend_message or UNKNOWN_MESSAGE)

    @staticmethod
    def _status_entry(status: int) -> Tuple[ErrorKind, str]:
        if status in STATUS_TABLE:
            return STATUS_TABLE[status]
        if 400 <= status < 500:
            return ErrorKind.VALIDATION, "Invalid request"
        if status >= 500:
            return ErrorKind.SERVER, "Server error"
        return ErrorKind.UNKNOWN, UNKNOWN_MESSAGE

    @staticmethod
    def _validation_message(error: ValidationError) -> str:
        first = error.errors()[0]
        message = str(first.get("msg", "Invalid value"))
        if message.startswith("Value error, "):
            message = message[len("Value error, "):]
        location = ".".join(str(part) for part in first.get("loc", ()) if part != "__root__")
        return f"{location}: {message}" if location else message
