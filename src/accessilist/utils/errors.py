"""Structured error codes and exception hierarchy for AccessiList.

Error codes follow the pattern ``E{category}{number}``:

- E1xx: Input validation errors (bad session key, unknown checklist type)
- E2xx: Security errors (CSRF, origin)
- E4xx: Session store errors (not found, I/O, key generation)
- E9xx: API/request errors (rate limiting, method not allowed)

Every ``AccessiListError`` knows its HTTP status through
``get_http_status_for_error`` so the API layer can render it without
a per-exception mapping table.

Example:
    >>> from accessilist.utils.errors import ErrorCode, AccessiListError
    >>> raise AccessiListError(ErrorCode.E101_INVALID_SESSION_KEY, "Invalid session key")
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

logger = logging.getLogger(__name__)


class ErrorCode(Enum):
    """Enumerated error codes."""

    # Validation
    E100_VALIDATION_ERROR = "E100"
    E101_INVALID_SESSION_KEY = "E101"
    E102_INVALID_TYPE_SLUG = "E102"
    E103_MISSING_FIELD = "E103"
    E104_INVALID_STATE = "E104"

    # Security
    E200_SECURITY_ERROR = "E200"
    E201_INVALID_CSRF_TOKEN = "E201"
    E202_INVALID_ORIGIN = "E202"

    # Session store
    E400_STORE_ERROR = "E400"
    E401_SESSION_NOT_FOUND = "E401"
    E402_SESSION_CORRUPTED = "E402"
    E403_LOCK_FAILED = "E403"
    E404_KEY_SPACE_EXHAUSTED = "E404"

    # Configuration
    E800_CONFIG_ERROR = "E800"
    E801_INVALID_TYPES_FILE = "E801"

    # API
    E900_API_ERROR = "E900"
    E901_RATE_LIMIT_EXCEEDED = "E901"
    E906_METHOD_NOT_ALLOWED = "E906"


ERROR_MESSAGES: dict[ErrorCode, str] = {
    ErrorCode.E100_VALIDATION_ERROR: "Invalid request",
    ErrorCode.E101_INVALID_SESSION_KEY: "Invalid session key",
    ErrorCode.E102_INVALID_TYPE_SLUG: "Invalid checklist type",
    ErrorCode.E103_MISSING_FIELD: "Missing required field",
    ErrorCode.E104_INVALID_STATE: "Invalid state document",
    ErrorCode.E200_SECURITY_ERROR: "Forbidden",
    ErrorCode.E201_INVALID_CSRF_TOKEN: "Invalid CSRF token",
    ErrorCode.E202_INVALID_ORIGIN: "Invalid origin",
    ErrorCode.E400_STORE_ERROR: "Session storage error",
    ErrorCode.E401_SESSION_NOT_FOUND: "No saved data found",
    ErrorCode.E402_SESSION_CORRUPTED: "Failed to read saved data",
    ErrorCode.E403_LOCK_FAILED: "Failed to lock session file",
    ErrorCode.E404_KEY_SPACE_EXHAUSTED: "Unable to generate unique key - all attempts exhausted",
    ErrorCode.E800_CONFIG_ERROR: "Configuration error",
    ErrorCode.E801_INVALID_TYPES_FILE: "Invalid checklist types file",
    ErrorCode.E900_API_ERROR: "API error",
    ErrorCode.E901_RATE_LIMIT_EXCEEDED: "Rate limit exceeded. Please try again later.",
    ErrorCode.E906_METHOD_NOT_ALLOWED: "Method not allowed",
}


@dataclass
class ErrorDetails:
    """Structured error details for logging and API responses.

    Attributes:
        code: Error code enum value
        message: Human-readable error message
        details: Additional error details
        retry_after: Seconds to wait before retry (for rate limits)
    """

    code: ErrorCode
    message: str
    details: dict[str, Any] = field(default_factory=dict)
    retry_after: int | None = None

    def to_log_dict(self) -> dict[str, Any]:
        """Flatten into ``extra`` fields for a log record."""
        log_dict: dict[str, Any] = {
            "error_code": self.code.value,
            "error_message": self.message,
        }
        for key, value in self.details.items():
            log_dict[f"detail_{key}"] = value
        if self.retry_after is not None:
            log_dict["retry_after"] = self.retry_after
        return log_dict


class AccessiListError(Exception):
    """Base exception with a structured error code."""

    def __init__(
        self,
        code: ErrorCode,
        message: str | None = None,
        details: dict[str, Any] | None = None,
        retry_after: int | None = None,
    ) -> None:
        self.code = code
        self.message = message or ERROR_MESSAGES.get(code, "Unknown error")
        self.error_details = ErrorDetails(
            code=code,
            message=self.message,
            details=details or {},
            retry_after=retry_after,
        )
        super().__init__(self.message)

    def __str__(self) -> str:
        return f"[{self.code.value}] {self.message}"

    def log(self, level: int = logging.ERROR) -> None:
        logger.log(level, str(self), extra=self.error_details.to_log_dict())


# ---------------------------------------------------------------------------
# Specific exception classes
# ---------------------------------------------------------------------------


class ValidationError(AccessiListError):
    """Input validation error."""

    def __init__(
        self,
        message: str | None = None,
        code: ErrorCode = ErrorCode.E100_VALIDATION_ERROR,
        **kwargs: Any,
    ) -> None:
        super().__init__(code, message, **kwargs)


class InvalidSessionKeyError(ValidationError):
    def __init__(self, key: object = None) -> None:
        super().__init__(
            code=ErrorCode.E101_INVALID_SESSION_KEY,
            details={"key": str(key)[:40]} if key is not None else None,
        )


class InvalidTypeSlugError(ValidationError):
    def __init__(self, type_slug: object = None) -> None:
        super().__init__(
            code=ErrorCode.E102_INVALID_TYPE_SLUG,
            details={"type_slug": str(type_slug)[:40]} if type_slug is not None else None,
        )


class SecurityError(AccessiListError):
    """CSRF or origin check failure."""

    def __init__(
        self,
        code: ErrorCode = ErrorCode.E200_SECURITY_ERROR,
        message: str | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(code, message, **kwargs)


class SessionStoreError(AccessiListError):
    """Session store I/O, lock or decode failure."""

    def __init__(
        self,
        message: str | None = None,
        code: ErrorCode = ErrorCode.E400_STORE_ERROR,
        **kwargs: Any,
    ) -> None:
        super().__init__(code, message, **kwargs)


class SessionNotFoundError(SessionStoreError):
    def __init__(self, key: str, message: str | None = None) -> None:
        super().__init__(
            message,
            code=ErrorCode.E401_SESSION_NOT_FOUND,
            details={"key": key},
        )
        self.key = key


class KeyGenerationError(SessionStoreError):
    def __init__(self, attempts: int) -> None:
        super().__init__(
            code=ErrorCode.E404_KEY_SPACE_EXHAUSTED,
            details={"attempts": attempts},
        )


class ConfigurationError(AccessiListError):
    def __init__(
        self,
        message: str | None = None,
        code: ErrorCode = ErrorCode.E800_CONFIG_ERROR,
        **kwargs: Any,
    ) -> None:
        super().__init__(code, message, **kwargs)


class RateLimitError(AccessiListError):
    """Rate limit error."""

    def __init__(
        self,
        message: str | None = None,
        retry_after: int = 60,
        **kwargs: Any,
    ) -> None:
        super().__init__(
            ErrorCode.E901_RATE_LIMIT_EXCEEDED,
            message,
            retry_after=retry_after,
            **kwargs,
        )


# ---------------------------------------------------------------------------
# Error helpers
# ---------------------------------------------------------------------------


def log_error(
    error: AccessiListError | Exception,
    request_id: str | None = None,
) -> None:
    """Log an error with structured context.

    Args:
        error: The error to log
        request_id: Request ID for correlation
    """
    if isinstance(error, AccessiListError):
        if request_id:
            error.error_details.details["request_id"] = request_id
        level = logging.ERROR if get_http_status_for_error(error) >= 500 else logging.WARNING
        error.log(level)
    else:
        extra: dict[str, Any] = {
            "error_code": ErrorCode.E900_API_ERROR.value,
            "error_type": type(error).__name__,
        }
        if request_id:
            extra["request_id"] = request_id
        logger.error(str(error), exc_info=error, extra=extra)


def get_http_status_for_error(error: AccessiListError) -> int:
    """Get the HTTP status code for an AccessiList error.

    Args:
        error: The error

    Returns:
        HTTP status code
    """
    code = error.code.value

    if code.startswith("E1"):
        return 400
    elif code.startswith("E2"):
        return 403
    elif code.startswith("E4"):
        if code == "E401":
            return 404
        elif code == "E404":
            return 503
        return 500
    elif code.startswith("E8"):
        return 500
    elif code.startswith("E9"):
        if code == "E901":
            return 429
        elif code == "E906":
            return 405
        return 500

    return 500
