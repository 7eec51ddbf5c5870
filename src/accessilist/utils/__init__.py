"""
AccessiList utility modules.

- Structured error codes and exception hierarchy
- Security audit logging
- Time provider abstraction for deterministic testing
"""

from .errors import (
    AccessiListError,
    ConfigurationError,
    ErrorCode,
    InvalidSessionKeyError,
    InvalidTypeSlugError,
    KeyGenerationError,
    RateLimitError,
    SecurityError,
    SessionNotFoundError,
    SessionStoreError,
    ValidationError,
    get_http_status_for_error,
)
from .security_logger import SecurityEventType, SecurityLogger, get_security_logger
from .time_provider import (
    DefaultTimeProvider,
    FakeTimeProvider,
    TimeProvider,
    get_default_time_provider,
    now_ms,
    now_seconds,
)

__all__ = [
    "AccessiListError",
    "ConfigurationError",
    "ErrorCode",
    "InvalidSessionKeyError",
    "InvalidTypeSlugError",
    "KeyGenerationError",
    "RateLimitError",
    "SecurityError",
    "SessionNotFoundError",
    "SessionStoreError",
    "ValidationError",
    "get_http_status_for_error",
    "SecurityEventType",
    "SecurityLogger",
    "get_security_logger",
    "DefaultTimeProvider",
    "FakeTimeProvider",
    "TimeProvider",
    "get_default_time_provider",
    "now_ms",
    "now_seconds",
]
