"""Security audit logging.

Structured JSON events for rate limiting, CSRF failures, rejected input and
session lifecycle changes. Client identifiers are pseudonymized hashes; raw
IP addresses and CSRF tokens are never written.
"""

import json
import logging
import time
import uuid
from enum import Enum
from typing import Any


class SecurityEventType(Enum):
    """Types of security events to log."""

    # Request protection
    RATE_LIMIT_EXCEEDED = "rate_limit_exceeded"
    CSRF_FAILURE = "csrf_failure"
    CSRF_TOKEN_ISSUED = "csrf_token_issued"
    INVALID_ORIGIN = "invalid_origin"

    # Input validation
    INVALID_INPUT = "invalid_input"

    # Session lifecycle
    SESSION_CREATED = "session_created"
    SESSION_DELETED = "session_deleted"
    KEY_SPACE_EXHAUSTED = "key_space_exhausted"

    # Configuration
    SECURITY_CONFIG_ERROR = "security_config_error"

    # System
    SYSTEM_ERROR = "system_error"
    STARTUP = "system_startup"
    SHUTDOWN = "system_shutdown"


_REDACTED_KEYS = frozenset({"token", "csrf_token", "secret", "ip", "password"})


class SecurityLogger:
    """Security audit logger with structured JSON output."""

    def __init__(self, logger_name: str = "accessilist.security"):
        self.logger = logging.getLogger(logger_name)
        self.logger.setLevel(logging.INFO)

    def _log_event(
        self,
        event_type: SecurityEventType,
        level: int,
        message: str,
        correlation_id: str | None = None,
        client_id: str | None = None,
        additional_data: dict[str, Any] | None = None,
    ) -> str:
        """Emit one JSON security event.

        Returns:
            Correlation ID used for this event
        """
        if correlation_id is None:
            correlation_id = str(uuid.uuid4())

        log_entry: dict[str, Any] = {
            "timestamp": time.time(),
            "correlation_id": correlation_id,
            "event_type": event_type.value,
            "message": message,
        }

        if client_id:
            log_entry["client_id"] = client_id

        if additional_data:
            log_entry["data"] = {
                k: v for k, v in additional_data.items() if k not in _REDACTED_KEYS
            }

        self.logger.log(level, json.dumps(log_entry, default=str))
        return correlation_id

    def log_rate_limit_exceeded(
        self,
        client_id: str,
        endpoint: str,
        retry_after: int,
        correlation_id: str | None = None,
    ) -> str:
        return self._log_event(
            SecurityEventType.RATE_LIMIT_EXCEEDED,
            logging.WARNING,
            f"Rate limit exceeded on {endpoint}",
            correlation_id=correlation_id,
            client_id=client_id,
            additional_data={"endpoint": endpoint, "retry_after": retry_after},
        )

    def log_csrf_failure(
        self, client_id: str, reason: str, correlation_id: str | None = None
    ) -> str:
        """Log a rejected CSRF check.

        Args:
            client_id: Pseudonymized client identifier
            reason: Short reason (missing, mismatch, expired, bad-signature)
            correlation_id: Optional correlation ID
        """
        return self._log_event(
            SecurityEventType.CSRF_FAILURE,
            logging.WARNING,
            f"CSRF validation failed: {reason}",
            correlation_id=correlation_id,
            client_id=client_id,
            additional_data={"reason": reason},
        )

    def log_csrf_token_issued(self, client_id: str, correlation_id: str | None = None) -> str:
        return self._log_event(
            SecurityEventType.CSRF_TOKEN_ISSUED,
            logging.DEBUG,
            "CSRF token issued",
            correlation_id=correlation_id,
            client_id=client_id,
        )

    def log_invalid_input(
        self, client_id: str, error_message: str, correlation_id: str | None = None
    ) -> str:
        return self._log_event(
            SecurityEventType.INVALID_INPUT,
            logging.WARNING,
            f"Invalid input: {error_message}",
            correlation_id=correlation_id,
            client_id=client_id,
            additional_data={"error": error_message},
        )

    def log_session_created(
        self, session_key: str, type_slug: str, client_id: str | None = None
    ) -> str:
        return self._log_event(
            SecurityEventType.SESSION_CREATED,
            logging.INFO,
            "Session instance created",
            client_id=client_id,
            additional_data={"session_key": session_key, "type_slug": type_slug},
        )

    def log_session_deleted(self, session_key: str, client_id: str | None = None) -> str:
        return self._log_event(
            SecurityEventType.SESSION_DELETED,
            logging.INFO,
            "Session instance deleted",
            client_id=client_id,
            additional_data={"session_key": session_key},
        )

    def log_key_space_exhausted(self, attempts: int) -> str:
        return self._log_event(
            SecurityEventType.KEY_SPACE_EXHAUSTED,
            logging.ERROR,
            f"Session key generation failed after {attempts} attempts",
            additional_data={"attempts": attempts},
        )

    def log_system_event(
        self,
        event_type: SecurityEventType,
        message: str,
        additional_data: dict[str, Any] | None = None,
    ) -> str:
        """Log startup, shutdown or configuration events."""
        level = (
            logging.ERROR
            if event_type
            in (SecurityEventType.SYSTEM_ERROR, SecurityEventType.SECURITY_CONFIG_ERROR)
            else logging.INFO
        )
        return self._log_event(event_type, level, message, additional_data=additional_data)


_security_logger = SecurityLogger()


def get_security_logger() -> SecurityLogger:
    """Get the global security logger instance."""
    return _security_logger
