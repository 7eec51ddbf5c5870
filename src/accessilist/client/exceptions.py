"""
Exceptions raised by the session API client.

Every failure the client can observe maps to one subclass of ``ApiError`` so
callers (the auto-save controller, the page lifecycle) can catch a single
type and still tell a missing session from a rate limit.
"""

from __future__ import annotations


class ApiError(Exception):
    """Base exception for all session API client errors.

    Attributes:
        message: Human-readable error message
        debug_id: Request ID echoed by the server, when available
    """

    def __init__(self, message: str, debug_id: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.debug_id = debug_id

    def __str__(self) -> str:
        if self.debug_id:
            return f"{self.message} (debug_id={self.debug_id})"
        return self.message


class ApiClientError(ApiError):
    """4xx response from the session API."""

    def __init__(self, message: str, status_code: int, debug_id: str | None = None) -> None:
        super().__init__(message, debug_id)
        self.status_code = status_code

    def __str__(self) -> str:
        base = f"[{self.status_code}] {self.message}"
        if self.debug_id:
            base += f" (debug_id={self.debug_id})"
        return base


class ApiNotFoundError(ApiClientError):
    """HTTP 404: no session stored under the key."""

    def __init__(self, message: str = "No saved data found", debug_id: str | None = None) -> None:
        super().__init__(message, status_code=404, debug_id=debug_id)


class ApiRateLimitError(ApiClientError):
    """HTTP 429.

    Attributes:
        retry_after: Seconds the server asked us to wait, if it said
    """

    def __init__(
        self,
        message: str = "Rate limit exceeded. Please try again later.",
        retry_after: float | None = None,
        debug_id: str | None = None,
    ) -> None:
        super().__init__(message, status_code=429, debug_id=debug_id)
        self.retry_after = retry_after


class ApiServerError(ApiError):
    """5xx response from the session API."""

    def __init__(self, message: str, status_code: int = 500, debug_id: str | None = None) -> None:
        super().__init__(message, debug_id)
        self.status_code = status_code


class ApiConnectionError(ApiError):
    """The API could not be reached."""

    def __init__(self, message: str, url: str | None = None) -> None:
        super().__init__(message)
        self.url = url


class ApiTimeoutError(ApiError):
    """The request did not complete in time."""

    def __init__(self, message: str, timeout_seconds: float | None = None) -> None:
        super().__init__(message)
        self.timeout_seconds = timeout_seconds
