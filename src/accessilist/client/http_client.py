"""
SessionApiClient: ``requests``-based client for the AccessiList session API.

Example:
    >>> from accessilist.client import SessionApiClient
    >>> client = SessionApiClient(base_url="http://localhost:8000")
    >>> key = client.generate_key()
    >>> client.instantiate(key, "word")
    'Instance created'
    >>> client.restore(key)["typeSlug"]
    'word'
"""

from __future__ import annotations

import logging
from typing import Any

import requests
from requests.exceptions import ConnectionError as RequestsConnectionError
from requests.exceptions import RequestException, Timeout

from accessilist.client.exceptions import (
    ApiClientError,
    ApiConnectionError,
    ApiNotFoundError,
    ApiRateLimitError,
    ApiServerError,
    ApiTimeoutError,
)
from accessilist.utils.time_provider import TimeProvider, now_ms

logger = logging.getLogger(__name__)

CSRF_HEADER = "X-CSRF-Token"


class SessionApiClient:
    """HTTP client for the session API.

    Mutating calls (instantiate, save, delete) carry the CSRF token in the
    ``X-CSRF-Token`` header; the matching cookie lives in the session's
    cookie jar. The token is fetched on first use and refreshed once when
    the server rejects it.

    Args:
        base_url: Base URL of the API (e.g., "http://localhost:8000")
        timeout: Request timeout in seconds (default: 10.0)
        session: HTTP session to use; any object with the ``requests.Session``
            request/headers/cookies interface works
        time_provider: Clock used for the ``timestamp`` field of saves

    Raises:
        ApiClientError: For 4xx responses
        ApiServerError: For 5xx responses
        ApiTimeoutError: When a request times out
        ApiConnectionError: When the API cannot be reached
    """

    DEFAULT_TIMEOUT = 10.0

    def __init__(
        self,
        base_url: str = "http://localhost:8000",
        timeout: float | None = None,
        session: Any | None = None,
        time_provider: TimeProvider | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout if timeout is not None else self.DEFAULT_TIMEOUT
        self._session = session if session is not None else requests.Session()
        self._session.headers.update({"Accept": "application/json"})
        self._clock = time_provider
        self._csrf_token: str | None = None

    @property
    def base_url(self) -> str:
        return self._base_url

    @property
    def timeout(self) -> float:
        return self._timeout

    def _raise_for_status(self, response: Any) -> None:
        status_code = response.status_code
        try:
            data = response.json()
        except ValueError:
            data = {}
        message = data.get("message") if isinstance(data, dict) else None
        debug_id = response.headers.get("x-request-id")

        if status_code == 404:
            raise ApiNotFoundError(message or "Not found", debug_id=debug_id)
        if status_code == 429:
            retry_after = response.headers.get("Retry-After")
            raise ApiRateLimitError(
                message or "Rate limit exceeded. Please try again later.",
                retry_after=float(retry_after) if retry_after else None,
                debug_id=debug_id,
            )
        if 400 <= status_code < 500:
            raise ApiClientError(message or "Client error", status_code, debug_id=debug_id)
        raise ApiServerError(message or "Internal server error", status_code, debug_id=debug_id)

    def _request(
        self,
        method: str,
        endpoint: str,
        json_data: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> dict[str, Any]:
        """Send one request and return the parsed envelope."""
        url = f"{self._base_url}{endpoint}"
        try:
            response = self._session.request(
                method,
                url,
                json=json_data,
                params=params,
                headers=headers,
                timeout=self._timeout,
            )
        except Timeout as e:
            raise ApiTimeoutError("Request timed out", timeout_seconds=self._timeout) from e
        except RequestsConnectionError as e:
            raise ApiConnectionError(f"Could not connect to session API at {url}", url=url) from e
        except RequestException as e:
            raise ApiConnectionError(f"Request to session API at {url} failed: {e}", url=url) from e

        if response.status_code >= 400:
            self._raise_for_status(response)

        try:
            result = response.json()
        except ValueError:
            result = None
        if not isinstance(result, dict):
            raise ApiServerError(
                "Malformed response from session API",
                response.status_code,
                debug_id=response.headers.get("x-request-id"),
            )
        return result

    def fetch_csrf_token(self) -> str:
        """Mint a fresh CSRF token (the server also sets the cookie)."""
        envelope = self._request("GET", "/api/csrf-token")
        self._csrf_token = envelope["data"]["token"]
        return self._csrf_token

    def _mutate(
        self,
        method: str,
        endpoint: str,
        json_data: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        token = self._csrf_token or self.fetch_csrf_token()
        try:
            return self._request(method, endpoint, json_data, params, {CSRF_HEADER: token})
        except ApiClientError as e:
            if e.status_code != 403:
                raise
            logger.info("CSRF token rejected, refreshing once")
            token = self.fetch_csrf_token()
            return self._request(method, endpoint, json_data, params, {CSRF_HEADER: token})

    def generate_key(self) -> str:
        envelope = self._request("GET", "/api/generate-key")
        key: str = envelope["data"]["sessionKey"]
        return key

    def instantiate(
        self, session_key: str, type_slug: str, state: dict[str, Any] | None = None
    ) -> str:
        """Create the session if absent.

        Returns:
            The server message ("Instance created" or "Instance already exists").
        """
        body: dict[str, Any] = {"sessionKey": session_key, "typeSlug": type_slug}
        if state is not None:
            body["state"] = state
        envelope = self._mutate("POST", "/api/instantiate", json_data=body)
        message: str = envelope.get("data", {}).get("message", "")
        return message

    def save(self, session_key: str, type_slug: str, state: dict[str, Any]) -> None:
        """Replace the stored document with ``state``."""
        self._mutate(
            "POST",
            "/api/save",
            json_data={
                "sessionKey": session_key,
                "typeSlug": type_slug,
                "timestamp": now_ms(self._clock),
                "state": state,
            },
        )

    def restore(self, session_key: str) -> dict[str, Any] | None:
        """Stored document, or None when nothing has been saved yet."""
        try:
            envelope = self._request("GET", "/api/restore", params={"sessionKey": session_key})
        except ApiNotFoundError:
            return None
        document: dict[str, Any] = envelope.get("data") or {}
        return document

    def delete(self, session_key: str) -> None:
        """Delete a session.

        Raises:
            ApiNotFoundError: If the session does not exist.
        """
        self._mutate("DELETE", "/api/delete", params={"session": session_key})

    def list_sessions(self, detailed: bool = False) -> list[dict[str, Any]]:
        endpoint = "/api/list-detailed" if detailed else "/api/list"
        envelope = self._request("GET", endpoint)
        sessions: list[dict[str, Any]] = envelope.get("data") or []
        return sessions

    def checklist_types(self) -> dict[str, Any]:
        envelope = self._request("GET", "/api/types")
        types: dict[str, Any] = envelope.get("data") or {}
        return types

    def close(self) -> None:
        self._session.close()
