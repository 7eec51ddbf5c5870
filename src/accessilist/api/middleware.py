"""Middleware for the AccessiList API.

Provides:
- Request ID tracking and access logging
- Prometheus request metrics
- Security headers
"""

from __future__ import annotations

import logging
import time
import uuid
from typing import TYPE_CHECKING, Any

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

logger = logging.getLogger(__name__)


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Attach a request ID to every request and log its completion.

    The ID comes from the ``X-Request-ID`` header when present, is stored on
    ``request.state.request_id`` and echoed in the response headers.
    """

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.state.request_id = request_id

        start_time = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception:
            logger.error(
                "Request failed",
                extra={
                    "request_id": request_id,
                    "method": request.method,
                    "path": request.url.path,
                },
                exc_info=True,
            )
            raise

        duration_ms = (time.perf_counter() - start_time) * 1000
        logger.info(
            "Request completed",
            extra={
                "request_id": request_id,
                "method": request.method,
                "path": request.url.path,
                "status_code": response.status_code,
                "duration_ms": round(duration_ms, 2),
            },
        )

        response.headers["X-Request-ID"] = request_id
        response.headers["X-Response-Time"] = f"{duration_ms:.2f}ms"
        return response


class MetricsMiddleware(BaseHTTPMiddleware):
    """Record request counts, latency and in-flight requests.

    Uses the ``MetricsExporter`` stored on ``app.state.metrics``; does nothing
    when metrics are disabled.
    """

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        metrics = getattr(request.app.state, "metrics", None)
        if metrics is None:
            return await call_next(request)

        metrics.increment_http_requests_in_flight()
        start_time = time.perf_counter()
        status = "500"
        try:
            response = await call_next(request)
            status = str(response.status_code)
            return response
        finally:
            # The router fills in the matched route during call_next
            endpoint = _route_template(request)
            metrics.decrement_http_requests_in_flight()
            metrics.observe_http_request_latency(time.perf_counter() - start_time, endpoint)
            metrics.increment_http_requests(request.method, endpoint, status)


def _route_template(request: Request) -> str:
    # Raw paths would give every session key its own label
    route: Any = request.scope.get("route")
    path = getattr(route, "path", None)
    return path or request.url.path


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add OWASP-recommended security headers to all responses.

    HSTS is only sent when ``hsts`` is enabled (staging and production).
    """

    def __init__(self, app: Any, hsts: bool = False) -> None:
        super().__init__(app)
        self._hsts = hsts

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        response = await call_next(request)

        response.headers["X-Frame-Options"] = "DENY"
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-XSS-Protection"] = "1; mode=block"
        response.headers["Content-Security-Policy"] = (
            "default-src 'self'; img-src 'self' data:; connect-src 'self'; "
            "frame-ancestors 'none'"
        )
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        response.headers["Permissions-Policy"] = (
            "geolocation=(), microphone=(), camera=(), payment=(), usb=()"
        )

        if self._hsts:
            response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"

        return response


def get_request_id(request: Request) -> str:
    """Request ID from request state, or ``"unknown"`` if not set."""
    return getattr(request.state, "request_id", "unknown")
