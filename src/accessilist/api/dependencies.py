"""Request-scoped dependencies: services, client identity, rate limits, CSRF."""

from __future__ import annotations

import hashlib
import logging
from collections.abc import Callable
from dataclasses import dataclass, field

from fastapi import Request

from accessilist.config.checklist_types import TypeRegistry
from accessilist.config.runtime import RuntimeConfig
from accessilist.observability.metrics import MetricsExporter
from accessilist.security.csrf import CSRF_COOKIE, CSRF_HEADER, CsrfProtector, CsrfValidationError
from accessilist.security.rate_limit import FileRateLimiter
from accessilist.state.session_store import SessionStore
from accessilist.utils.errors import RateLimitError
from accessilist.utils.security_logger import get_security_logger

logger = logging.getLogger(__name__)
security_logger = get_security_logger()


@dataclass
class AppServices:
    """Everything a request handler needs, built once per application."""

    config: RuntimeConfig
    store: SessionStore
    registry: TypeRegistry
    csrf: CsrfProtector
    limiters: dict[str, FileRateLimiter] = field(default_factory=dict)
    metrics: MetricsExporter | None = None

    @property
    def rate_limiting_enabled(self) -> bool:
        return self.config.security.rate_limit_enabled


def get_services(request: Request) -> AppServices:
    services: AppServices = request.app.state.services
    return services


def get_client_ip(request: Request) -> str:
    return request.client.host if request.client else "unknown"


def get_client_id(request: Request) -> str:
    """Pseudonymized client identifier (SHA256 of IP and User-Agent)."""
    user_agent = request.headers.get("user-agent", "")
    identifier = f"{get_client_ip(request)}:{user_agent}"
    return hashlib.sha256(identifier.encode()).hexdigest()[:16]


def rate_limit(endpoint: str) -> Callable[[Request], None]:
    """Dependency factory enforcing the per-IP limit of ``endpoint``.

    Raises:
        RateLimitError: When the client is over its limit.
    """

    def dependency(request: Request) -> None:
        services = get_services(request)
        if not services.rate_limiting_enabled:
            return
        limiter = services.limiters.get(endpoint)
        if limiter is None:
            return

        decision = limiter.check(get_client_ip(request))
        if not decision.allowed:
            security_logger.log_rate_limit_exceeded(
                client_id=get_client_id(request),
                endpoint=endpoint,
                retry_after=decision.retry_after,
            )
            if services.metrics is not None:
                services.metrics.increment_rate_limited(endpoint)
            raise RateLimitError(retry_after=decision.retry_after)

    dependency.__name__ = f"rate_limit_{endpoint.replace('-', '_')}"
    return dependency


def require_csrf(request: Request) -> None:
    """Reject mutating requests without a valid double-submitted CSRF token.

    Raises:
        CsrfValidationError: Rendered as 403.
    """
    services = get_services(request)
    try:
        services.csrf.validate(
            request.headers.get(CSRF_HEADER),
            request.cookies.get(CSRF_COOKIE),
        )
    except CsrfValidationError as e:
        security_logger.log_csrf_failure(client_id=get_client_id(request), reason=e.reason)
        if services.metrics is not None:
            services.metrics.increment_csrf_rejection(e.reason)
        raise
