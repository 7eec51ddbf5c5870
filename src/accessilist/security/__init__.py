"""Request protection: CSRF tokens and per-IP rate limits."""

from .csrf import CSRF_COOKIE, CSRF_HEADER, CsrfProtector, CsrfValidationError
from .rate_limit import (
    ENDPOINT_LIMITS,
    FileRateLimiter,
    RateLimitDecision,
    build_endpoint_limiters,
)

__all__ = [
    "CSRF_COOKIE",
    "CSRF_HEADER",
    "CsrfProtector",
    "CsrfValidationError",
    "ENDPOINT_LIMITS",
    "FileRateLimiter",
    "RateLimitDecision",
    "build_endpoint_limiters",
]
