"""
Stateless CSRF tokens with double-submit verification.

``GET /api/csrf-token`` mints a token of the form
``base64url("<nonce>|<expiry>|<hmac-sha256 hex>")`` and sets it as the
``csrf_token`` cookie. Mutating requests must echo the same token in the
``X-CSRF-Token`` header. A request passes when the header token carries a
valid, unexpired signature and equals the cookie.
"""

from __future__ import annotations

import base64
import binascii
import hashlib
import hmac
import logging
import secrets
import time
from typing import TYPE_CHECKING

from accessilist.utils.errors import ErrorCode, SecurityError

if TYPE_CHECKING:
    from collections.abc import Callable

logger = logging.getLogger(__name__)

CSRF_HEADER = "X-CSRF-Token"
CSRF_COOKIE = "csrf_token"


class CsrfValidationError(SecurityError):
    """CSRF check failed. ``reason`` is safe to log."""

    def __init__(self, reason: str) -> None:
        super().__init__(ErrorCode.E201_INVALID_CSRF_TOKEN, details={"reason": reason})
        self.reason = reason


def _sign(secret: str, payload: str) -> str:
    return hmac.new(secret.encode("utf-8"), payload.encode("utf-8"), hashlib.sha256).hexdigest()


class CsrfProtector:
    """Issues and validates CSRF tokens.

    Args:
        secret: HMAC key. Every process that validates must share it.
        ttl: Token lifetime in seconds.
        enabled: When False, ``validate`` accepts everything.
        now: Optional clock function for deterministic tests.
    """

    def __init__(
        self,
        secret: str,
        ttl: int = 3600,
        enabled: bool = True,
        now: Callable[[], float] | None = None,
    ) -> None:
        if enabled and not secret:
            raise ValueError("CSRF secret must not be empty")
        self._secret = secret
        self.ttl = ttl
        self.enabled = enabled
        self._now = now or time.time

    def issue(self) -> str:
        nonce = secrets.token_hex(16)
        expiry = int(self._now()) + self.ttl
        payload = f"{nonce}|{expiry}"
        raw = f"{payload}|{_sign(self._secret, payload)}"
        return base64.urlsafe_b64encode(raw.encode("ascii")).decode("ascii")

    def verify_signature(self, token: str) -> None:
        """Check format, expiry and signature of one token.

        Raises:
            CsrfValidationError: With a short reason.
        """
        try:
            decoded = base64.urlsafe_b64decode(token.encode("ascii")).decode("ascii")
        except (binascii.Error, UnicodeError, ValueError) as e:
            raise CsrfValidationError("undecodable") from e

        parts = decoded.split("|")
        if len(parts) != 3:
            raise CsrfValidationError("malformed")
        nonce, expiry_str, signature = parts

        try:
            expiry = int(expiry_str)
        except ValueError as e:
            raise CsrfValidationError("malformed") from e
        if self._now() > expiry:
            raise CsrfValidationError("expired")

        expected = _sign(self._secret, f"{nonce}|{expiry_str}")
        if not hmac.compare_digest(expected, signature):
            raise CsrfValidationError("bad-signature")

    def validate(self, header_token: str | None, cookie_token: str | None) -> None:
        """Validate a request's header token against its cookie.

        Raises:
            CsrfValidationError: If the request must be rejected.
        """
        if not self.enabled:
            return
        if not header_token:
            raise CsrfValidationError("missing-header")
        if not cookie_token:
            raise CsrfValidationError("missing-cookie")
        if not hmac.compare_digest(header_token.encode(), cookie_token.encode()):
            raise CsrfValidationError("mismatch")
        self.verify_signature(header_token)
