"""Unit tests for stateless CSRF tokens."""

import base64

import pytest

from accessilist.security.csrf import CsrfProtector, CsrfValidationError
from accessilist.utils.errors import ErrorCode, get_http_status_for_error
from accessilist.utils.time_provider import FakeTimeProvider


@pytest.fixture
def clock():
    return FakeTimeProvider(start_time=1_700_000_000.0)


@pytest.fixture
def protector(clock):
    return CsrfProtector("secret", ttl=3600, now=clock.now)


def _reason(protector, header, cookie):
    with pytest.raises(CsrfValidationError) as exc_info:
        protector.validate(header, cookie)
    return exc_info.value.reason


class TestCsrfProtector:
    """Double-submit validation."""

    def test_valid_token_passes(self, protector):
        token = protector.issue()
        protector.validate(token, token)

    def test_tokens_are_unique(self, protector):
        assert protector.issue() != protector.issue()

    def test_missing_header(self, protector):
        token = protector.issue()
        assert _reason(protector, None, token) == "missing-header"

    def test_missing_cookie(self, protector):
        token = protector.issue()
        assert _reason(protector, token, None) == "missing-cookie"

    def test_mismatch(self, protector):
        assert _reason(protector, protector.issue(), protector.issue()) == "mismatch"

    def test_expired(self, protector, clock):
        token = protector.issue()
        clock.advance(3601)
        assert _reason(protector, token, token) == "expired"

    def test_valid_until_expiry(self, protector, clock):
        token = protector.issue()
        clock.advance(3600)
        protector.validate(token, token)

    def test_bad_signature_from_other_secret(self, clock):
        other = CsrfProtector("other", now=clock.now).issue()
        protector = CsrfProtector("secret", now=clock.now)
        assert _reason(protector, other, other) == "bad-signature"

    def test_tampered_expiry(self, protector):
        token = protector.issue()
        nonce, expiry, signature = base64.urlsafe_b64decode(token).decode().split("|")
        forged = base64.urlsafe_b64encode(
            f"{nonce}|{int(expiry) + 99999}|{signature}".encode()
        ).decode()
        assert _reason(protector, forged, forged) == "bad-signature"

    @pytest.mark.parametrize("token", ["!!!", base64.urlsafe_b64encode(b"a|b").decode()])
    def test_malformed_tokens(self, protector, token):
        assert _reason(protector, token, token) in {"undecodable", "malformed"}

    def test_disabled_accepts_everything(self):
        protector = CsrfProtector("", enabled=False)
        protector.validate(None, None)

    def test_enabled_requires_secret(self):
        with pytest.raises(ValueError):
            CsrfProtector("")

    def test_error_maps_to_403(self, protector):
        with pytest.raises(CsrfValidationError) as exc_info:
            protector.validate(None, None)
        assert exc_info.value.code == ErrorCode.E201_INVALID_CSRF_TOKEN
        assert get_http_status_for_error(exc_info.value) == 403
