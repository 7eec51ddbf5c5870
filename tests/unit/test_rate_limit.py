"""Unit tests for the file-backed rate limiter."""

import os
import threading
import time

import pytest

from accessilist.security.rate_limit import (
    ENDPOINT_LIMITS,
    FileRateLimiter,
    build_endpoint_limiters,
)
from accessilist.utils.time_provider import FakeTimeProvider


@pytest.fixture
def clock():
    return FakeTimeProvider(start_time=1_000_000.0)


@pytest.fixture
def limiter(tmp_path, clock):
    return FileRateLimiter(
        tmp_path, requests_per_window=3, window_seconds=60, namespace="test", now=clock.now
    )


class TestFileRateLimiter:
    """Sliding window behavior."""

    def test_allows_up_to_limit(self, limiter):
        decisions = [limiter.check("1.2.3.4") for _ in range(3)]
        assert all(d.allowed for d in decisions)
        assert [d.remaining for d in decisions] == [2, 1, 0]

    def test_denies_over_limit_with_retry_after(self, limiter, clock):
        for _ in range(3):
            limiter.check("1.2.3.4")
            clock.advance(10)

        decision = limiter.check("1.2.3.4")
        assert decision.allowed is False
        assert decision.remaining == 0
        # Oldest attempt was 30s ago in a 60s window
        assert decision.retry_after == 30

    def test_window_slides(self, limiter, clock):
        for _ in range(3):
            limiter.check("1.2.3.4")
        assert not limiter.check("1.2.3.4").allowed

        clock.advance(61)
        assert limiter.check("1.2.3.4").allowed

    def test_denied_requests_are_not_recorded(self, limiter, clock):
        for _ in range(3):
            limiter.check("1.2.3.4")
        for _ in range(5):
            limiter.check("1.2.3.4")

        clock.advance(61)
        assert limiter.get_remaining("1.2.3.4") == 3

    def test_clients_are_independent(self, limiter):
        for _ in range(3):
            limiter.check("1.1.1.1")
        assert limiter.check("2.2.2.2").allowed

    def test_namespaces_are_independent(self, tmp_path, clock):
        save = FileRateLimiter(tmp_path, 1, 60, namespace="save", now=clock.now)
        restore = FileRateLimiter(tmp_path, 1, 60, namespace="restore", now=clock.now)

        assert save.check("ip").allowed
        assert restore.check("ip").allowed
        assert not save.check("ip").allowed

    def test_state_shared_across_instances(self, tmp_path, clock):
        """Two limiters over one directory count together (separate workers)."""
        first = FileRateLimiter(tmp_path, 2, 60, namespace="save", now=clock.now)
        second = FileRateLimiter(tmp_path, 2, 60, namespace="save", now=clock.now)

        first.check("ip")
        second.check("ip")
        assert not first.check("ip").allowed

    def test_concurrent_checks_respect_limit(self, tmp_path):
        limiter = FileRateLimiter(tmp_path, requests_per_window=10, window_seconds=3600)
        allowed = []
        lock = threading.Lock()

        def worker():
            decision = limiter.check("ip")
            with lock:
                allowed.append(decision.allowed)

        threads = [threading.Thread(target=worker) for _ in range(25)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert allowed.count(True) == 10

    def test_corrupt_file_is_reset(self, limiter, tmp_path):
        limiter.check("ip")
        for path in tmp_path.glob("rl_*.json"):
            path.write_text("not json")
        assert limiter.check("ip").allowed
        assert limiter.get_remaining("ip") == 2

    def test_reset_clears_client(self, limiter):
        for _ in range(3):
            limiter.check("ip")
        limiter.reset("ip")
        assert limiter.check("ip").allowed

    def test_cleanup_removes_stale_files(self, limiter, tmp_path):
        limiter.check("old")
        limiter.check("new")
        paths = sorted(tmp_path.glob("rl_*.json"))
        assert len(paths) == 2

        old_path = limiter._path_for("old")
        stale = time.time() - 2 * 86400
        os.utime(old_path, (stale, stale))

        assert limiter.cleanup_stale_files() == 1
        assert not old_path.exists()
        assert limiter._path_for("new").exists()


class TestBuildEndpointLimiters:
    def test_one_limiter_per_endpoint(self, tmp_path):
        limiters = build_endpoint_limiters(tmp_path)
        assert set(limiters) == set(ENDPOINT_LIMITS)

    def test_multiplier_scales_limits(self, tmp_path):
        limiters = build_endpoint_limiters(tmp_path, multiplier=50)
        assert limiters["instantiate"].requests_per_window == ENDPOINT_LIMITS["instantiate"][0] * 50
        assert limiters["instantiate"].window_seconds == ENDPOINT_LIMITS["instantiate"][1]

    def test_custom_limits(self, tmp_path):
        limiters = build_endpoint_limiters(tmp_path, limits={"save": (2, 10)})
        assert list(limiters) == ["save"]
        assert limiters["save"].requests_per_window == 2
