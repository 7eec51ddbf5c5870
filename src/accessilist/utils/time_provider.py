"""
Clock abstraction shared by the session store, the rate limiter and the
auto-save controller.

Production code uses ``DefaultTimeProvider``; tests inject ``FakeTimeProvider``
and move time forward explicitly instead of sleeping.

Usage:
    fake = FakeTimeProvider(start_time=1000.0)
    fake.advance(3.0)
    assert now_ms(fake) == 1_003_000
"""

from __future__ import annotations

import time
from typing import Protocol, runtime_checkable


@runtime_checkable
class TimeProvider(Protocol):
    """Anything that can tell wall-clock and monotonic time in seconds."""

    def now(self) -> float:
        """Return seconds since the epoch."""
        ...

    def monotonic(self) -> float:
        """Return a monotonic clock reading in seconds."""
        ...


class DefaultTimeProvider:
    """System clock."""

    def now(self) -> float:
        return time.time()

    def monotonic(self) -> float:
        return time.monotonic()


class FakeTimeProvider:
    """Manually driven clock for deterministic tests.

    Both ``now()`` and ``monotonic()`` move together when ``advance`` or
    ``set_time`` is called; ``monotonic()`` starts at zero.
    """

    def __init__(self, start_time: float = 0.0) -> None:
        self._current_time = start_time
        self._monotonic_start = start_time

    def now(self) -> float:
        return self._current_time

    def monotonic(self) -> float:
        return self._current_time - self._monotonic_start

    def advance(self, seconds: float) -> None:
        """Move the clock forward.

        Raises:
            ValueError: If ``seconds`` is negative.
        """
        if seconds < 0:
            raise ValueError("Cannot advance time by negative amount")
        self._current_time += seconds

    def set_time(self, time_value: float) -> None:
        self._current_time = time_value


_default_provider: TimeProvider = DefaultTimeProvider()


def get_default_time_provider() -> TimeProvider:
    return _default_provider


def set_default_time_provider(provider: TimeProvider) -> None:
    """Swap the process-wide clock (tests only)."""
    global _default_provider
    _default_provider = provider


def reset_default_time_provider() -> None:
    global _default_provider
    _default_provider = DefaultTimeProvider()


def now_ms(provider: TimeProvider | None = None) -> int:
    """Current wall-clock time as integer milliseconds since the epoch.

    Session metadata (``created``, ``lastModified``) and list timestamps are
    all expressed in this unit.
    """
    clock = provider or _default_provider
    return int(round(clock.now() * 1000))


def now_seconds(provider: TimeProvider | None = None) -> int:
    """Current wall-clock time as integer seconds, used in API envelopes."""
    clock = provider or _default_provider
    return int(clock.now())
