"""Debounced auto-save controller.

States::

    idle --mark_dirty--> pending --timer--> in_flight --done--> idle
                                              |   ^
                                   save_now() v   | drained
                                          pending_queued

- ``mark_dirty`` cancels any armed timer and, when auto-save is enabled and
  at least ``min_interval`` seconds have passed since the last auto-save
  attempt, successful or not, arms a ``debounce``-second timer.
- ``save_now`` bypasses the debounce. At most one save is in flight; calls
  made while one is in flight collapse into a single queued save that runs
  right after, collecting fresh state at that moment.
- A successful manual save enables auto-save for the rest of the session.
- Failures are logged and reported; the dirty flag stays set.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from enum import Enum
from typing import Any, Protocol

from accessilist.client.exceptions import ApiError
from accessilist.utils.time_provider import TimeProvider, get_default_time_provider

logger = logging.getLogger(__name__)

DEBOUNCE_SECONDS = 3.0
MIN_AUTO_SAVE_INTERVAL_SECONDS = 10.0

MANUAL = "manual"
AUTO = "auto"


class AutoSaveState(str, Enum):
    IDLE = "idle"
    PENDING = "pending"
    IN_FLIGHT = "in_flight"
    PENDING_QUEUED = "pending_queued"


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle: ...


class AsyncioScheduler:
    """Schedules callbacks on the running asyncio loop."""

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        return asyncio.get_running_loop().call_later(delay, callback)


class _ManualTimer:
    def __init__(self, due: float, callback: Callable[[], None]) -> None:
        self.due = due
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler:
    """Scheduler driven by explicit ``advance`` calls.

    When given a ``FakeTimeProvider``-like clock with ``advance``, moves it
    forward too so that elapsed-time checks see the same time.
    """

    def __init__(self, clock: Any | None = None) -> None:
        self.now = 0.0
        self._clock = clock
        self._timers: list[_ManualTimer] = []

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        timer = _ManualTimer(self.now + delay, callback)
        self._timers.append(timer)
        return timer

    @property
    def pending(self) -> int:
        return sum(1 for t in self._timers if not t.cancelled)

    def advance(self, seconds: float) -> int:
        """Move time forward, firing due timers in order. Returns how many fired."""
        target = self.now + seconds
        fired = 0
        while True:
            due = sorted(
                (t for t in self._timers if not t.cancelled and t.due <= target),
                key=lambda t: t.due,
            )
            if not due:
                break
            timer = due[0]
            self._timers.remove(timer)
            self._step_to(timer.due)
            timer.callback()
            fired += 1
        self._step_to(target)
        self._timers = [t for t in self._timers if not t.cancelled]
        return fired

    def _step_to(self, when: float) -> None:
        if self._clock is not None and when > self.now:
            self._clock.advance(when - self.now)
        self.now = max(self.now, when)


class AutoSaveController:
    """Decides when collected state is pushed to the server.

    Args:
        save: Coroutine function performing one save; raises ``ApiError`` on failure.
        scheduler: Timer source; defaults to the running asyncio loop.
        time_provider: Clock for the minimum interval between auto-saves.
        on_success: Called with the operation name after each successful save.
        on_failure: Called with the operation name and error after a failed save.
    """

    def __init__(
        self,
        save: Callable[[], Awaitable[None]],
        *,
        scheduler: Scheduler | None = None,
        time_provider: TimeProvider | None = None,
        on_success: Callable[[str], None] | None = None,
        on_failure: Callable[[str, ApiError], None] | None = None,
        debounce: float = DEBOUNCE_SECONDS,
        min_interval: float = MIN_AUTO_SAVE_INTERVAL_SECONDS,
    ) -> None:
        self._save = save
        self._scheduler: Scheduler = scheduler or AsyncioScheduler()
        self._clock = time_provider or get_default_time_provider()
        self._on_success = on_success
        self._on_failure = on_failure
        self.debounce = debounce
        self.min_interval = min_interval

        self.dirty = False
        self.auto_save_enabled = False
        self.manual_save_verified = False
        self.last_auto_save_time: float | None = None
        self.completed_saves = 0

        self._generation = 0
        self._timer: TimerHandle | None = None
        self._in_flight = False
        self._queued: tuple[str, asyncio.Future[bool]] | None = None
        self._auto_task: asyncio.Task[bool] | None = None

    @property
    def state(self) -> AutoSaveState:
        if self._in_flight:
            if self._queued is not None:
                return AutoSaveState.PENDING_QUEUED
            return AutoSaveState.IN_FLIGHT
        if self._timer is not None:
            return AutoSaveState.PENDING
        return AutoSaveState.IDLE

    def enable(self) -> None:
        self.auto_save_enabled = True

    def can_auto_save(self) -> bool:
        if self.last_auto_save_time is None:
            return True
        return self._clock.now() - self.last_auto_save_time > self.min_interval

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def mark_dirty(self) -> None:
        self.dirty = True
        self._generation += 1
        self._cancel_timer()
        if self.auto_save_enabled and self.can_auto_save():
            self._timer = self._scheduler.call_later(self.debounce, self._on_timer)

    def _on_timer(self) -> None:
        self._timer = None
        self._auto_task = asyncio.get_running_loop().create_task(self.save_now(AUTO))

    async def flush(self) -> None:
        """Wait for a save started by the debounce timer, if any."""
        if self._auto_task is not None:
            task, self._auto_task = self._auto_task, None
            await task

    async def save_now(self, operation: str = MANUAL) -> bool:
        """Save immediately, or queue behind the save in flight.

        Returns:
            True if the save (or the queued save it joined) succeeded.
        """
        if self._in_flight:
            if self._queued is None:
                future: asyncio.Future[bool] = asyncio.get_running_loop().create_future()
                self._queued = (operation, future)
            else:
                future = self._queued[1]
                if operation == MANUAL:
                    self._queued = (MANUAL, future)
            logger.debug("Save queued behind in-flight save (%s)", operation)
            return await future

        self._in_flight = True
        try:
            result = await self._run(operation)
        finally:
            try:
                await self._drain_queue()
            finally:
                self._in_flight = False
        return result

    async def _drain_queue(self) -> None:
        """Run the queued save, if any, and settle its waiters."""
        while self._queued is not None:
            queued_operation, future = self._queued
            self._queued = None
            try:
                result = await self._run(queued_operation)
            except Exception as e:
                logger.exception("Queued save failed (%s)", queued_operation)
                if not future.done():
                    future.set_exception(e)
            else:
                if not future.done():
                    future.set_result(result)

    async def _run(self, operation: str) -> bool:
        generation = self._generation
        try:
            await self._save()
        except ApiError as e:
            logger.warning("Save failed (%s): %s", operation, e)
            if self._on_failure is not None:
                self._on_failure(operation, e)
            return False
        finally:
            # Failed attempts also start the minimum interval
            if operation == AUTO:
                self.last_auto_save_time = self._clock.now()

        self.completed_saves += 1
        if generation == self._generation:
            # Edits made while the request was out keep the flag and timer
            self.dirty = False
            self._cancel_timer()
        if operation == MANUAL:
            self.manual_save_verified = True
            self.enable()
        logger.debug("Saved (%s)", operation)
        if self._on_success is not None:
            self._on_success(operation)
        return True

    def before_unload(self) -> bool:
        """True when leaving the page would lose changes."""
        return self.dirty
