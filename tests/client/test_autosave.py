"""Tests for the debounced auto-save controller."""

import asyncio

import pytest

from accessilist.client.autosave import (
    AUTO,
    MANUAL,
    AutoSaveController,
    AutoSaveState,
    ManualScheduler,
)
from accessilist.client.exceptions import ApiServerError


class Recorder:
    """Save callable that records calls and can be told to fail."""

    def __init__(self):
        self.calls = 0
        self.fail = False

    async def __call__(self):
        self.calls += 1
        if self.fail:
            raise ApiServerError("boom", 500)


@pytest.fixture
def scheduler(fake_clock):
    return ManualScheduler(clock=fake_clock)


@pytest.fixture
def recorder():
    return Recorder()


@pytest.fixture
def events():
    return []


@pytest.fixture
def controller(recorder, scheduler, fake_clock, events):
    return AutoSaveController(
        recorder,
        scheduler=scheduler,
        time_provider=fake_clock,
        on_success=lambda op: events.append(("ok", op)),
        on_failure=lambda op, err: events.append(("failed", op)),
    )


class TestManualScheduler:
    def test_fires_due_timers_in_order(self, fake_clock):
        scheduler = ManualScheduler(clock=fake_clock)
        fired = []
        scheduler.call_later(2, lambda: fired.append("b"))
        scheduler.call_later(1, lambda: fired.append("a"))
        start = fake_clock.now()

        assert scheduler.advance(5) == 2
        assert fired == ["a", "b"]
        assert fake_clock.now() == start + 5

    def test_cancelled_timers_do_not_fire(self):
        scheduler = ManualScheduler()
        handle = scheduler.call_later(1, pytest.fail)
        handle.cancel()
        assert scheduler.pending == 0
        assert scheduler.advance(2) == 0


class TestDebounce:
    """Auto-save timing."""

    @pytest.mark.asyncio
    async def test_disabled_until_enabled(self, controller, scheduler):
        controller.mark_dirty()
        assert controller.dirty is True
        assert controller.state == AutoSaveState.IDLE
        assert scheduler.pending == 0

    @pytest.mark.asyncio
    async def test_saves_after_debounce(self, controller, scheduler, recorder, fake_clock):
        controller.enable()
        controller.mark_dirty()
        assert controller.state == AutoSaveState.PENDING

        scheduler.advance(2.9)
        assert recorder.calls == 0

        scheduler.advance(0.1)
        await controller.flush()
        assert recorder.calls == 1
        assert controller.dirty is False
        assert controller.last_auto_save_time == fake_clock.now()
        assert controller.state == AutoSaveState.IDLE

    @pytest.mark.asyncio
    async def test_new_edit_restarts_timer(self, controller, scheduler, recorder):
        controller.enable()
        controller.mark_dirty()
        scheduler.advance(2)
        controller.mark_dirty()
        scheduler.advance(2)
        assert recorder.calls == 0

        scheduler.advance(1)
        await controller.flush()
        assert recorder.calls == 1

    @pytest.mark.asyncio
    async def test_minimum_interval_between_auto_saves(
        self, controller, scheduler, recorder
    ):
        controller.enable()
        controller.mark_dirty()
        scheduler.advance(3)
        await controller.flush()

        scheduler.advance(5)
        controller.mark_dirty()
        assert scheduler.pending == 0

        # Exactly min_interval after the last save is still too soon
        scheduler.advance(5)
        controller.mark_dirty()
        assert scheduler.pending == 0

        scheduler.advance(0.5)
        controller.mark_dirty()
        assert scheduler.pending == 1
        scheduler.advance(3)
        await controller.flush()
        assert recorder.calls == 2


class TestSaveNow:
    """Immediate saves."""

    @pytest.mark.asyncio
    async def test_manual_save_enables_auto_save(self, controller, events):
        controller.mark_dirty()
        assert await controller.save_now(MANUAL) is True

        assert controller.auto_save_enabled is True
        assert controller.manual_save_verified is True
        assert controller.dirty is False
        assert events == [("ok", MANUAL)]

    @pytest.mark.asyncio
    async def test_auto_save_does_not_verify(self, controller):
        await controller.save_now(AUTO)
        assert controller.manual_save_verified is False
        assert controller.last_auto_save_time is not None

    @pytest.mark.asyncio
    async def test_other_operations(self, controller, events):
        await controller.save_now("reset")
        assert controller.auto_save_enabled is False
        assert controller.last_auto_save_time is None
        assert events == [("ok", "reset")]

    @pytest.mark.asyncio
    async def test_failure_keeps_dirty(self, controller, recorder, events):
        recorder.fail = True
        controller.mark_dirty()

        assert await controller.save_now(MANUAL) is False
        assert controller.dirty is True
        assert controller.auto_save_enabled is False
        assert events == [("failed", MANUAL)]
        assert controller.completed_saves == 0

    @pytest.mark.asyncio
    async def test_failed_auto_save_waits_minimum_interval(
        self, controller, recorder, scheduler, events
    ):
        recorder.fail = True
        controller.enable()
        controller.mark_dirty()
        scheduler.advance(3)
        await controller.flush()
        assert events == [("failed", AUTO)]

        controller.mark_dirty()
        assert scheduler.pending == 0

        scheduler.advance(10.5)
        controller.mark_dirty()
        assert scheduler.pending == 1

    @pytest.mark.asyncio
    async def test_before_unload(self, controller):
        assert controller.before_unload() is False
        controller.mark_dirty()
        assert controller.before_unload() is True


class TestSingleFlight:
    """At most one save at a time; later requests coalesce."""

    @pytest.mark.asyncio
    async def test_requests_during_save_coalesce(self, scheduler, fake_clock):
        gate = asyncio.Event()
        calls = []
        done = []

        async def slow_save():
            calls.append(len(calls))
            await gate.wait()

        controller = AutoSaveController(
            slow_save, scheduler=scheduler, time_provider=fake_clock, on_success=done.append
        )

        first = asyncio.create_task(controller.save_now(AUTO))
        await asyncio.sleep(0)
        assert controller.state == AutoSaveState.IN_FLIGHT

        second = asyncio.create_task(controller.save_now(AUTO))
        third = asyncio.create_task(controller.save_now(MANUAL))
        await asyncio.sleep(0)
        assert controller.state == AutoSaveState.PENDING_QUEUED

        gate.set()
        results = await asyncio.gather(first, second, third)

        assert results == [True, True, True]
        assert len(calls) == 2
        assert done == [AUTO, MANUAL]
        assert controller.state == AutoSaveState.IDLE

    @pytest.mark.asyncio
    async def test_edit_during_save_stays_dirty(self, scheduler, fake_clock):
        controller = None

        async def save_with_edit():
            controller.mark_dirty()

        controller = AutoSaveController(
            save_with_edit, scheduler=scheduler, time_provider=fake_clock
        )
        controller.mark_dirty()
        await controller.save_now(MANUAL)

        assert controller.dirty is True
        assert controller.completed_saves == 1

    @pytest.mark.asyncio
    async def test_queued_save_runs_after_unexpected_error(self, scheduler, fake_clock):
        gate = asyncio.Event()
        calls = []

        async def save():
            calls.append(len(calls))
            if len(calls) == 1:
                await gate.wait()
                raise ValueError("bad body")

        controller = AutoSaveController(save, scheduler=scheduler, time_provider=fake_clock)

        first = asyncio.create_task(controller.save_now(AUTO))
        await asyncio.sleep(0)
        queued = asyncio.create_task(controller.save_now(MANUAL))
        await asyncio.sleep(0)
        assert controller.state == AutoSaveState.PENDING_QUEUED

        gate.set()
        with pytest.raises(ValueError):
            await first
        assert await asyncio.wait_for(queued, timeout=1) is True

        assert len(calls) == 2
        assert controller.manual_save_verified is True
        assert controller.state == AutoSaveState.IDLE

    @pytest.mark.asyncio
    async def test_queued_waiter_receives_unexpected_error(self, scheduler, fake_clock):
        gate = asyncio.Event()
        calls = []

        async def save():
            calls.append(len(calls))
            if len(calls) == 1:
                await gate.wait()
            else:
                raise RuntimeError("broken")

        controller = AutoSaveController(save, scheduler=scheduler, time_provider=fake_clock)

        first = asyncio.create_task(controller.save_now(MANUAL))
        await asyncio.sleep(0)
        queued = asyncio.create_task(controller.save_now(MANUAL))
        await asyncio.sleep(0)

        gate.set()
        assert await first is True
        with pytest.raises(RuntimeError):
            await asyncio.wait_for(queued, timeout=1)
        assert controller.state == AutoSaveState.IDLE
