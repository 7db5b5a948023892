"""Tests for the rest countdown timer."""
import asyncio

import pytest

from workout_tracker_api.services.rest_timer import RestTimer, RestTimerState, RestTimerStatus


class TestRestTimer:
    """State machine driven by explicit ticks."""

    def test_initially_inactive(self):
        timer = RestTimer()
        assert timer.state.value == RestTimerState()
        assert not timer.is_running

    def test_start_and_tick(self):
        timer = RestTimer()
        timer.start(3)
        assert timer.is_running
        timer.tick()
        assert timer.state.value.remaining == 2
        assert timer.state.value.total == 3

    def test_completes_at_zero(self):
        timer = RestTimer()
        timer.start(2)
        timer.tick()
        timer.tick()
        state = timer.state.value
        assert state.status == RestTimerStatus.COMPLETED
        assert state.remaining == 0
        timer.tick()
        assert timer.state.value.status == RestTimerStatus.COMPLETED

    def test_non_positive_duration_stays_inactive(self):
        timer = RestTimer()
        timer.start(0)
        assert timer.state.value.status == RestTimerStatus.INACTIVE

    def test_pause_freezes_countdown(self):
        timer = RestTimer()
        timer.start(5)
        timer.pause_resume()
        assert timer.is_paused
        timer.tick()
        assert timer.state.value.remaining == 5
        timer.pause_resume()
        assert timer.is_running
        timer.tick()
        assert timer.state.value.remaining == 4

    def test_stop_resets(self):
        timer = RestTimer()
        timer.start(5)
        timer.stop()
        assert timer.state.value == RestTimerState()

    def test_restart_replaces_countdown(self):
        timer = RestTimer()
        timer.start(5)
        timer.tick()
        timer.start(10)
        assert timer.state.value.remaining == 10

    @pytest.mark.asyncio
    async def test_ticks_on_running_loop(self):
        timer = RestTimer(tick_seconds=0.01)
        done = asyncio.Event()
        timer.state.subscribe(lambda s: s.status == RestTimerStatus.COMPLETED and done.set())
        timer.start(2)
        await asyncio.wait_for(done.wait(), timeout=2)
        assert timer.state.value.status == RestTimerStatus.COMPLETED
