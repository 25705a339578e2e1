"""
Unit tests for the wall-clock anchored timer
"""

from datetime import datetime, timedelta, timezone

import pytest

from app.rules import timer
from app.schemas.state import Timer

T0 = datetime(2026, 3, 14, 15, 0, tzinfo=timezone.utc)


def at(seconds):
    return T0 + timedelta(seconds=seconds)


def test_new_timer_is_stopped():
    assert timer.timer_state(Timer()) == timer.STOPPED
    assert timer.elapsed_seconds(Timer(), T0) == 0


def test_running_elapsed_is_derived_from_anchor():
    t = Timer()
    timer.start(t, T0)

    assert timer.timer_state(t) == timer.RUNNING
    assert timer.elapsed_seconds(t, at(75)) == 75
    assert t.elapsed_seconds == 0


def test_pause_freezes_elapsed():
    t = Timer()
    timer.start(t, T0)
    timer.pause(t, at(30))

    assert timer.timer_state(t) == timer.PAUSED
    assert timer.elapsed_seconds(t, at(500)) == 30


def test_resume_continues_from_frozen_value():
    t = Timer()
    timer.start(t, T0)
    timer.pause(t, at(30))
    timer.start(t, at(100))

    assert timer.elapsed_seconds(t, at(110)) == 40


def test_stop_from_paused():
    t = Timer()
    timer.start(t, T0)
    timer.pause(t, at(30))
    timer.stop(t, at(60))

    assert timer.timer_state(t) == timer.STOPPED
    assert t.elapsed_seconds == 30


def test_illegal_transitions():
    t = Timer()
    with pytest.raises(ValueError):
        timer.pause(t, T0)
    with pytest.raises(ValueError):
        timer.stop(t, T0)

    timer.start(t, T0)
    with pytest.raises(ValueError):
        timer.start(t, at(1))


def test_reset_and_game_clock():
    t = Timer(added_time=120)
    timer.start(t, T0)
    timer.reset(t, 2700)

    assert timer.timer_state(t) == timer.STOPPED
    assert t.added_time == 0
    assert timer.game_clock(t, T0) == "46'"
