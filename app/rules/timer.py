"""
Wall-clock anchored match timer.

A running timer is never ticked: its elapsed time is always
``elapsed_seconds + (now - start_time)``, so a server restart or a viewer
reconnect reads the same value. Functions raise ``ValueError`` with the
violated rule; the goal rule module turns that into a state violation.
"""

from datetime import datetime

from app.schemas.state import Timer

STOPPED = "STOPPED"
RUNNING = "RUNNING"
PAUSED = "PAUSED"


def timer_state(timer: Timer) -> str:
    if timer.is_running and not timer.is_paused:
        return RUNNING
    if timer.is_paused:
        return PAUSED
    return STOPPED


def elapsed_seconds(timer: Timer, now: datetime) -> float:
    if timer_state(timer) == RUNNING and timer.start_time is not None:
        return timer.elapsed_seconds + max(0.0, (now - timer.start_time).total_seconds())
    return timer.elapsed_seconds


def start(timer: Timer, now: datetime) -> None:
    """STOPPED or PAUSED -> RUNNING, resuming from the frozen elapsed time"""
    if timer_state(timer) == RUNNING:
        raise ValueError("timer is already running")
    timer.start_time = now
    timer.is_running = True
    timer.is_paused = False


def pause(timer: Timer, now: datetime) -> None:
    if timer_state(timer) != RUNNING:
        raise ValueError("timer is not running")
    timer.elapsed_seconds = elapsed_seconds(timer, now)
    timer.start_time = None
    timer.is_running = False
    timer.is_paused = True


def stop(timer: Timer, now: datetime) -> None:
    if timer_state(timer) == STOPPED:
        raise ValueError("timer is already stopped")
    timer.elapsed_seconds = elapsed_seconds(timer, now)
    timer.start_time = None
    timer.is_running = False
    timer.is_paused = False


def freeze(timer: Timer, now: datetime) -> None:
    """Stop the timer if it is not already stopped"""
    if timer_state(timer) != STOPPED:
        stop(timer, now)


def reset(timer: Timer, elapsed: float = 0) -> None:
    timer.elapsed_seconds = elapsed
    timer.start_time = None
    timer.is_running = False
    timer.is_paused = False
    timer.added_time = 0


def game_clock(timer: Timer, now: datetime) -> str:
    """Minute mark for event logs, e.g. 23'"""
    seconds = int(elapsed_seconds(timer, now))
    return f"{seconds // 60 + 1}'"
