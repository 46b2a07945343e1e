"""Pomodoro timer, per-task ledger and session history."""

from pomodoro_ledger.focus.models import (
    Durations,
    Mode,
    Session,
    SessionType,
    Task,
    TaskTimers,
    TimerState,
    default_state,
    validate_state,
)
from pomodoro_ledger.focus.pomodoro import pause, reset, set_mode, start, tick
from pomodoro_ledger.focus.durations import set_durations
from pomodoro_ledger.focus.tasks import add_task, remove_task, set_active_task
from pomodoro_ledger.focus.service import PomodoroService

__all__ = [
    "Durations",
    "Mode",
    "Session",
    "SessionType",
    "Task",
    "TaskTimers",
    "TimerState",
    "default_state",
    "validate_state",
    "start",
    "pause",
    "reset",
    "tick",
    "set_mode",
    "set_durations",
    "add_task",
    "set_active_task",
    "remove_task",
    "PomodoroService",
]
