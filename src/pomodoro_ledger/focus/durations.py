"""Duration configuration: minutes in, whole seconds stored."""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Any

from pomodoro_ledger.focus.ledger import mirror_countdown
from pomodoro_ledger.focus.models import Durations, TimerState
from pomodoro_ledger.focus.pomodoro import pause

logger = logging.getLogger(__name__)

MIN_DURATION_SECONDS = 60

# Bounds and fallbacks applied by user interfaces before calling set_durations
UI_MIN_MINUTES = 1
UI_MAX_MINUTES = 60
DEFAULT_WORK_MINUTES = 25
DEFAULT_SHORT_BREAK_MINUTES = 5
DEFAULT_LONG_BREAK_MINUTES = 15


def minutes_to_seconds(minutes: float) -> int:
    """Convert minutes to whole seconds, never below one minute."""
    return max(MIN_DURATION_SECONDS, int(float(minutes) * 60 + 0.5))


def durations_from_minutes(
    work_minutes: float, short_break_minutes: float, long_break_minutes: float
) -> Durations:
    return Durations(
        work=minutes_to_seconds(work_minutes),
        short_break=minutes_to_seconds(short_break_minutes),
        long_break=minutes_to_seconds(long_break_minutes),
    )


def coerce_minutes(value: Any, default: int) -> int:
    """Parse user input into minutes within the UI range.

    Blank or non-numeric input falls back to ``default``.
    """
    try:
        minutes = int(str(value).strip())
    except (TypeError, ValueError):
        return default
    return max(UI_MIN_MINUTES, min(UI_MAX_MINUTES, minutes))


def set_durations(
    state: TimerState,
    work_minutes: float,
    short_break_minutes: float,
    long_break_minutes: float,
    now: int,
) -> TimerState:
    """Replace the configured interval lengths and stop the timer.

    An untouched countdown (still at the old full length) jumps to the new
    length; a partially elapsed one is kept, capped at the new length.
    """
    durations = durations_from_minutes(work_minutes, short_break_minutes, long_break_minutes)
    stopped = pause(state, now)

    old_full = state.durations.for_mode(state.mode)
    new_full = durations.for_mode(state.mode)
    if stopped.seconds_left == old_full:
        seconds_left = new_full
    else:
        seconds_left = min(stopped.seconds_left, new_full)

    logger.info(
        f"Durations set: work={durations.work}s short_break={durations.short_break}s "
        f"long_break={durations.long_break}s"
    )
    return replace(
        stopped,
        durations=durations,
        seconds_left=seconds_left,
        is_running=False,
        last_tick=None,
        ledger=mirror_countdown(stopped, seconds_left),
    )
