"""Per-task timer ledger: save and restore rules for (task, mode) combinations.

Every task keeps its own work countdown and break countdown so that switching
the active task or the mode never loses progress. The same two rules are used
by mode switches, task switches and natural break completion:

1. Before leaving a (task, mode) combination the visible countdown is written
   into that task's slot for the mode, together with whether it was running.
2. Before entering a (task, mode) combination the saved slot is loaded, or
   initialised to the full configured length and marked not running.

A task's work timer may keep counting while a break is on screen, until the
break is actually started (see :func:`is_background_work`).
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import replace

from pomodoro_ledger.focus.models import Durations, Mode, TaskTimers, TimerState


def with_timers(
    ledger: Mapping[str, TaskTimers], task_id: str, timers: TaskTimers
) -> dict[str, TaskTimers]:
    """Copy of ``ledger`` with the entry for ``task_id`` replaced."""
    updated = dict(ledger)
    updated[task_id] = timers
    return updated


def without_task(ledger: Mapping[str, TaskTimers], task_id: str) -> dict[str, TaskTimers]:
    """Copy of ``ledger`` with every slot of ``task_id`` discarded."""
    return {key: value for key, value in ledger.items() if key != task_id}


def elapsed_seconds(last_tick: int | None, now: int) -> int:
    """Whole seconds between two epoch-millisecond readings; never negative."""
    if last_tick is None:
        return 0
    return max(0, (now - last_tick) // 1000)


def is_background_work(state: TimerState) -> bool:
    """True while a break is on screen but the active task's work timer still counts.

    This is the window between switching to a break and actually starting it.
    """
    if state.active_task_id is None or not state.mode.is_break:
        return False
    return state.timers_for(state.active_task_id).work_running


def background_work_left(state: TimerState, now: int) -> int:
    """Active task's work time with any unsettled background time deducted."""
    timers = state.timers_for(state.active_task_id)
    work_left = timers.work_seconds if timers.work_seconds is not None else state.durations.work
    if timers.work_running and state.is_running:
        work_left -= elapsed_seconds(state.last_tick, now)
    return max(0, work_left)


def mirror_countdown(state: TimerState, seconds_left: int) -> Mapping[str, TaskTimers]:
    """Write the visible countdown into the active task's slot for the current mode."""
    task_id = state.active_task_id
    if task_id is None:
        return state.ledger

    timers = state.timers_for(task_id)
    if state.mode is Mode.WORK:
        timers = replace(timers, work_seconds=seconds_left)
    else:
        timers = replace(timers, break_seconds=seconds_left, break_mode=state.mode)
    return with_timers(state.ledger, task_id, timers)


def save_slot(state: TimerState, now: int, *, stop: bool = False) -> TaskTimers:
    """Rule 1: the active task's slots after leaving the current mode.

    With ``stop`` the task's timers are also halted, which is what happens to
    the outgoing task when another task becomes active.
    """
    timers = state.timers_for(state.active_task_id)

    if state.mode is Mode.WORK:
        return replace(
            timers,
            work_seconds=state.seconds_left,
            work_running=state.is_running and not stop,
        )

    if is_background_work(state):
        # The break never started, its countdown is still untouched
        return replace(
            timers,
            work_seconds=background_work_left(state, now) if stop else timers.work_seconds,
            work_running=not stop,
            break_seconds=state.seconds_left,
            break_running=False,
            break_mode=state.mode,
        )

    return replace(
        timers,
        break_seconds=state.seconds_left,
        break_running=state.is_running and not stop,
        break_mode=state.mode,
    )


def load_slot(timers: TaskTimers, mode: Mode, durations: Durations) -> tuple[int, TaskTimers]:
    """Rule 2: countdown to display for ``mode`` and the slot as initialised.

    A saved break value is only reused for the same kind of break it was saved
    from; a short break's remainder never becomes a long break's countdown.
    """
    full = durations.for_mode(mode)

    if mode is Mode.WORK:
        if timers.resume_work_seconds is not None:
            seconds = timers.resume_work_seconds
            timers = replace(timers, work_seconds=seconds, resume_work_seconds=None)
        elif timers.work_seconds is not None:
            seconds = timers.work_seconds
        else:
            seconds = full
            timers = replace(timers, work_seconds=full, work_running=False)
    else:
        if timers.break_seconds is not None and timers.break_mode is mode:
            # A saved break only counts again once it is started
            seconds = timers.break_seconds
            timers = replace(timers, break_running=False)
        else:
            seconds = full
            timers = replace(
                timers, break_seconds=full, break_running=False, break_mode=mode
            )

    return max(0, min(full, seconds)), timers


def slot_is_running(timers: TaskTimers) -> bool:
    """Whether restoring these slots leaves the global timer running.

    Only a running work timer does: in work mode it is the countdown itself, in
    a break mode it keeps ticking behind the break screen. A saved break waits
    for start().
    """
    return timers.work_running


def adopt_countdown(state: TimerState) -> TaskTimers:
    """Slots for a task that takes over the current, task-less countdown."""
    if state.mode is Mode.WORK:
        return TaskTimers(work_seconds=state.seconds_left, work_running=state.is_running)
    return TaskTimers(
        break_seconds=state.seconds_left,
        break_running=state.is_running,
        break_mode=state.mode,
    )
