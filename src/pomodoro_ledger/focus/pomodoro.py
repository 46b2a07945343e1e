"""Pomodoro timer state machine: pure transitions over :class:`TimerState`.

Each operation takes the previous snapshot and the current time in epoch
milliseconds and returns the next snapshot. Nothing here blocks, sleeps or
touches storage; the coordinator in :mod:`pomodoro_ledger.focus.service`
decides when to call them.

Usage:
    state = default_state()
    state = start(state, now)
    state = tick(state, now + 1000)
    state = pause(state, now + 2000)
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Callable
from dataclasses import replace

from pomodoro_ledger.focus.ledger import (
    background_work_left,
    elapsed_seconds,
    is_background_work,
    load_slot,
    mirror_countdown,
    save_slot,
    slot_is_running,
    with_timers,
)
from pomodoro_ledger.focus.models import (
    LONG_BREAK_EVERY,
    Mode,
    Session,
    SessionType,
    TaskTimers,
    TimerState,
    iso_timestamp,
)

logger = logging.getLogger(__name__)

IdFactory = Callable[[], str]


def new_id() -> str:
    return str(uuid.uuid4())


def running_fields(state: TimerState, is_running: bool, now: int) -> dict:
    """``is_running``/``last_tick`` pair that keeps the two in step."""
    if not is_running:
        return {"is_running": False, "last_tick": None}
    last_tick = state.last_tick if state.is_running and state.last_tick is not None else now
    return {"is_running": True, "last_tick": last_tick}


def tick(state: TimerState, now: int, *, id_factory: IdFactory = new_id) -> TimerState:
    """Advance the countdown by the whole seconds elapsed since ``last_tick``.

    Resolves at most one interval boundary per call. A clock that did not move
    forward by a full second only refreshes ``last_tick``.
    """
    if not state.is_running:
        return state

    elapsed = elapsed_seconds(state.last_tick, now)
    if elapsed <= 0:
        return replace(state, last_tick=now)

    if is_background_work(state):
        # Break screen is showing but the break has not started yet
        task_id = state.active_task_id
        timers = state.timers_for(task_id)
        work_left = background_work_left(state, now)
        return replace(
            state,
            last_tick=now,
            ledger=with_timers(state.ledger, task_id, replace(timers, work_seconds=work_left)),
        )

    seconds_left = state.seconds_left - elapsed
    if seconds_left > 0:
        return replace(
            state,
            seconds_left=seconds_left,
            last_tick=now,
            ledger=mirror_countdown(state, seconds_left),
        )

    return _complete_interval(state, now, id_factory)


def _complete_interval(state: TimerState, now: int, id_factory: IdFactory) -> TimerState:
    """Record the finished interval and move to the next mode."""
    finished = state.mode
    durations = state.durations
    task_id = state.active_task_id

    minutes = durations.minutes_for(finished)
    session = Session(
        id=id_factory(),
        task_id=task_id,
        start_time=iso_timestamp(now - minutes * 60 * 1000),
        end_time=iso_timestamp(now),
        duration=minutes,
        type=SessionType.WORK if finished is Mode.WORK else SessionType.BREAK,
    )
    sessions = state.sessions + (session,)

    if finished is Mode.WORK:
        completed = state.completed_work_sessions + 1
        next_mode = Mode.LONG_BREAK if completed % LONG_BREAK_EVERY == 0 else Mode.SHORT_BREAK
        seconds_left = durations.for_mode(next_mode)

        ledger = state.ledger
        if task_id is not None:
            # Fresh work interval for next time, break starts now
            ledger = with_timers(
                ledger,
                task_id,
                TaskTimers(
                    work_seconds=durations.work,
                    work_running=False,
                    break_seconds=seconds_left,
                    break_running=True,
                    break_mode=next_mode,
                    resume_work_seconds=durations.work,
                ),
            )

        logger.info(
            f"Work interval complete (#{completed}), starting {next_mode.value}"
        )
        return replace(
            state,
            mode=next_mode,
            seconds_left=seconds_left,
            is_running=True,
            last_tick=now,
            completed_work_sessions=completed,
            sessions=sessions,
            ledger=ledger,
        )

    ledger = state.ledger
    if task_id is not None:
        timers = replace(
            state.timers_for(task_id),
            break_seconds=None,
            break_running=False,
            break_mode=None,
        )
        seconds_left, timers = load_slot(timers, Mode.WORK, durations)
        is_running = timers.work_running
        ledger = with_timers(ledger, task_id, timers)
    else:
        seconds_left = durations.work
        is_running = False

    logger.info(f"{finished.label} complete, back to work")
    return replace(
        state,
        mode=Mode.WORK,
        seconds_left=seconds_left,
        is_running=is_running,
        last_tick=now if is_running else None,
        sessions=sessions,
        ledger=ledger,
    )


def start(state: TimerState, now: int) -> TimerState:
    """Start the countdown. No-op if it is already running.

    In a break mode this is the moment the break begins: the active task's
    work time is captured for restoration and its work timer stops.
    """
    background = is_background_work(state)
    if state.is_running and not background:
        return state

    task_id = state.active_task_id
    ledger = state.ledger
    if task_id is not None:
        timers = state.timers_for(task_id)
        if state.mode is Mode.WORK:
            timers = replace(timers, work_seconds=state.seconds_left, work_running=True)
            if timers.break_running:
                # Abandoned break restarts from its full length next time
                timers = replace(timers, break_seconds=None, break_running=False, break_mode=None)
        else:
            work_left = background_work_left(state, now)
            timers = replace(
                timers,
                work_seconds=work_left,
                work_running=False,
                resume_work_seconds=work_left,
                break_seconds=state.seconds_left,
                break_running=True,
                break_mode=state.mode,
            )
        ledger = with_timers(ledger, task_id, timers)

    logger.info(f"Timer started: {state.mode.value} ({state.seconds_left}s left)")
    return replace(state, is_running=True, last_tick=now, ledger=ledger)


def pause(state: TimerState, now: int) -> TimerState:
    """Stop the countdown and save it into the active task's slot."""
    if not state.is_running:
        return state

    task_id = state.active_task_id
    ledger = state.ledger
    if task_id is not None:
        timers = state.timers_for(task_id)
        if state.mode is Mode.WORK:
            timers = replace(timers, work_seconds=state.seconds_left, work_running=False)
        elif timers.work_running:
            timers = replace(
                timers, work_seconds=background_work_left(state, now), work_running=False
            )
        else:
            timers = replace(
                timers,
                break_seconds=state.seconds_left,
                break_running=False,
                break_mode=state.mode,
            )
        ledger = with_timers(ledger, task_id, timers)

    logger.info(f"Timer paused: {state.mode.value} ({state.seconds_left}s left)")
    return replace(state, is_running=False, last_tick=None, ledger=ledger)


def reset(state: TimerState, now: int) -> TimerState:
    """Restore the current mode's full length and stop.

    Leaves the mode and the completed-interval counter alone.
    """
    full = state.configured_seconds
    task_id = state.active_task_id
    ledger = state.ledger
    if task_id is not None:
        timers = state.timers_for(task_id)
        if state.mode is Mode.WORK:
            timers = replace(timers, work_seconds=full, work_running=False)
        else:
            if timers.work_running:
                timers = replace(
                    timers, work_seconds=background_work_left(state, now), work_running=False
                )
            timers = replace(
                timers, break_seconds=full, break_running=False, break_mode=state.mode
            )
        ledger = with_timers(ledger, task_id, timers)

    logger.info(f"Timer reset: {state.mode.value}")
    return replace(
        state,
        seconds_left=full,
        is_running=False,
        last_tick=None,
        ledger=ledger,
    )


def set_mode(state: TimerState, mode: Mode | str, now: int) -> TimerState:
    """Manually switch between work, short break and long break.

    Never records a session. The outgoing countdown is saved for the active
    task and the incoming one restored; a running work timer keeps counting
    behind a break screen until that break is started.
    """
    mode = Mode(mode)
    if mode is state.mode:
        return state

    task_id = state.active_task_id
    if task_id is None:
        logger.info(f"Mode switched to {mode.value}")
        return replace(
            state,
            mode=mode,
            seconds_left=state.durations.for_mode(mode),
            is_running=False,
            last_tick=None,
        )

    outgoing = save_slot(state, now)
    seconds_left, incoming = load_slot(outgoing, mode, state.durations)
    is_running = slot_is_running(incoming)

    logger.info(f"Mode switched to {mode.value} for task {task_id}")
    return replace(
        state,
        mode=mode,
        seconds_left=seconds_left,
        ledger=with_timers(state.ledger, task_id, incoming),
        **running_fields(state, is_running, now),
    )


def progress_percent(state: TimerState) -> float:
    """Progress through the current interval (0-100)."""
    total = state.configured_seconds
    if total <= 0:
        return 0.0
    elapsed = total - state.seconds_left
    return min(100.0, max(0.0, (elapsed / total) * 100))
