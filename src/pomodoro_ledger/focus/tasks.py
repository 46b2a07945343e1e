"""Task registry operations: add, activate and remove tasks."""

from __future__ import annotations

import logging
from dataclasses import replace

from pomodoro_ledger.focus.ledger import (
    adopt_countdown,
    is_background_work,
    load_slot,
    save_slot,
    slot_is_running,
    with_timers,
    without_task,
)
from pomodoro_ledger.focus.models import Mode, Task, TimerState, iso_timestamp
from pomodoro_ledger.focus.pomodoro import IdFactory, new_id, running_fields

logger = logging.getLogger(__name__)


def add_task(
    state: TimerState,
    name: str,
    category: str | None = None,
    *,
    now: int,
    id_factory: IdFactory = new_id,
) -> TimerState:
    """Register a new task at the front of the list.

    The first task added while none is active becomes the active task and
    takes over the countdown currently on screen.
    """
    name = " ".join(name.split())
    if not name:
        logger.warning("Ignoring task with an empty name")
        return state

    category = (category or "").strip() or None
    task = Task(id=id_factory(), name=name, category=category, created_at=iso_timestamp(now))
    tasks = (task,) + state.tasks
    logger.info(f"Task added: {task.name} ({task.id})")

    if state.active_task is not None:
        return replace(state, tasks=tasks)

    return replace(
        state,
        tasks=tasks,
        active_task_id=task.id,
        ledger=with_timers(state.ledger, task.id, adopt_countdown(state)),
    )


def set_active_task(state: TimerState, task_id: str, now: int) -> TimerState:
    """Attribute the timer to another task.

    The outgoing task's countdown is saved and stopped, the incoming task's
    saved countdown for the current mode is restored. A running countdown keeps
    running, now on behalf of the incoming task. Unknown ids are ignored.
    """
    if state.find_task(task_id) is None:
        logger.debug(f"Ignoring activation of unknown task {task_id}")
        return state
    if task_id == state.active_task_id:
        return state

    carry = state.is_running and not is_background_work(state)

    ledger = dict(state.ledger)
    if state.active_task_id is not None:
        ledger[state.active_task_id] = save_slot(state, now, stop=True)

    seconds_left, incoming = load_slot(
        ledger.get(task_id, state.timers_for(task_id)), state.mode, state.durations
    )
    if carry:
        if state.mode is Mode.WORK:
            incoming = replace(incoming, work_running=True)
        else:
            incoming = replace(
                incoming, work_running=False, break_running=True, break_mode=state.mode
            )
        is_running = True
    else:
        is_running = slot_is_running(incoming)
    ledger[task_id] = incoming

    logger.info(f"Active task switched to {task_id}")
    return replace(
        state,
        active_task_id=task_id,
        seconds_left=seconds_left,
        ledger=ledger,
        **running_fields(state, is_running, now),
    )


def remove_task(state: TimerState, task_id: str, now: int) -> TimerState:
    """Delete a task and every ledger slot it owns.

    Removing the active task promotes the first remaining task, or leaves no
    active task when the registry becomes empty. Sessions keep their task id.
    """
    if state.find_task(task_id) is None:
        logger.debug(f"Ignoring removal of unknown task {task_id}")
        return state

    tasks = tuple(task for task in state.tasks if task.id != task_id)
    ledger = without_task(state.ledger, task_id)
    logger.info(f"Task removed: {task_id}")

    if task_id != state.active_task_id:
        return replace(state, tasks=tasks, ledger=ledger)

    if not tasks:
        # The countdown carries on unattributed, unless it was only the
        # removed task's work timer running behind a break screen
        is_running = state.is_running and not is_background_work(state)
        return replace(
            state,
            tasks=tasks,
            active_task_id=None,
            ledger=ledger,
            **running_fields(state, is_running, now),
        )

    promoted = tasks[0].id
    seconds_left, timers = load_slot(state.timers_for(promoted), state.mode, state.durations)
    is_running = slot_is_running(timers)
    return replace(
        state,
        tasks=tasks,
        active_task_id=promoted,
        seconds_left=seconds_left,
        ledger=with_timers(ledger, promoted, timers),
        **running_fields(state, is_running, now),
    )
