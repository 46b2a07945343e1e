"""Immutable data model for the timer, task registry, ledger and session history."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from types import MappingProxyType

# Long break after every Nth completed work interval
LONG_BREAK_EVERY = 4

DEFAULT_WORK_SECONDS = 25 * 60
DEFAULT_SHORT_BREAK_SECONDS = 5 * 60
DEFAULT_LONG_BREAK_SECONDS = 15 * 60


class Mode(str, Enum):
    """Interval type the timer is currently counting down."""
    WORK = "work"
    SHORT_BREAK = "short_break"
    LONG_BREAK = "long_break"

    @property
    def is_break(self) -> bool:
        return self is not Mode.WORK

    @property
    def label(self) -> str:
        return {
            Mode.WORK: "Work",
            Mode.SHORT_BREAK: "Short break",
            Mode.LONG_BREAK: "Long break",
        }[self]


class SessionType(str, Enum):
    """Kind of interval recorded in the session history."""
    WORK = "work"
    BREAK = "break"


@dataclass(frozen=True)
class Task:
    """A user-defined focus task. Never modified after creation."""
    id: str
    name: str
    category: str | None = None
    created_at: str = ""


@dataclass(frozen=True)
class Session:
    """A completed interval. Created once, at natural completion."""
    id: str
    task_id: str | None
    start_time: str
    end_time: str
    duration: int  # configured length in whole minutes
    type: SessionType


@dataclass(frozen=True)
class TaskTimers:
    """Saved timer state for one task, independent of the global mode.

    ``None`` means the slot has never been initialised for the task.
    ``resume_work_seconds`` holds the work time captured when a break was
    started and is restored when the break ends.
    """
    work_seconds: int | None = None
    work_running: bool = False
    break_seconds: int | None = None
    break_running: bool = False
    break_mode: Mode | None = None
    resume_work_seconds: int | None = None


@dataclass(frozen=True)
class Durations:
    """Configured interval lengths in whole seconds."""
    work: int = DEFAULT_WORK_SECONDS
    short_break: int = DEFAULT_SHORT_BREAK_SECONDS
    long_break: int = DEFAULT_LONG_BREAK_SECONDS

    def for_mode(self, mode: Mode) -> int:
        if mode is Mode.WORK:
            return self.work
        elif mode is Mode.SHORT_BREAK:
            return self.short_break
        else:
            return self.long_break

    def minutes_for(self, mode: Mode) -> int:
        """Configured length of ``mode`` rounded half-up to whole minutes."""
        return int(self.for_mode(mode) / 60 + 0.5)


def _frozen_mapping(data: Mapping[str, TaskTimers] | None = None) -> Mapping[str, TaskTimers]:
    return MappingProxyType(dict(data or {}))


@dataclass(frozen=True)
class TimerState:
    """Full snapshot of the timer, tasks, history and per-task ledger.

    Treat as a value: every operation returns a new snapshot built with
    :func:`dataclasses.replace`.
    """
    mode: Mode = Mode.WORK
    seconds_left: int = DEFAULT_WORK_SECONDS
    is_running: bool = False
    last_tick: int | None = None  # epoch milliseconds
    completed_work_sessions: int = 0
    durations: Durations = field(default_factory=Durations)
    tasks: tuple[Task, ...] = ()
    active_task_id: str | None = None
    sessions: tuple[Session, ...] = ()
    ledger: Mapping[str, TaskTimers] = field(default_factory=_frozen_mapping)

    def __post_init__(self) -> None:
        if not isinstance(self.ledger, MappingProxyType):
            object.__setattr__(self, "ledger", _frozen_mapping(self.ledger))
        object.__setattr__(self, "tasks", tuple(self.tasks))
        object.__setattr__(self, "sessions", tuple(self.sessions))

    @property
    def active_task(self) -> Task | None:
        return self.find_task(self.active_task_id)

    @property
    def configured_seconds(self) -> int:
        """Configured length of the current mode."""
        return self.durations.for_mode(self.mode)

    def find_task(self, task_id: str | None) -> Task | None:
        if task_id is None:
            return None
        for task in self.tasks:
            if task.id == task_id:
                return task
        return None

    def timers_for(self, task_id: str | None) -> TaskTimers:
        if task_id is None:
            return TaskTimers()
        return self.ledger.get(task_id, TaskTimers())


def default_state(durations: Durations | None = None) -> TimerState:
    """Fresh snapshot: work mode, full countdown, no tasks or history."""
    durations = durations or Durations()
    return TimerState(
        mode=Mode.WORK,
        seconds_left=durations.work,
        durations=durations,
    )


def validate_state(state: TimerState) -> list[str]:
    """Return a list of invariant violations (empty when the snapshot is consistent)."""
    problems = []

    configured = state.configured_seconds
    if not 0 <= state.seconds_left <= configured:
        problems.append(
            f"seconds_left={state.seconds_left} outside [0, {configured}] for {state.mode.value}"
        )

    if state.is_running != (state.last_tick is not None):
        problems.append(
            f"is_running={state.is_running} but last_tick={state.last_tick}"
        )

    if state.completed_work_sessions < 0:
        problems.append("completed_work_sessions is negative")

    task_ids = {task.id for task in state.tasks}
    if state.active_task_id is not None and state.active_task_id not in task_ids:
        problems.append(f"active task {state.active_task_id} is not registered")

    orphaned = set(state.ledger) - task_ids
    if orphaned:
        problems.append(f"ledger entries for unknown tasks: {sorted(orphaned)}")

    return problems


def iso_timestamp(now_ms: int) -> str:
    """Local-time ISO-8601 timestamp with offset, to the second."""
    return datetime.fromtimestamp(now_ms / 1000).astimezone().isoformat(timespec="seconds")
