"""Pydantic schema of the persisted state blob.

Field names are serialized in camelCase so a blob written by the browser
version of the timer loads unchanged.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from pomodoro_ledger.focus.durations import MIN_DURATION_SECONDS
from pomodoro_ledger.focus.models import (
    DEFAULT_LONG_BREAK_SECONDS,
    DEFAULT_SHORT_BREAK_SECONDS,
    DEFAULT_WORK_SECONDS,
    Durations,
    Mode,
    Session,
    SessionType,
    Task,
    TaskTimers,
    TimerState,
)


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


class TaskRecord(CamelModel):
    id: str = Field(min_length=1)
    name: str = Field(min_length=1)
    category: str | None = None
    created_at: str = ""


class SessionRecord(CamelModel):
    id: str = Field(min_length=1)
    task_id: str | None = None
    start_time: str
    end_time: str
    duration: int = Field(ge=0, description="Whole minutes")
    type: SessionType


class PersistedState(CamelModel):
    """Everything needed to rebuild a :class:`TimerState` at process start."""

    mode: Mode = Mode.WORK
    seconds_left: int = Field(default=DEFAULT_WORK_SECONDS, ge=0)
    is_running: bool = False
    last_tick: int | None = None
    work_duration: int = Field(default=DEFAULT_WORK_SECONDS, ge=MIN_DURATION_SECONDS)
    short_break_duration: int = Field(default=DEFAULT_SHORT_BREAK_SECONDS, ge=MIN_DURATION_SECONDS)
    long_break_duration: int = Field(default=DEFAULT_LONG_BREAK_SECONDS, ge=MIN_DURATION_SECONDS)
    completed_work_sessions: int = Field(default=0, ge=0)
    tasks: list[TaskRecord] = Field(default_factory=list)
    active_task_id: str | None = None
    sessions: list[SessionRecord] = Field(default_factory=list)

    # Per-task ledger, one map per slot field
    task_work_times: dict[str, int] = Field(default_factory=dict)
    task_is_running: dict[str, bool] = Field(default_factory=dict)
    task_break_time: dict[str, int | None] = Field(default_factory=dict)
    task_break_times: dict[str, int] = Field(default_factory=dict)
    task_break_is_running: dict[str, bool] = Field(default_factory=dict)
    task_break_modes: dict[str, Mode] = Field(default_factory=dict)

    @classmethod
    def from_state(cls, state: TimerState) -> PersistedState:
        ledger = state.ledger
        return cls(
            mode=state.mode,
            seconds_left=state.seconds_left,
            is_running=state.is_running,
            last_tick=state.last_tick,
            work_duration=state.durations.work,
            short_break_duration=state.durations.short_break,
            long_break_duration=state.durations.long_break,
            completed_work_sessions=state.completed_work_sessions,
            tasks=[
                TaskRecord(id=t.id, name=t.name, category=t.category, created_at=t.created_at)
                for t in state.tasks
            ],
            active_task_id=state.active_task_id,
            sessions=[
                SessionRecord(
                    id=s.id,
                    task_id=s.task_id,
                    start_time=s.start_time,
                    end_time=s.end_time,
                    duration=s.duration,
                    type=s.type,
                )
                for s in state.sessions
            ],
            task_work_times={
                k: v.work_seconds for k, v in ledger.items() if v.work_seconds is not None
            },
            task_is_running={k: v.work_running for k, v in ledger.items()},
            task_break_time={k: v.resume_work_seconds for k, v in ledger.items()},
            task_break_times={
                k: v.break_seconds for k, v in ledger.items() if v.break_seconds is not None
            },
            task_break_is_running={k: v.break_running for k, v in ledger.items()},
            task_break_modes={
                k: v.break_mode for k, v in ledger.items() if v.break_mode is not None
            },
        )

    def to_state(self) -> TimerState:
        """Rebuild the snapshot. The timer always comes back stopped."""
        durations = Durations(
            work=self.work_duration,
            short_break=self.short_break_duration,
            long_break=self.long_break_duration,
        )
        tasks = tuple(
            Task(id=t.id, name=t.name, category=t.category, created_at=t.created_at)
            for t in self.tasks
        )
        task_ids = {t.id for t in tasks}

        ledger: dict[str, TaskTimers] = {}
        for task_id in task_ids:
            slot_keys = (
                self.task_work_times, self.task_is_running, self.task_break_time,
                self.task_break_times, self.task_break_is_running, self.task_break_modes,
            )
            if not any(task_id in mapping for mapping in slot_keys):
                continue
            ledger[task_id] = TaskTimers(
                work_seconds=self.task_work_times.get(task_id),
                work_running=self.task_is_running.get(task_id, False),
                break_seconds=self.task_break_times.get(task_id),
                break_running=self.task_break_is_running.get(task_id, False),
                break_mode=self.task_break_modes.get(task_id),
                resume_work_seconds=self.task_break_time.get(task_id),
            )

        active_task_id = self.active_task_id if self.active_task_id in task_ids else None

        return TimerState(
            mode=self.mode,
            seconds_left=min(self.seconds_left, durations.for_mode(self.mode)),
            is_running=False,
            last_tick=None,
            completed_work_sessions=self.completed_work_sessions,
            durations=durations,
            tasks=tasks,
            active_task_id=active_task_id,
            sessions=tuple(
                Session(
                    id=s.id,
                    task_id=s.task_id,
                    start_time=s.start_time,
                    end_time=s.end_time,
                    duration=s.duration,
                    type=s.type,
                )
                for s in self.sessions
            ),
            ledger=ledger,
        )
