"""Reporting selectors over the session history."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, timedelta

from pomodoro_ledger.focus.models import LONG_BREAK_EVERY, SessionType, TimerState

UNTITLED_TASK = "Untitled"


@dataclass
class TaskStats:
    """Minutes and completed pomodoros attributed to one task."""
    task_id: str
    task_name: str
    total_minutes: int = 0
    pomodoros: int = 0


@dataclass
class TodayStats:
    """Work done on one calendar day."""
    date: str
    total_work_minutes: int = 0
    pomodoro_count: int = 0
    per_task: list[TaskStats] = field(default_factory=list)


@dataclass
class AllTimeStats:
    """Totals over the whole session history."""
    total_work_minutes: int = 0
    pomodoro_count: int = 0
    total_tasks: int = 0
    tasks_with_pomodoros: int = 0


@dataclass
class DayTotal:
    date: str
    work_minutes: int = 0

    @property
    def weekday(self) -> str:
        return date.fromisoformat(self.date).strftime("%a")


def today_stats(state: TimerState, today: date | None = None) -> TodayStats:
    """Work minutes and pomodoros for sessions started on ``today`` (local date).

    The per-task breakdown only covers sessions linked to a task; its minutes
    include linked breaks while its pomodoro count only includes work.
    """
    day = (today or date.today()).isoformat()
    stats = TodayStats(date=day)
    per_task: dict[str, TaskStats] = {}

    for session in state.sessions:
        if not session.start_time.startswith(day):
            continue

        if session.type is SessionType.WORK:
            stats.total_work_minutes += session.duration
            stats.pomodoro_count += 1

        if not session.task_id:
            continue

        entry = per_task.get(session.task_id)
        if entry is None:
            task = state.find_task(session.task_id)
            entry = TaskStats(
                task_id=session.task_id,
                task_name=task.name if task else UNTITLED_TASK,
            )
            per_task[session.task_id] = entry

        entry.total_minutes += session.duration
        if session.type is SessionType.WORK:
            entry.pomodoros += 1

    stats.per_task = list(per_task.values())
    return stats


def all_time_stats(state: TimerState) -> AllTimeStats:
    work_sessions = [s for s in state.sessions if s.type is SessionType.WORK]
    worked_on = {s.task_id for s in work_sessions if s.task_id}

    return AllTimeStats(
        total_work_minutes=sum(s.duration for s in work_sessions),
        pomodoro_count=len(work_sessions),
        total_tasks=len(state.tasks),
        tasks_with_pomodoros=sum(1 for task in state.tasks if task.id in worked_on),
    )


def weekly_breakdown(
    state: TimerState, today: date | None = None, days: int = 7
) -> list[DayTotal]:
    """Work minutes per day for the last ``days`` days, oldest first."""
    today = today or date.today()
    totals = [
        DayTotal(date=(today - timedelta(days=offset)).isoformat())
        for offset in range(days - 1, -1, -1)
    ]
    by_date = {total.date: total for total in totals}

    for session in state.sessions:
        if session.type is not SessionType.WORK:
            continue
        total = by_date.get(session.start_time[:10])
        if total is not None:
            total.work_minutes += session.duration

    return totals


def next_long_break_in(completed_work_sessions: int) -> int:
    """Work intervals still to complete before the next long break.

    The count restarts at 4 right after a long break instead of showing 0.
    """
    return LONG_BREAK_EVERY - completed_work_sessions % LONG_BREAK_EVERY


def format_time(seconds: int) -> str:
    """Format seconds as MM:SS."""
    minutes, seconds = divmod(max(0, int(seconds)), 60)
    return f"{minutes:02d}:{seconds:02d}"
