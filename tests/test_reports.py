"""Tests for the reporting selectors over the session history."""

from datetime import date

from pomodoro_ledger.focus.models import Session, SessionType, Task, TimerState
from pomodoro_ledger.focus.reports import (
    UNTITLED_TASK,
    all_time_stats,
    format_time,
    next_long_break_in,
    today_stats,
    weekly_breakdown,
)

TODAY = date(2026, 10, 17)


# ---- Helpers ----

def session(sid, day, type_=SessionType.WORK, duration=25, task_id=None, hour=9):
    start = f"{day}T{hour:02d}:00:00+02:00"
    return Session(
        id=sid,
        task_id=task_id,
        start_time=start,
        end_time=start,
        duration=duration,
        type=type_,
    )


def history_state():
    tasks = (Task(id="a", name="Write report"), Task(id="b", name="Review"))
    sessions = (
        session("s1", "2026-10-17", task_id="a"),
        session("s2", "2026-10-17", SessionType.BREAK, 5, task_id="a", hour=10),
        session("s3", "2026-10-17", task_id="a", hour=11),
        session("s4", "2026-10-17", hour=12),
        session("s5", "2026-10-16", task_id="b"),
        session("s6", "2026-10-11", duration=50, task_id="b"),
        session("s7", "2026-10-10", task_id="b"),
        session("s8", "2026-10-17", task_id="deleted", hour=13),
    )
    return TimerState(tasks=tasks, sessions=sessions)


class TestTodayStats:
    def test_totals(self):
        stats = today_stats(history_state(), today=TODAY)
        assert stats.date == "2026-10-17"
        assert stats.total_work_minutes == 100
        assert stats.pomodoro_count == 4

    def test_per_task_includes_linked_breaks(self):
        stats = today_stats(history_state(), today=TODAY)
        by_id = {entry.task_id: entry for entry in stats.per_task}

        assert set(by_id) == {"a", "deleted"}
        assert by_id["a"].task_name == "Write report"
        assert by_id["a"].total_minutes == 55
        assert by_id["a"].pomodoros == 2

    def test_deleted_task_is_untitled(self):
        stats = today_stats(history_state(), today=TODAY)
        entry = next(e for e in stats.per_task if e.task_id == "deleted")
        assert entry.task_name == UNTITLED_TASK
        assert entry.pomodoros == 1

    def test_empty_day(self):
        stats = today_stats(history_state(), today=date(2026, 1, 1))
        assert stats.total_work_minutes == 0
        assert stats.pomodoro_count == 0
        assert stats.per_task == []


class TestAllTimeStats:
    def test_totals(self):
        totals = all_time_stats(history_state())
        assert totals.total_work_minutes == 25 * 6 + 50
        assert totals.pomodoro_count == 7
        assert totals.total_tasks == 2
        assert totals.tasks_with_pomodoros == 2

    def test_break_only_task_is_not_counted(self):
        state = TimerState(
            tasks=(Task(id="a", name="A"),),
            sessions=(session("s1", "2026-10-17", SessionType.BREAK, 5, task_id="a"),),
        )
        totals = all_time_stats(state)
        assert totals.pomodoro_count == 0
        assert totals.tasks_with_pomodoros == 0


class TestWeeklyBreakdown:
    def test_last_seven_days_oldest_first(self):
        days = weekly_breakdown(history_state(), today=TODAY)
        assert [d.date for d in days] == [
            "2026-10-11", "2026-10-12", "2026-10-13", "2026-10-14",
            "2026-10-15", "2026-10-16", "2026-10-17",
        ]
        assert [d.work_minutes for d in days] == [50, 0, 0, 0, 0, 25, 100]

    def test_weekday(self):
        days = weekly_breakdown(history_state(), today=TODAY, days=1)
        assert days[0].weekday == "Sat"


def test_next_long_break_in():
    assert [next_long_break_in(n) for n in range(9)] == [4, 3, 2, 1, 4, 3, 2, 1, 4]


def test_format_time():
    assert format_time(1500) == "25:00"
    assert format_time(61) == "01:01"
    assert format_time(0) == "00:00"
    assert format_time(-5) == "00:00"
