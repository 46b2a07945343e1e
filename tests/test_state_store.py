"""Tests for the persisted state blob and the SQLite-backed store."""

import json

import pytest

from conftest import sequential_ids

from pomodoro_ledger.focus.durations import set_durations
from pomodoro_ledger.focus.models import Durations, Mode, default_state
from pomodoro_ledger.focus.pomodoro import set_mode, start, tick
from pomodoro_ledger.focus.tasks import add_task
from pomodoro_ledger.storage.database import Database
from pomodoro_ledger.storage.state_store import StateStore, dump_state, load_state

T0 = 1_792_238_400_000


# ---- Helpers ----

def busy_state():
    """Running state with two tasks, a finished interval and a break on screen."""
    ids = sequential_ids()
    state = set_durations(default_state(), 1, 1, 2, T0)
    state = add_task(state, "A", "writing", now=T0, id_factory=ids)
    state = add_task(state, "B", now=T0, id_factory=ids)
    state = start(state, T0)
    now = T0
    for _ in range(60):
        now += 1000
        state = tick(state, now, id_factory=ids)
    state = tick(state, now + 5000, id_factory=ids)
    return state


# ---- JSON blob ----

class TestBlobFormat:
    def test_camel_case_keys(self):
        data = json.loads(dump_state(busy_state()))
        for key in (
            "mode", "secondsLeft", "isRunning", "lastTick", "workDuration",
            "shortBreakDuration", "longBreakDuration", "completedWorkSessions",
            "tasks", "activeTaskId", "sessions", "taskWorkTimes", "taskIsRunning",
            "taskBreakTime", "taskBreakTimes", "taskBreakIsRunning", "taskBreakModes",
        ):
            assert key in data
        assert data["sessions"][0]["taskId"] == "id-1"
        assert data["tasks"][0]["createdAt"]

    def test_round_trip_stops_the_timer(self):
        state = busy_state()
        assert state.is_running
        assert state.mode is Mode.SHORT_BREAK

        loaded = load_state(dump_state(state))
        assert not loaded.is_running
        assert loaded.last_tick is None
        assert loaded.tasks == state.tasks
        assert loaded.sessions == state.sessions
        assert loaded.durations == state.durations
        assert loaded.mode is state.mode
        assert loaded.seconds_left == state.seconds_left
        assert loaded.completed_work_sessions == 1
        assert loaded.active_task_id == state.active_task_id
        assert dict(loaded.ledger) == dict(state.ledger)

    def test_missing_blob_gives_defaults(self):
        durations = Durations(3000, 600, 1200)
        state = load_state(None, durations)
        assert state == default_state(durations)

    @pytest.mark.parametrize(
        "raw",
        [
            "{not json",
            "[]",
            '{"mode": "nap"}',
            '{"secondsLeft": -5}',
            '{"workDuration": 10}',
            '{"tasks": [{"id": "a"}]}',
        ],
    )
    def test_corrupt_blob_gives_defaults(self, raw):
        assert load_state(raw) == default_state()

    def test_browser_blob_without_break_modes(self):
        raw = json.dumps({
            "mode": "work",
            "secondsLeft": 1200,
            "isRunning": True,
            "lastTick": 1700000000000,
            "workDuration": 1500,
            "shortBreakDuration": 300,
            "longBreakDuration": 900,
            "completedWorkSessions": 3,
            "tasks": [{"id": "t1", "name": "Essay", "createdAt": "2026-10-17T08:00:00.000Z"}],
            "activeTaskId": "t1",
            "sessions": [],
            "taskWorkTimes": {"t1": 1200},
            "taskIsRunning": {"t1": True},
        })
        state = load_state(raw)

        assert state.completed_work_sessions == 3
        assert state.seconds_left == 1200
        assert not state.is_running
        assert state.ledger["t1"].work_seconds == 1200
        assert state.ledger["t1"].work_running
        assert state.ledger["t1"].break_mode is None

    def test_inconsistent_references_are_dropped(self):
        raw = json.dumps({
            "secondsLeft": 5000,
            "tasks": [{"id": "t1", "name": "Essay"}],
            "activeTaskId": "gone",
            "taskWorkTimes": {"gone": 100, "t1": 200},
        })
        state = load_state(raw)

        assert state.active_task_id is None
        assert state.seconds_left == 1500
        assert set(state.ledger) == {"t1"}


# ---- SQLite store ----

@pytest.mark.asyncio
async def test_store_save_and_load(tmp_path):
    db = Database(tmp_path / "state.db")
    await db.connect()
    try:
        store = StateStore(db)
        state = busy_state()
        await store.save(state)
        await store.save(set_mode(state, Mode.WORK, T0 + 70_000))

        loaded = await store.load()
        assert loaded.mode is Mode.WORK
        assert loaded.tasks == state.tasks
        assert len(loaded.sessions) == 1
    finally:
        await db.close()


@pytest.mark.asyncio
async def test_store_missing_and_corrupt(tmp_path):
    db = Database(tmp_path / "state.db")
    await db.connect()
    try:
        durations = Durations(3000, 600, 1200)
        store = StateStore(db, key="test-key", default_durations=durations)
        assert await store.load() == default_state(durations)

        await db.set_value("test-key", "garbage")
        assert await store.load() == default_state(durations)

        await store.save(default_state())
        await store.clear()
        assert await db.get_value("test-key") is None
    finally:
        await db.close()


@pytest.mark.asyncio
async def test_database_requires_connection(tmp_path):
    db = Database(tmp_path / "state.db")
    assert not db.is_connected
    with pytest.raises(RuntimeError, match="not connected"):
        await db.get_value("anything")

    await db.connect()
    try:
        assert await db.check_integrity()
        assert db.is_connected
        assert db.db_path.exists()
    finally:
        await db.close()
