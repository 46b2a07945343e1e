"""Tests for the coordinator: subscribers, persistence scheduling and the ticker."""

import asyncio
import logging

import pytest

from conftest import sequential_ids

from pomodoro_ledger.focus.models import Mode, default_state
from pomodoro_ledger.focus.service import PomodoroService
from pomodoro_ledger.storage.database import Database
from pomodoro_ledger.storage.state_store import StateStore


class RecordingStore:
    """In-memory store that keeps every saved snapshot."""

    def __init__(self, state=None):
        self.saved = []
        self._state = state or default_state()

    async def load(self):
        return self._state

    async def save(self, state):
        self.saved.append(state)


class FailingStore(RecordingStore):
    async def save(self, state):
        raise OSError("disk full")


def make_service(clock, store=None, **kwargs):
    return PomodoroService(clock=clock, store=store, id_factory=sequential_ids(), **kwargs)


# ---- commands and subscribers ----

class TestCommands:
    def test_commands_use_the_clock(self, clock):
        service = make_service(clock)
        service.start()
        assert service.state.last_tick == clock.now_ms()

        clock.advance(10)
        assert service.tick().seconds_left == 1490

    def test_task_commands(self, clock):
        service = make_service(clock)
        service.add_task("A")
        service.add_task("B", "reading")
        assert [t.name for t in service.state.tasks] == ["B", "A"]

        service.set_active_task("id-2")
        assert service.state.active_task_id == "id-2"

        service.remove_task("id-2")
        assert service.state.active_task_id == "id-1"

    def test_set_mode_and_durations(self, clock):
        service = make_service(clock)
        service.set_mode("long_break")
        assert service.state.mode is Mode.LONG_BREAK

        service.set_durations(25, 5, 20)
        assert service.state.seconds_left == 1200

        service.reset()
        assert service.state.seconds_left == 1200

    def test_invalid_mode_raises(self, clock):
        service = make_service(clock)
        with pytest.raises(ValueError):
            service.set_mode("nap")


class TestSubscribers:
    def test_notified_with_new_snapshot(self, clock):
        service = make_service(clock)
        seen = []
        service.subscribe(seen.append)

        service.start()
        assert seen == [service.state]

    def test_unchanged_state_does_not_notify(self, clock):
        service = make_service(clock)
        seen = []
        service.subscribe(seen.append)

        service.pause()
        service.set_active_task("missing")
        assert seen == []

    def test_unsubscribe(self, clock):
        service = make_service(clock)
        seen = []
        unsubscribe = service.subscribe(seen.append)
        unsubscribe()
        unsubscribe()

        service.start()
        assert seen == []

    def test_failing_subscriber_is_logged(self, clock, caplog):
        service = make_service(clock)
        seen = []

        def broken(state):
            raise RuntimeError("boom")

        service.subscribe(broken)
        service.subscribe(seen.append)

        with caplog.at_level(logging.ERROR):
            service.start()

        assert service.state.is_running
        assert len(seen) == 1
        assert "boom" in caplog.text


class TestHandleCommand:
    def test_known_commands(self, clock):
        service = make_service(clock)
        service.add_task("A")

        assert service.handle_command("start")
        assert service.state.is_running
        assert service.handle_command("pause")
        assert service.handle_command("mode", "short_break")
        assert service.state.mode is Mode.SHORT_BREAK
        assert service.handle_command("reset")
        assert service.handle_command("activate", "id-1")

    def test_unknown_or_incomplete(self, clock):
        service = make_service(clock)
        assert not service.handle_command("skip")
        assert not service.handle_command("mode")
        assert not service.handle_command("mode", "nap")
        assert not service.handle_command("activate", "")
        assert service.state == default_state()


# ---- persistence ----

@pytest.mark.asyncio
async def test_mutations_are_saved(clock):
    store = RecordingStore()
    service = make_service(clock, store)

    service.add_task("A")
    service.start()
    await service.flush()

    assert store.saved[-1] == service.state
    assert store.saved[-1].active_task.name == "A"


@pytest.mark.asyncio
async def test_last_tick_only_changes_are_not_saved(clock):
    store = RecordingStore()
    service = make_service(clock, store)

    service.start()
    await service.flush()
    count = len(store.saved)

    clock.advance(0.5)
    service.tick()
    await service.flush()
    assert len(store.saved) == count

    clock.advance(1)
    service.tick()
    await service.flush()
    assert len(store.saved) == count + 1


@pytest.mark.asyncio
async def test_save_failure_is_logged(clock, caplog):
    service = make_service(clock, FailingStore())

    with caplog.at_level(logging.ERROR):
        service.start()
        await service.flush()

    assert service.state.is_running
    assert "Failed to save timer state" in caplog.text


def test_changes_without_loop_are_saved_on_flush(clock):
    store = RecordingStore()
    service = make_service(clock, store)

    service.add_task("Offline")
    assert store.saved == []

    asyncio.run(service.flush())
    assert store.saved[-1].tasks[0].name == "Offline"


@pytest.mark.asyncio
async def test_load_from_sqlite(tmp_path, clock):
    db = Database(tmp_path / "state.db")
    await db.connect()
    try:
        store = StateStore(db)
        service = await PomodoroService.load(store, clock)
        service.add_task("Persisted")
        service.start()
        await service.flush()

        reloaded = await PomodoroService.load(store, clock)
        assert reloaded.state.tasks[0].name == "Persisted"
        assert not reloaded.state.is_running
        assert reloaded.state.last_tick is None
    finally:
        await db.close()


# ---- ticker ----

@pytest.mark.asyncio
async def test_ticker_drives_ticks(clock):
    service = make_service(clock, tick_interval=0.01)
    service.start()
    clock.advance(3)

    service.start_ticker()
    assert service.ticker_running
    await asyncio.sleep(0.1)
    await service.stop_ticker()

    assert not service.ticker_running
    assert service.state.seconds_left == 1497


@pytest.mark.asyncio
async def test_ticker_idle_when_stopped(clock):
    service = make_service(clock, tick_interval=0.01)
    seen = []
    service.subscribe(seen.append)

    service.start_ticker()
    await asyncio.sleep(0.05)
    await service.stop_ticker()
    await service.stop_ticker()

    assert seen == []
