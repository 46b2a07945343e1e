"""Coordinator that owns the current timer snapshot.

Commands are applied one at a time, subscribers are notified with the new
snapshot, and persistence runs as fire-and-forget tasks on the event loop.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from collections.abc import Callable
from dataclasses import replace

from pomodoro_ledger.core.clock import Clock, SystemClock
from pomodoro_ledger.focus import durations, pomodoro, tasks
from pomodoro_ledger.focus.models import Mode, TimerState, default_state, validate_state
from pomodoro_ledger.focus.pomodoro import IdFactory, new_id
from pomodoro_ledger.storage.state_store import StateStore

logger = logging.getLogger(__name__)

Subscriber = Callable[[TimerState], None]
Transition = Callable[[TimerState, int], TimerState]

# Control commands accepted by handle_command()
COMMANDS = ("start", "pause", "reset", "mode", "activate")


def only_last_tick_changed(previous: TimerState, current: TimerState) -> bool:
    return replace(previous, last_tick=current.last_tick) == current


class PomodoroService:
    """Pomodoro timer service with subscribers and background ticking.

    Usage:
        service = await PomodoroService.load(store, SystemClock())
        unsubscribe = service.subscribe(lambda state: print(state.seconds_left))

        service.start_ticker()
        service.add_task("Write report")
        service.start()
        # ... ticker runs ...
        service.pause()

        await service.stop_ticker()
        await service.flush()
    """

    def __init__(
        self,
        state: TimerState | None = None,
        *,
        clock: Clock | None = None,
        store: StateStore | None = None,
        tick_interval: float = 1.0,
        id_factory: IdFactory = new_id,
    ):
        self.clock = clock or SystemClock()
        self.store = store
        self.tick_interval = tick_interval
        self._id_factory = id_factory
        self._state = state or default_state()
        self._lock = threading.Lock()
        self._subscribers: list[Subscriber] = []
        self._pending: set[asyncio.Task] = set()
        self._dirty = False
        self._ticker: asyncio.Task | None = None

    @classmethod
    async def load(
        cls,
        store: StateStore,
        clock: Clock | None = None,
        tick_interval: float = 1.0,
    ) -> PomodoroService:
        """Build a service from the persisted snapshot."""
        state = await store.load()
        return cls(state, clock=clock, store=store, tick_interval=tick_interval)

    @property
    def state(self) -> TimerState:
        with self._lock:
            return self._state

    # Subscribers

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register ``callback`` for every new snapshot. Returns an unsubscribe function."""
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def _notify(self, state: TimerState) -> None:
        for callback in list(self._subscribers):
            try:
                callback(state)
            except Exception as e:
                logger.error(f"Error in state subscriber: {e}")

    # Commands

    def start(self) -> TimerState:
        return self._apply("start", pomodoro.start)

    def pause(self) -> TimerState:
        return self._apply("pause", pomodoro.pause)

    def reset(self) -> TimerState:
        return self._apply("reset", pomodoro.reset)

    def tick(self) -> TimerState:
        return self._apply(
            "tick", lambda state, now: pomodoro.tick(state, now, id_factory=self._id_factory)
        )

    def set_mode(self, mode: Mode | str) -> TimerState:
        mode = Mode(mode)
        return self._apply("set_mode", lambda state, now: pomodoro.set_mode(state, mode, now))

    def set_durations(
        self, work_minutes: float, short_break_minutes: float, long_break_minutes: float
    ) -> TimerState:
        return self._apply(
            "set_durations",
            lambda state, now: durations.set_durations(
                state, work_minutes, short_break_minutes, long_break_minutes, now
            ),
        )

    def add_task(self, name: str, category: str | None = None) -> TimerState:
        return self._apply(
            "add_task",
            lambda state, now: tasks.add_task(
                state, name, category, now=now, id_factory=self._id_factory
            ),
        )

    def set_active_task(self, task_id: str) -> TimerState:
        return self._apply(
            "set_active_task", lambda state, now: tasks.set_active_task(state, task_id, now)
        )

    def remove_task(self, task_id: str) -> TimerState:
        return self._apply(
            "remove_task", lambda state, now: tasks.remove_task(state, task_id, now)
        )

    def handle_command(self, action: str, value: str | None = None) -> bool:
        """Apply a control command by name. Returns False for unknown or incomplete ones."""
        if action == "start":
            self.start()
        elif action == "pause":
            self.pause()
        elif action == "reset":
            self.reset()
        elif action == "mode" and value:
            try:
                self.set_mode(value)
            except ValueError:
                logger.warning(f"Ignoring unknown mode: {value}")
                return False
        elif action == "activate" and value:
            self.set_active_task(value)
        else:
            logger.warning(f"Ignoring control command: {action} {value or ''}".rstrip())
            return False
        return True

    def _apply(self, action: str, transition: Transition) -> TimerState:
        with self._lock:
            previous = self._state
            state = transition(previous, self.clock.now_ms())
            if state is previous:
                return state
            self._state = state

        if logger.isEnabledFor(logging.DEBUG):
            problems = validate_state(state)
            if problems:
                logger.debug(f"State after {action} is inconsistent: {'; '.join(problems)}")

        self._notify(state)

        if not only_last_tick_changed(previous, state):
            self._schedule_save()
        return state

    # Persistence

    def _schedule_save(self) -> None:
        if self.store is None:
            return

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # No loop on this thread; flush() picks it up
            self._dirty = True
            return

        task = loop.create_task(self._save())
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _save(self) -> None:
        if self.store is None:
            return
        self._dirty = False
        try:
            await self.store.save(self.state)
        except Exception as e:
            self._dirty = True
            logger.error(f"Failed to save timer state: {e}")

    async def flush(self) -> None:
        """Wait for outstanding saves and write any change made without a loop."""
        if self._pending:
            await asyncio.gather(*list(self._pending))
        if self._dirty:
            await self._save()

    # Ticker

    @property
    def ticker_running(self) -> bool:
        return self._ticker is not None and not self._ticker.done()

    def start_ticker(self) -> None:
        """Start calling tick() every ``tick_interval`` seconds on the running loop."""
        if self.ticker_running:
            return
        self._ticker = asyncio.create_task(self._tick_loop())
        logger.debug(f"Ticker started ({self.tick_interval}s)")

    async def stop_ticker(self) -> None:
        if self._ticker is None:
            return

        self._ticker.cancel()
        try:
            await self._ticker
        except asyncio.CancelledError:
            pass
        self._ticker = None
        logger.debug("Ticker stopped")

    async def _tick_loop(self) -> None:
        while True:
            await asyncio.sleep(self.tick_interval)
            if not self.state.is_running:
                continue
            try:
                self.tick()
            except Exception as e:
                logger.error(f"Error in timer tick: {e}")
