"""Persistence adapter: one serialized state blob under a fixed key."""

from __future__ import annotations

import logging

from pydantic import ValidationError

from pomodoro_ledger.focus.models import Durations, TimerState, default_state
from pomodoro_ledger.storage.database import Database
from pomodoro_ledger.storage.schemas import PersistedState

logger = logging.getLogger(__name__)

DEFAULT_STATE_KEY = "smart-pomodoro-state-v1"


def dump_state(state: TimerState) -> str:
    """Serialize a snapshot to the JSON blob format."""
    return PersistedState.from_state(state).model_dump_json(by_alias=True)


def load_state(raw: str | None, default_durations: Durations | None = None) -> TimerState:
    """Parse a JSON blob, falling back to the default snapshot.

    Missing, malformed or invalid data is never an error for the caller.
    """
    if not raw:
        return default_state(default_durations)

    try:
        return PersistedState.model_validate_json(raw).to_state()
    except ValidationError as e:
        logger.warning(f"Stored state is invalid, using defaults: {e.error_count()} error(s)")
        return default_state(default_durations)


class StateStore:
    """Load-on-init / save-on-mutation store for the full timer state.

    Usage:
        db = Database(config.db_path)
        await db.connect()
        store = StateStore(db)
        state = await store.load()
        await store.save(state)
    """

    def __init__(
        self,
        db: Database,
        key: str = DEFAULT_STATE_KEY,
        default_durations: Durations | None = None,
    ):
        self.db = db
        self.key = key
        self.default_durations = default_durations

    async def load(self) -> TimerState:
        raw = await self.db.get_value(self.key)
        state = load_state(raw, self.default_durations)
        logger.info(
            f"State loaded: {len(state.tasks)} task(s), {len(state.sessions)} session(s)"
        )
        return state

    async def save(self, state: TimerState) -> None:
        await self.db.set_value(self.key, dump_state(state))
        logger.debug(f"State saved under {self.key}")

    async def clear(self) -> None:
        await self.db.delete_value(self.key)
