"""Storage layer for the persisted timer state."""

from pomodoro_ledger.storage.database import Database
from pomodoro_ledger.storage.state_store import DEFAULT_STATE_KEY, StateStore

__all__ = ["Database", "StateStore", "DEFAULT_STATE_KEY"]
