"""Shared fixtures: a manual clock and an isolated configuration."""

import itertools

import pytest

from pomodoro_ledger.core.clock import ManualClock
from pomodoro_ledger.core.config import get_config

# 2026-10-17 around noon UTC
START_MS = 1_792_238_400_000


def sequential_ids(prefix: str = "id"):
    """Deterministic id factory: id-1, id-2, ..."""
    counter = itertools.count(1)
    return lambda: f"{prefix}-{next(counter)}"


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock(start_ms=START_MS)


@pytest.fixture
def config(tmp_path, monkeypatch):
    """Configuration rooted in a temporary directory."""
    monkeypatch.setenv("POMODORO_LEDGER_DATA_DIR", str(tmp_path / "data"))
    monkeypatch.setenv("POMODORO_LEDGER_LOG_DIR", str(tmp_path / "logs"))
    monkeypatch.setenv("POMODORO_LEDGER_CONFIG_DIR", str(tmp_path / "config"))
    monkeypatch.setenv("POMODORO_LEDGER_CONFIG_FILE", str(tmp_path / "config" / "config.yaml"))
    get_config.cache_clear()
    yield get_config()
    get_config.cache_clear()
