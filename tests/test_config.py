"""Tests for configuration loading."""

import yaml

from pomodoro_ledger.core.config import Config
from pomodoro_ledger.focus.models import Durations


def test_defaults(config, tmp_path):
    assert config.data_dir == tmp_path / "data"
    assert config.db_path == tmp_path / "data" / "pomodoro_ledger.db"
    assert config.storage.state_key == "smart-pomodoro-state-v1"
    assert config.web.host == "127.0.0.1"
    assert config.timer.default_durations() == Durations(1500, 300, 900)


def test_yaml_file(config, tmp_path):
    path = tmp_path / "custom.yaml"
    path.write_text(yaml.safe_dump({"timer": {"work_minutes": 50, "long_break_minutes": 30}}))

    loaded = Config.load(path)
    assert loaded.timer.work_minutes == 50
    assert loaded.timer.short_break_minutes == 5
    assert loaded.timer.default_durations().long_break == 1800


def test_environment_beats_yaml(config, tmp_path, monkeypatch):
    path = tmp_path / "custom.yaml"
    path.write_text(yaml.safe_dump({"log_level": "WARNING"}))
    monkeypatch.setenv("POMODORO_LEDGER_LOG_LEVEL", "DEBUG")

    assert Config.load(path).log_level == "DEBUG"


def test_save_round_trip(config, tmp_path):
    config.timer.work_minutes = 45
    path = tmp_path / "saved" / "config.yaml"
    config.save(path)

    assert Config.load(path).timer.work_minutes == 45


def test_ensure_directories(config):
    config.ensure_directories()
    assert config.data_dir.is_dir()
    assert config.log_dir.is_dir()
    assert config.config_dir.is_dir()
