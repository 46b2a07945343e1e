"""Tests for the Typer command-line interface."""

import json
import os

import pytest
from typer.testing import CliRunner

from pomodoro_ledger import __version__
from pomodoro_ledger.cli.main import app, read_control, write_control

runner = CliRunner()


@pytest.fixture
def active_run(config):
    """Pretend a ``run`` session is active in this process."""
    config.pid_file.parent.mkdir(parents=True, exist_ok=True)
    config.pid_file.write_text(str(os.getpid()))
    yield config
    config.pid_file.unlink(missing_ok=True)


def invoke(*args):
    return runner.invoke(app, list(args))


class TestTasks:
    def test_add_and_list(self, config):
        result = invoke("task-add", "Essay", "--category", "prose")
        assert result.exit_code == 0, result.output
        assert "Added task Essay" in result.output

        result = invoke("tasks")
        assert result.exit_code == 0
        assert "Essay" in result.output
        assert "prose" in result.output

    def test_blank_name(self, config):
        result = invoke("task-add", "   ")
        assert result.exit_code == 1
        assert "cannot be empty" in result.output

    def test_no_tasks(self, config):
        result = invoke("tasks")
        assert result.exit_code == 0
        assert "No tasks" in result.output

    def test_activate_unknown(self, config):
        result = invoke("task-activate", "missing")
        assert result.exit_code == 1
        assert "Unknown task" in result.output

    def test_remove_unknown(self, config):
        result = invoke("task-remove", "missing")
        assert result.exit_code == 1

    def test_refused_while_run_is_active(self, active_run):
        result = invoke("task-add", "Anything")
        assert result.exit_code == 1
        assert "session is active" in result.output


class TestDurations:
    def test_show_defaults(self, config):
        result = invoke("durations")
        assert result.exit_code == 0
        assert "25" in result.output
        assert "15" in result.output

    def test_change(self, config):
        result = invoke("durations", "--work", "30")
        assert result.exit_code == 0
        assert "30" in result.output

        result = invoke("status")
        assert "30:00" in result.output

    def test_out_of_range_and_invalid(self, config):
        invoke("durations", "--work", "90", "--short", "abc")
        result = invoke("status")
        assert "60:00" in result.output


class TestTimerControl:
    def test_requires_running_session(self, config):
        result = invoke("timer", "start")
        assert result.exit_code == 1
        assert "No timer is running" in result.output

    def test_unknown_action(self, config):
        result = invoke("timer", "skip")
        assert result.exit_code == 1
        assert "Unknown action" in result.output

    def test_unknown_mode(self, active_run):
        result = invoke("timer", "mode", "nap")
        assert result.exit_code == 1
        assert "Unknown mode" in result.output

    def test_writes_control_file(self, active_run):
        result = invoke("timer", "mode", "short_break")
        assert result.exit_code == 0

        data = json.loads(active_run.control_file.read_text())
        assert data["action"] == "mode"
        assert data["value"] == "short_break"

    def test_control_file_is_consumed(self, config):
        write_control(config, "activate", "task-1")
        assert read_control(config)["value"] == "task-1"
        assert read_control(config) is None

    def test_corrupt_control_file(self, config):
        config.control_file.parent.mkdir(parents=True, exist_ok=True)
        config.control_file.write_text("{oops")
        assert read_control(config) is None
        assert not config.control_file.exists()


class TestReporting:
    def test_status(self, config):
        result = invoke("status")
        assert result.exit_code == 0
        assert "25:00" in result.output
        assert "not running" in result.output

    def test_stats(self, config):
        result = invoke("stats")
        assert result.exit_code == 0
        assert "0 min focused" in result.output

    def test_report(self, config):
        result = invoke("report", "--days", "3")
        assert result.exit_code == 0
        assert "All Time" in result.output


class TestResetData:
    def test_deletes_tasks(self, config):
        invoke("task-add", "Essay")

        result = invoke("reset-data", "--yes")
        assert result.exit_code == 0, result.output
        assert "All data deleted" in result.output

        result = invoke("tasks")
        assert "No tasks" in result.output

    def test_declined_prompt_keeps_data(self, config):
        invoke("task-add", "Essay")

        result = runner.invoke(app, ["reset-data"], input="n\n")
        assert result.exit_code == 0
        assert "Essay" in invoke("tasks").output

    def test_refused_while_run_is_active(self, active_run):
        result = invoke("reset-data", "--yes")
        assert result.exit_code == 1
        assert "session is active" in result.output


def test_config_show(config):
    result = invoke("config-show")
    assert result.exit_code == 0
    assert "Timer Defaults" in result.output


def test_version():
    result = invoke("version")
    assert result.exit_code == 0
    assert __version__ in result.output
