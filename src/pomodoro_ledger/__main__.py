"""Allow running as ``python -m pomodoro_ledger``."""

from pomodoro_ledger.cli.main import app

app()
