"""Pomodoro Ledger - pomodoro timer with per-task countdowns and a session history."""

__version__ = "0.1.0"
