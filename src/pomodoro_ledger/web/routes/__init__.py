"""Web routes for the Pomodoro Ledger API."""

from pomodoro_ledger.web.routes import api

__all__ = ["api"]
