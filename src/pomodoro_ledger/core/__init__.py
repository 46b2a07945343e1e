"""Core components: clock sources and configuration."""

from pomodoro_ledger.core.clock import Clock, ManualClock, SystemClock
from pomodoro_ledger.core.config import Config, get_config

__all__ = ["Clock", "ManualClock", "SystemClock", "Config", "get_config"]
