"""Configuration management with Pydantic and YAML support."""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from pomodoro_ledger.focus.durations import durations_from_minutes
from pomodoro_ledger.focus.models import Durations

DEFAULT_CONFIG_DIR = Path.home() / ".config/pomodoro-ledger"


class TimerConfig(BaseModel):
    """Timer defaults used for a fresh state."""

    work_minutes: int = Field(default=25, ge=1, description="Default work interval")
    short_break_minutes: int = Field(default=5, ge=1, description="Default short break")
    long_break_minutes: int = Field(default=15, ge=1, description="Default long break")
    tick_interval_seconds: float = Field(
        default=1.0, gt=0, le=60, description="Seconds between tick pulses"
    )

    def default_durations(self) -> Durations:
        return durations_from_minutes(
            self.work_minutes, self.short_break_minutes, self.long_break_minutes
        )


class StorageConfig(BaseModel):
    """State persistence configuration."""

    state_key: str = Field(default="smart-pomodoro-state-v1", description="Key of the state blob")
    db_filename: str = Field(default="pomodoro_ledger.db")


class WebConfig(BaseModel):
    """Local HTTP API configuration."""

    host: str = Field(default="127.0.0.1", description="Bind to localhost only")
    port: int = Field(default=8765, ge=1024, le=65535)


class Config(BaseSettings):
    """Main application configuration."""

    model_config = SettingsConfigDict(
        env_prefix="POMODORO_LEDGER_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    # Paths
    data_dir: Path = Field(
        default_factory=lambda: Path.home() / ".local/share/pomodoro-ledger"
    )
    log_dir: Path = Field(default_factory=lambda: Path.home() / ".local/state/pomodoro-ledger")
    config_dir: Path = Field(default_factory=lambda: DEFAULT_CONFIG_DIR)

    # Log level
    log_level: str = Field(default="INFO", pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$")

    # Sub-configurations
    timer: TimerConfig = Field(default_factory=TimerConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    web: WebConfig = Field(default_factory=WebConfig)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls,
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        # Environment variables win over values read from the YAML file
        return env_settings, init_settings, dotenv_settings, file_secret_settings

    @property
    def db_path(self) -> Path:
        """Path to SQLite database."""
        return self.data_dir / self.storage.db_filename

    @property
    def config_file(self) -> Path:
        """Path to YAML config file."""
        return self.config_dir / "config.yaml"

    @property
    def control_file(self) -> Path:
        """Command file polled by a running ``run`` session."""
        return self.data_dir / "control.json"

    @property
    def pid_file(self) -> Path:
        return self.data_dir / "run.pid"

    def ensure_directories(self) -> None:
        """Create all required directories."""
        self.data_dir.mkdir(parents=True, exist_ok=True)
        self.log_dir.mkdir(parents=True, exist_ok=True)
        self.config_dir.mkdir(parents=True, exist_ok=True)

        # Set restrictive permissions on data directory
        os.chmod(self.data_dir, 0o700)

    @classmethod
    def load(cls, config_path: Path | None = None) -> Config:
        """Load configuration from YAML file, environment variables, and defaults.

        Priority (highest to lowest):
        1. Environment variables
        2. YAML config file
        3. Default values
        """
        config_path = config_path or Path(
            os.environ.get("POMODORO_LEDGER_CONFIG_FILE", DEFAULT_CONFIG_DIR / "config.yaml")
        )

        yaml_config: dict[str, Any] = {}
        if config_path.exists():
            with open(config_path) as f:
                yaml_config = yaml.safe_load(f) or {}

        return cls(**yaml_config)

    def save(self, config_path: Path | None = None) -> None:
        """Save current configuration to YAML file."""
        config_path = config_path or self.config_file
        config_path.parent.mkdir(parents=True, exist_ok=True)

        data = self.model_dump(mode="json", exclude_none=True)

        with open(config_path, "w") as f:
            yaml.dump(data, f, default_flow_style=False, sort_keys=False)

        os.chmod(config_path, 0o600)


@lru_cache
def get_config() -> Config:
    """Get cached configuration instance."""
    return Config.load()
