"""Tool-level settings (logging, presenter, session naming)."""

import os
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from ..utils.logging import ConfigError, LogLevel

PresenterName = Literal["auto", "iterm", "terminal", "tmux", "attach", "none"]


class DevplexerSettings(BaseModel):
    """Settings that apply to every invocation, independent of the topology."""

    log_level: str = Field(default="WARNING", description="Logging level")
    log_file: str | None = Field(default=None, description="Log file path")
    log_format: Literal["human", "json"] = Field(
        default="human", description="Log record format"
    )
    presenter: PresenterName = Field(
        default="auto", description="Terminal integration used to show the session"
    )
    session_prefix: str = Field(
        default="devplexer", description="Prefix for tmux session names"
    )
    topology_file: str | None = Field(
        default=None, description="Topology file used when none is given"
    )

    @field_validator("log_level")
    @classmethod
    def known_log_level(cls, value: str) -> str:
        level = value.upper()
        if level not in LogLevel.__members__:
            raise ValueError(f"log_level must be one of {', '.join(LogLevel.__members__)}")
        return level


ENV_PREFIX = "DEVPLEXER_"


def settings_file_path() -> Path:
    return Path.home() / ".config" / "devplexer" / "settings.yaml"


def load_settings_file(path: Path) -> dict[str, Any]:
    """Load settings from YAML file."""
    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in settings file {path}: {e}") from e
    except (OSError, UnicodeDecodeError) as e:
        raise ConfigError(f"Failed to read settings file {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"Settings file {path} must contain a mapping")
    return data


def load_env_vars() -> dict[str, Any]:
    """Load settings from DEVPLEXER_* environment variables."""
    config: dict[str, Any] = {}
    for key in DevplexerSettings.model_fields:
        env_var = f"{ENV_PREFIX}{key.upper()}"
        if env_var in os.environ:
            config[key] = os.environ[env_var]
    return config


def load_settings(
    settings_path: Path | None = None,
    cli_overrides: dict[str, Any] | None = None,
) -> DevplexerSettings:
    """Load settings.

    Precedence order (highest to lowest):
    1. CLI flag overrides
    2. Environment variables
    3. Settings file
    4. Default values
    """
    config_data: dict[str, Any] = {}

    path = settings_path or settings_file_path()
    if path.exists():
        config_data.update(load_settings_file(path))

    config_data.update(load_env_vars())

    if cli_overrides:
        config_data.update({k: v for k, v in cli_overrides.items() if v is not None})

    try:
        return DevplexerSettings(**config_data)
    except ValidationError as e:
        raise ConfigError(f"Invalid settings: {e}") from e
