"""Configuration loading and management."""

import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, ValidationError

from ..core.enums import SessionType
from ..utils.logging import (
    ConfigurationError,
    LogContext,
    get_logger,
    setup_logging,
)

logger = get_logger(__name__, LogContext.CONFIG)


class AutoFocusDefaults(BaseModel):
    """Auto-focus flags applied to a session type when not set per session."""

    requires_input: bool
    is_persistent: bool


def _default_auto_focus() -> dict[str, AutoFocusDefaults]:
    return {
        SessionType.LOCAL.value: AutoFocusDefaults(
            requires_input=True, is_persistent=False
        ),
        SessionType.REMOTE_SHELL.value: AutoFocusDefaults(
            requires_input=True, is_persistent=True
        ),
        SessionType.SOCKET.value: AutoFocusDefaults(
            requires_input=False, is_persistent=True
        ),
    }


class TermhubConfig(BaseModel):
    """Configuration model for termhub."""

    # Sessions
    recent_command_limit: int = Field(
        default=50, ge=1, description="Recent commands kept per session"
    )
    auto_focus: dict[str, AutoFocusDefaults] = Field(
        default_factory=_default_auto_focus,
        description="Auto-focus defaults per session type",
    )

    # Events
    event_queue_size: int = Field(
        default=256, ge=0, description="Per-subscriber event buffer (0 = unbounded)"
    )

    # Transport
    connect_timeout: float = Field(
        default=10.0, gt=0, description="Remote connection timeout in seconds"
    )

    # Logging
    log_level: str = Field(default="INFO", description="Logging level")
    log_file: str | None = Field(default=None, description="Log file path")
    structured_logging: bool = Field(
        default=True, description="Emit JSON structured log lines"
    )

    def focus_defaults(self) -> dict[SessionType, tuple[bool, bool]]:
        """Auto-focus defaults keyed by session type.

        Raises:
            ConfigurationError: If a key does not name a session type
        """
        defaults = {}
        for key, flags in self.auto_focus.items():
            try:
                session_type = SessionType(key)
            except ValueError:
                raise ConfigurationError(
                    f"Unknown session type in auto_focus: {key}",
                    context={"key": key},
                ) from None
            defaults[session_type] = (flags.requires_input, flags.is_persistent)
        return defaults


def find_config_file(custom_path: str | None = None) -> Path | None:
    """Find configuration file in standard locations."""
    if custom_path:
        path = Path(custom_path).expanduser()
        if path.exists():
            return path
        raise FileNotFoundError(f"Config file not found: {custom_path}")

    search_paths = [
        Path.cwd() / "termhub.yaml",
        Path.cwd() / "termhub.yml",
        Path.home() / ".config" / "termhub" / "config.yaml",
        Path.home() / ".termhub.yaml",
    ]

    for path in search_paths:
        if path.exists():
            return path

    return None


def load_config_file(config_path: Path) -> dict[str, Any]:
    """Load configuration from YAML file."""
    try:
        with open(config_path) as f:
            return yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigurationError(
            f"Invalid YAML in config file {config_path}: {e}",
            context={"path": str(config_path)},
        ) from e
    except OSError as e:
        raise ConfigurationError(
            f"Failed to read config file {config_path}: {e}",
            context={"path": str(config_path)},
        ) from e


def load_env_vars() -> dict[str, Any]:
    """Load configuration from environment variables."""
    config: dict[str, Any] = {}
    prefix = "TERMHUB_"

    env_mappings = {
        f"{prefix}RECENT_COMMAND_LIMIT": "recent_command_limit",
        f"{prefix}EVENT_QUEUE_SIZE": "event_queue_size",
        f"{prefix}CONNECT_TIMEOUT": "connect_timeout",
        f"{prefix}LOG_LEVEL": "log_level",
        f"{prefix}LOG_FILE": "log_file",
        f"{prefix}STRUCTURED_LOGGING": "structured_logging",
    }

    for env_var, config_key in env_mappings.items():
        if env_var in os.environ:
            env_value = os.environ[env_var]
            if config_key in ["recent_command_limit", "event_queue_size"]:
                try:
                    config[config_key] = int(env_value)
                except ValueError:
                    logger.warning(
                        "Ignoring non-integer environment value", variable=env_var
                    )
                    continue
            elif config_key == "connect_timeout":
                try:
                    config[config_key] = float(env_value)
                except ValueError:
                    logger.warning(
                        "Ignoring non-numeric environment value", variable=env_var
                    )
                    continue
            elif config_key == "structured_logging":
                config[config_key] = env_value.lower() in ("true", "1", "yes", "on")
            else:
                config[config_key] = env_value

    return config


def load_config(
    config_path: str | None = None,
    profile: str | None = None,
    overrides: dict[str, Any] | None = None,
) -> TermhubConfig:
    """Load configuration from file and environment variables.

    Precedence order (highest to lowest):
    1. Explicit overrides
    2. Environment variables
    3. Configuration file (with profile support)
    4. Default values
    """
    config_data: dict[str, Any] = {}

    config_file = find_config_file(config_path)
    if config_file:
        file_data = load_config_file(config_file)
        config_data.update({k: v for k, v in file_data.items() if k != "profiles"})

        if profile and profile in file_data.get("profiles", {}):
            config_data.update(file_data["profiles"][profile])

        logger.debug("Loaded config file", path=str(config_file), profile=profile)

    config_data.update(load_env_vars())

    if overrides:
        config_data.update(overrides)

    try:
        return TermhubConfig(**config_data)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e


def save_config(config: TermhubConfig, config_path: str | None = None) -> Path:
    """Save configuration to file."""
    if config_path:
        path = Path(config_path).expanduser()
    else:
        config_dir = Path.home() / ".config" / "termhub"
        config_dir.mkdir(parents=True, exist_ok=True)
        path = config_dir / "config.yaml"

    with open(path, "w") as f:
        yaml.dump(config.model_dump(), f, default_flow_style=False, sort_keys=True)

    return path


def configure_logging(config: TermhubConfig, enable_console: bool = True) -> None:
    """Apply the logging settings of a configuration."""
    setup_logging(
        log_level=config.log_level,
        log_file=Path(config.log_file).expanduser() if config.log_file else None,
        enable_structured=config.structured_logging,
        enable_console=enable_console,
    )
