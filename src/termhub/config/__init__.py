"""Configuration management module."""

from .loader import (
    AutoFocusDefaults,
    TermhubConfig,
    configure_logging,
    find_config_file,
    load_config,
    save_config,
)

__all__ = [
    "AutoFocusDefaults",
    "TermhubConfig",
    "configure_logging",
    "load_config",
    "save_config",
    "find_config_file",
]
