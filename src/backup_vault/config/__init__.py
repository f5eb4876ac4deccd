"""Configuration system for backup-vault.

This module provides TOML-based configuration loading and validation, the
per-workspace settings record, and the JSON store it is persisted in.
"""

from .loader import ConfigError, find_config_file, load_config, resolve_config
from .schema import Config, GlobalConfig, RetryConfig, VaultSettings
from .store import JsonSettingsStore, SettingsStore

__all__ = [
    "Config",
    "GlobalConfig",
    "RetryConfig",
    "VaultSettings",
    "JsonSettingsStore",
    "SettingsStore",
    "load_config",
    "find_config_file",
    "resolve_config",
    "ConfigError",
]
