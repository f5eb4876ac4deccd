"""TOML configuration loading and validation.

Handles config file discovery, parsing, and validation with helpful error messages.
"""

import tomllib
from pathlib import Path
from typing import Any

from .schema import Config, GlobalConfig, RetryConfig


class ConfigError(Exception):
    """Configuration loading or validation error."""

    pass


# Config file search paths in priority order
CONFIG_PATHS = [
    Path.home() / ".config" / "backup-vault" / "config.toml",
    Path("/etc/backup-vault/config.toml"),
]


def find_config_file(explicit_path: str | None = None) -> Path | None:
    """Find configuration file.

    Args:
        explicit_path: Explicitly specified config path (highest priority)

    Returns:
        Path to config file, or None if not found
    """
    if explicit_path:
        path = Path(explicit_path).expanduser()
        if path.exists():
            return path
        raise ConfigError(f"Config file not found: {explicit_path}")

    for path in CONFIG_PATHS:
        if path.exists():
            return path

    return None


def _parse_number(data: dict[str, Any], key: str, default, kind=float):
    value = data.get(key, default)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigError(f"'{key}' must be a number, got {value!r}")
    return kind(value)


def _parse_retry(data: dict[str, Any]) -> RetryConfig:
    """Parse retry configuration from dict."""
    return RetryConfig(
        max_retries=_parse_number(data, "max_retries", 3, int),
        base_delay=_parse_number(data, "base_delay", 1.0),
        max_jitter=_parse_number(data, "max_jitter", 1.0),
    )


def _parse_global(data: dict[str, Any]) -> GlobalConfig:
    """Parse global configuration from dict."""
    retry = RetryConfig()
    if "retry" in data:
        retry = _parse_retry(data["retry"])

    defaults = GlobalConfig()
    return GlobalConfig(
        log_file=data.get("log_file"),
        state_dir=data.get("state_dir", defaults.state_dir),
        transaction_log=data.get("transaction_log"),
        chunk_size=_parse_number(data, "chunk_size", defaults.chunk_size, int),
        retry=retry,
    )


def _validate_config(config: Config) -> list[str]:
    """Validate configuration and return list of warnings."""
    warnings = []
    global_config = config.global_config

    if global_config.chunk_size <= 0:
        raise ConfigError("chunk_size must be positive")
    if global_config.chunk_size < 4096:
        warnings.append(
            f"chunk_size {global_config.chunk_size} is very small and will slow copies"
        )

    retry = global_config.retry
    if retry.max_retries < 0:
        raise ConfigError("retry.max_retries cannot be negative")
    if retry.base_delay < 0 or retry.max_jitter < 0:
        raise ConfigError("retry delays cannot be negative")
    if retry.max_retries > 10:
        warnings.append(
            f"retry.max_retries = {retry.max_retries} may stall jobs for a long time"
        )

    return warnings


def load_config(path: Path | str) -> tuple[Config, list[str]]:
    """Load and validate configuration from TOML file.

    Args:
        path: Path to configuration file

    Returns:
        Tuple of (Config object, list of warnings)

    Raises:
        ConfigError: If config is invalid or cannot be parsed
    """
    path = Path(path)

    try:
        with open(path, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Invalid TOML syntax: {e}")
    except OSError as e:
        raise ConfigError(f"Cannot read config file: {e}")

    config = Config(global_config=_parse_global(data.get("global", {})))

    # Validate and collect warnings
    warnings = _validate_config(config)

    return config, warnings


def resolve_config(explicit_path: str | None = None) -> tuple[Config, Path | None, list[str]]:
    """Find and load the config file, falling back to defaults when none exists.

    Returns:
        Tuple of (Config, path it was loaded from or None, warnings)
    """
    config_path = find_config_file(explicit_path)
    if config_path is None:
        return Config(), None, []
    config, warnings = load_config(config_path)
    return config, config_path, warnings


def generate_example_config() -> str:
    """Generate example configuration file content."""
    return """# backup-vault configuration
# All keys are optional; the values below are the defaults.

[global]
state_dir = "~/.local/share/backup-vault"
# transaction_log = "~/.local/share/backup-vault/transactions.log"
# log_file = "~/.local/state/backup-vault/backup-vault.log"

# Read/write chunk size in bytes for copies and hashing
chunk_size = 1048576

# Retry policy for transient filesystem errors (busy files, too many open
# files, interrupted calls). Delay doubles each attempt plus random jitter.
[global.retry]
max_retries = 3
base_delay = 1.0
max_jitter = 1.0
"""
