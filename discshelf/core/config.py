"""
Configuration management for discshelf.

This module handles loading, validating, and saving the application
configuration stored in config.yaml.

The configuration file contains:
    - Discogs credentials (username, personal access token)
    - HTTP settings for the Discogs API (user agent, timeout, page size)
    - Display timezone as an hours offset from UTC
    - Data directory holding the local store
    - Logging level and log directory

Configuration File Location:
    $XDG_CONFIG_HOME/discshelf/config.yaml (default ~/.config/discshelf/),
    or any path passed explicitly with --config.

Environment Overrides:
    DISCOGS_USERNAME and DISCOGS_TOKEN take precedence over the file.
    They may also be placed in a .env file (loaded with python-dotenv).

Example config.yaml:
    discogs:
      username: "johndoe"
      token: "your_personal_access_token"
      timeout: 30
      per_page: 100

    display:
      timezone: 8.0   # hours from UTC, -12..14

    storage:
      data_dir: "~/.local/share/discshelf"

    logging:
      level: "INFO"
"""

import os
from dataclasses import dataclass
from datetime import tzinfo
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

from discshelf.core.exceptions import ConfigError
from discshelf.utils import ensure_directory, timezone_from_offset


APP_NAME = "discshelf"
CONFIG_FILENAME = "config.yaml"
DATABASE_FILENAME = "discshelf.db"

DEFAULT_USER_AGENT = "discshelf/0.1 +https://github.com/discshelf/discshelf"
DEFAULT_TIMEOUT = 30.0
DEFAULT_PER_PAGE = 100
MAX_PER_PAGE = 100

MIN_TIMEZONE = -12.0
MAX_TIMEZONE = 14.0

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


def default_config_dir() -> Path:
    base = os.environ.get("XDG_CONFIG_HOME") or Path.home() / ".config"
    return Path(base) / APP_NAME


def default_data_dir() -> Path:
    base = os.environ.get("XDG_DATA_HOME") or Path.home() / ".local" / "share"
    return Path(base) / APP_NAME


def default_config_path() -> Path:
    return default_config_dir() / CONFIG_FILENAME


@dataclass(frozen=True)
class DiscogsConfig:
    """
    Discogs API access configuration.

    The token is a personal access token generated at
    https://www.discogs.com/settings/developers

    Attributes:
        username: Discogs account whose collection is mirrored.
        token: Personal access token.
        user_agent: User-Agent header (Discogs rejects anonymous clients).
        timeout: Per-request timeout in seconds.
        per_page: Page size for collection and wantlist requests (max 100).
    """
    username: str
    token: str
    user_agent: str = DEFAULT_USER_AGENT
    timeout: float = DEFAULT_TIMEOUT
    per_page: int = DEFAULT_PER_PAGE


@dataclass(frozen=True)
class DisplayConfig:
    """
    Display settings.

    Attributes:
        timezone: Hours offset from UTC used when printing dates.
                  Fractional offsets are allowed (5.5 for India).
    """
    timezone: float = 0.0


@dataclass(frozen=True)
class StorageConfig:
    """
    Local storage settings.

    Attributes:
        data_dir: Directory holding the store file. ~ is expanded.
                  Created on first write.
    """
    data_dir: Path

    @property
    def database_path(self) -> Path:
        return self.data_dir / DATABASE_FILENAME


@dataclass(frozen=True)
class LoggingConfig:
    """
    Logging settings.

    Attributes:
        level: Console level, one of DEBUG, INFO, WARNING, ERROR.
        directory: Where per-run log files are written.
    """
    level: str
    directory: Path


@dataclass(frozen=True)
class Config:
    """
    Complete application configuration.

    Created by load_config() or default_config() and treated as immutable.
    Use dataclasses.replace() to derive a modified copy.

    Example:
        config = load_config()
        print(f"Store: {config.storage.database_path}")
        print(config.tzinfo)
    """
    discogs: DiscogsConfig
    display: DisplayConfig
    storage: StorageConfig
    logging: LoggingConfig

    @property
    def tzinfo(self) -> tzinfo:
        """Fixed-offset timezone for display."""
        return timezone_from_offset(self.display.timezone)


def default_config(username: str, token: str, timezone: float = 0.0) -> Config:
    """
    Build a configuration with default paths and settings.

    Used on first run, after prompting the user for credentials.

    Raises:
        ConfigError: If a value is invalid.
    """
    data_dir = default_data_dir()
    return Config(
        discogs=DiscogsConfig(
            username=_require_string(username, "discogs.username"),
            token=_require_string(token, "discogs.token"),
        ),
        display=DisplayConfig(timezone=validate_timezone(timezone)),
        storage=StorageConfig(data_dir=data_dir),
        logging=LoggingConfig(level="INFO", directory=data_dir / "logs"),
    )


def load_config(config_path: Path | None = None) -> Config:
    """
    Load and validate configuration from config.yaml.

    Args:
        config_path: Optional explicit path to the config file.
                     Defaults to default_config_path().

    Returns:
        Config: A frozen dataclass containing all configuration values.

    Raises:
        ConfigError: If the config file is not found, has invalid YAML syntax,
                     is missing required fields, or contains invalid values.

    Behavior:
        1. Load .env into the environment (existing variables win)
        2. Read and parse YAML content
        3. Apply DISCOGS_USERNAME / DISCOGS_TOKEN overrides
        4. Validate each section, applying defaults
        5. Create and return frozen Config object
    """
    load_dotenv()

    if config_path is None:
        config_path = default_config_path()

    raw_config = _read_raw_config(config_path)

    storage_config = _parse_storage_config(_section(raw_config, "storage"))
    return Config(
        discogs=_parse_discogs_config(_section(raw_config, "discogs")),
        display=_parse_display_config(_section(raw_config, "display")),
        storage=storage_config,
        logging=_parse_logging_config(_section(raw_config, "logging"), storage_config),
    )


def save_config(config: Config, config_path: Path | None = None) -> Path:
    """
    Write the configuration as YAML, creating parent directories.

    Returns:
        The path written.

    Raises:
        ConfigError: If the file cannot be written.
    """
    if config_path is None:
        config_path = default_config_path()

    data = {
        "discogs": {
            "username": config.discogs.username,
            "token": config.discogs.token,
            "user_agent": config.discogs.user_agent,
            "timeout": config.discogs.timeout,
            "per_page": config.discogs.per_page,
        },
        "display": {"timezone": config.display.timezone},
        "storage": {"data_dir": str(config.storage.data_dir)},
        "logging": {
            "level": config.logging.level,
            "directory": str(config.logging.directory),
        },
    }

    _write_raw_config(data, config_path)

    return config_path


def _read_raw_config(config_path: Path) -> dict[str, Any]:
    """
    Read config.yaml as a plain dictionary, without overrides or defaults.

    Raises:
        ConfigError: If the file is missing, unreadable or not a YAML dictionary.
    """
    if not config_path.exists():
        raise ConfigError(
            f"Configuration file not found: {config_path}",
            details={"file_path": str(config_path)}
        )

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            raw_config = yaml.safe_load(f)
    except OSError as e:
        raise ConfigError(
            f"Failed to read configuration file: {e}",
            details={"file_path": str(config_path), "original_error": str(e)}
        ) from e
    except yaml.YAMLError as e:
        raise ConfigError(
            f"Invalid YAML syntax in configuration file: {e}",
            details={"file_path": str(config_path), "original_error": str(e)}
        ) from e

    if raw_config is None:
        raw_config = {}
    if not isinstance(raw_config, dict):
        raise ConfigError(
            "Configuration file must contain a YAML dictionary",
            details={"file_path": str(config_path)}
        )
    return raw_config


def _write_raw_config(data: dict[str, Any], config_path: Path) -> None:
    try:
        ensure_directory(config_path.parent)
        with open(config_path, "w", encoding="utf-8") as f:
            yaml.safe_dump(data, f, default_flow_style=False, sort_keys=False)
    except OSError as e:
        raise ConfigError(
            f"Failed to write configuration file: {e}",
            details={"file_path": str(config_path), "original_error": str(e)}
        ) from e


def update_credentials(
    config_path: Path,
    username: str | None = None,
    token: str | None = None
) -> Path:
    """
    Change the stored Discogs credentials in an existing config.yaml.

    Only the fields passed are written; every other value in the file is
    kept exactly as the user wrote it. Environment overrides
    (DISCOGS_USERNAME / DISCOGS_TOKEN) are never copied into the file.

    Returns:
        The path written.

    Raises:
        ConfigError: If the file cannot be read or written, or a value is blank.
    """
    raw_config = _read_raw_config(config_path)
    discogs = dict(_section(raw_config, "discogs"))
    if username is not None:
        discogs["username"] = _require_string(username, "discogs.username")
    if token is not None:
        discogs["token"] = _require_string(token, "discogs.token")
    raw_config["discogs"] = discogs
    _write_raw_config(raw_config, config_path)
    return config_path


def validate_timezone(value: Any) -> float:
    """
    Validate a timezone offset in hours.

    Raises:
        ConfigError: If value is not a number between -12 and 14.
    """
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigError(
            "'display.timezone' must be a number of hours",
            details={"field": "display.timezone", "value": value}
        )
    if not MIN_TIMEZONE <= value <= MAX_TIMEZONE:
        raise ConfigError(
            f"'display.timezone' must be between {MIN_TIMEZONE:g} and {MAX_TIMEZONE:g}",
            details={"field": "display.timezone", "value": value}
        )
    return float(value)


def _section(raw_config: dict[str, Any], name: str) -> dict[str, Any]:
    section = raw_config.get(name)
    if section is None:
        return {}
    if not isinstance(section, dict):
        raise ConfigError(
            f"Section '{name}' must be a dictionary",
            details={"section": name}
        )
    return section


def _require_string(value: Any, field: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ConfigError(
            f"'{field}' must be a non-empty string",
            details={"field": field}
        )
    return value.strip()


def _parse_discogs_config(section: dict[str, Any]) -> DiscogsConfig:
    """
    Parse the discogs section, applying environment overrides.

    Raises:
        ConfigError: If username or token is missing after overrides,
                     or if timeout/per_page are out of range.
    """
    username = os.getenv("DISCOGS_USERNAME") or section.get("username", "")
    token = os.getenv("DISCOGS_TOKEN") or section.get("token", "")

    timeout = section.get("timeout", DEFAULT_TIMEOUT)
    if isinstance(timeout, bool) or not isinstance(timeout, (int, float)) or timeout <= 0:
        raise ConfigError(
            "'discogs.timeout' must be a positive number of seconds",
            details={"field": "discogs.timeout", "value": timeout}
        )

    per_page = section.get("per_page", DEFAULT_PER_PAGE)
    if isinstance(per_page, bool) or not isinstance(per_page, int) or not 1 <= per_page <= MAX_PER_PAGE:
        raise ConfigError(
            f"'discogs.per_page' must be an integer between 1 and {MAX_PER_PAGE}",
            details={"field": "discogs.per_page", "value": per_page}
        )

    user_agent = section.get("user_agent") or DEFAULT_USER_AGENT

    return DiscogsConfig(
        username=_require_string(username, "discogs.username"),
        token=_require_string(token, "discogs.token"),
        user_agent=_require_string(user_agent, "discogs.user_agent"),
        timeout=float(timeout),
        per_page=per_page,
    )


def _parse_display_config(section: dict[str, Any]) -> DisplayConfig:
    return DisplayConfig(timezone=validate_timezone(section.get("timezone", 0.0)))


def _parse_storage_config(section: dict[str, Any]) -> StorageConfig:
    raw_dir = section.get("data_dir")
    if raw_dir is None:
        return StorageConfig(data_dir=default_data_dir())
    data_dir = _require_string(raw_dir, "storage.data_dir")
    return StorageConfig(data_dir=Path(data_dir).expanduser().resolve())


def _parse_logging_config(section: dict[str, Any], storage: StorageConfig) -> LoggingConfig:
    level = str(section.get("level", "INFO")).upper()
    if level not in LOG_LEVELS:
        raise ConfigError(
            f"'logging.level' must be one of {', '.join(LOG_LEVELS)}",
            details={"field": "logging.level", "value": level}
        )

    raw_dir = section.get("directory")
    if raw_dir is None:
        directory = storage.data_dir / "logs"
    else:
        directory = Path(_require_string(raw_dir, "logging.directory")).expanduser().resolve()

    return LoggingConfig(level=level, directory=directory)
