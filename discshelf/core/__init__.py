"""
Core module for discshelf.

This module provides the foundational components used throughout the application:
    - exceptions: Custom exception classes for error handling
    - config: Configuration loading, validation and saving
    - logger: Logging system with console and file outputs
    - database: SQLite local store for folders, profile and listen log

Usage:
    from discshelf.core import (
        Config, load_config,
        Database,
        setup_logging, get_logger,
        DiscshelfError, ConfigError, PersistenceError
    )
"""

from discshelf.core.config import (
    Config,
    DiscogsConfig,
    DisplayConfig,
    LoggingConfig,
    StorageConfig,
    default_config,
    default_config_path,
    load_config,
    save_config,
    update_credentials,
)
from discshelf.core.exceptions import (
    ConfigError,
    DiscshelfError,
    EmptyCollectionError,
    NotInitializedError,
    PersistenceError,
    RemoteDataError,
    RemoteUnavailable,
    SyncError,
)
from discshelf.core.logger import (
    get_logger,
    setup_logging,
    shutdown_logging,
)
# Imported last: the store depends on the catalog models
from discshelf.core.database import Database

__all__ = [
    # Config
    "Config",
    "DiscogsConfig",
    "DisplayConfig",
    "StorageConfig",
    "LoggingConfig",
    "default_config",
    "default_config_path",
    "load_config",
    "save_config",
    "update_credentials",
    # Database
    "Database",
    # Exceptions
    "DiscshelfError",
    "ConfigError",
    "PersistenceError",
    "NotInitializedError",
    "EmptyCollectionError",
    "SyncError",
    "RemoteUnavailable",
    "RemoteDataError",
    # Logger
    "setup_logging",
    "get_logger",
    "shutdown_logging",
]
