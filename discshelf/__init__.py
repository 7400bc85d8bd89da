"""
discshelf: Keep track of a Discogs record collection from the terminal.

This package mirrors a user's Discogs collection and wantlist into a local
SQLite store, lets the user search it by fuzzy title match, keeps a
chronological log of what was listened to, and picks random records to play.

Architecture:
    catalog/    - Entity model, query engine, listen logger
    discogs/    - Remote catalog capability, Discogs client, synchronizer
    core/       - Configuration, local store, logging, exceptions
    utils/      - Small shared helpers (time, formatting, backoff)
    cli.py      - Command-line interface

Usage:
    Command Line:
        discshelf update
        discshelf query "abbey road"
        discshelf listen "abbey road"
        discshelf random --nolog

    Python API:
        from discshelf.core import load_config, Database
        from discshelf.catalog import CatalogQuery, ListenLogger
        from discshelf.discogs import DiscogsClient, Synchronizer

        config = load_config()
        database = Database(config.storage.database_path)

        Synchronizer(database, DiscogsClient(config.discogs)).full_refresh()
        matches = CatalogQuery(database).find("abbey road")
        ListenLogger(database).log_release(matches[0])

Dependencies:
    - requests: Discogs HTTP API
    - click / rich-click: CLI framework and colors
    - pyyaml: Configuration file parsing
    - python-dotenv: Credentials from .env
    - tqdm: Progress bar during sync
    - colorama: Colored console logging
"""

__version__ = "0.1.0"
__author__ = "discshelf"
__license__ = "MIT"

# Convenience imports for common usage (core first: the store imports the catalog models)
from discshelf.core import (
    Config,
    ConfigError,
    Database,
    DiscshelfError,
    EmptyCollectionError,
    NotInitializedError,
    PersistenceError,
    RemoteDataError,
    RemoteUnavailable,
    SyncError,
    get_logger,
    load_config,
    setup_logging,
)
from discshelf.catalog import (
    CatalogQuery,
    Folders,
    ListenLog,
    ListenLogEntry,
    ListenLogger,
    Profile,
    Release,
    Scope,
)

__all__ = [
    # Version
    "__version__",
    # Core
    "Config",
    "load_config",
    "Database",
    "setup_logging",
    "get_logger",
    # Exceptions
    "DiscshelfError",
    "ConfigError",
    "PersistenceError",
    "NotInitializedError",
    "EmptyCollectionError",
    "SyncError",
    "RemoteUnavailable",
    "RemoteDataError",
    # Catalog
    "Release",
    "Folders",
    "Profile",
    "ListenLogEntry",
    "ListenLog",
    "CatalogQuery",
    "ListenLogger",
    "Scope",
]
