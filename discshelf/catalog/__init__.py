"""
Catalog module for discshelf.

This module provides the local view of the user's records:
    - Release, Folders, Profile, ListenLogEntry, ListenLog: Entity model
    - normalize, normalize_query: Fuzzy text normalization
    - CatalogQuery, Scope: Search and random selection over the store
    - ListenLogger: Records listens

The Catalog facade tying the store, the synchronizer and these components
together lives in discshelf.catalog.service.

Usage:
    from discshelf.catalog import CatalogQuery, ListenLogger, Scope

    query = CatalogQuery(database)
    matches = query.find("abbey road", Scope.COLLECTION)
    ListenLogger(database).log_release(matches[0])
"""

from discshelf.catalog.models import (
    Folders,
    ListenLog,
    ListenLogEntry,
    Profile,
    Release,
    WANTLIST_KEY,
    WANTLIST_NAME,
    normalize,
    normalize_query,
)
from discshelf.catalog.query import CatalogQuery, Scope
from discshelf.catalog.listenlog import ListenLogger

__all__ = [
    # Models
    "Release",
    "Folders",
    "Profile",
    "ListenLogEntry",
    "ListenLog",
    "WANTLIST_KEY",
    "WANTLIST_NAME",
    "normalize",
    "normalize_query",
    # Query
    "CatalogQuery",
    "Scope",
    # Listen log
    "ListenLogger",
]
