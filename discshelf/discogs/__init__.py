"""
Discogs integration module for discshelf.

This module provides all functionality for mirroring the remote catalog:
    - RemoteCatalog: Abstract fetch capability (profile, folders, pages)
    - DiscogsClient: RemoteCatalog over the Discogs REST API
    - Synchronizer: Full refresh of the local store, all-or-nothing

Usage:
    from discshelf.discogs import DiscogsClient, Synchronizer

    synchronizer = Synchronizer(database, DiscogsClient(config.discogs))
    report = synchronizer.full_refresh()
"""

from discshelf.discogs.client import DiscogsClient, RemoteCatalog
from discshelf.discogs.synchronizer import SyncReport, SyncState, Synchronizer

__all__ = [
    # Client
    "RemoteCatalog",
    "DiscogsClient",
    # Synchronizer
    "Synchronizer",
    "SyncState",
    "SyncReport",
]
