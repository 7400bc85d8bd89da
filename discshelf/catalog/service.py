"""
Catalog facade: the invocation surface used by the CLI.

Ties one store to the query engine, the listen logger and (optionally) a
synchronizer over a remote catalog.

Usage:
    catalog = Catalog.from_config(load_config())
    catalog.sync()
    for release in catalog.query("kind of blue"):
        print(release.title)
    catalog.log_listen(release.id, release.title)
"""

import random
from datetime import datetime

from discshelf.catalog.listenlog import ListenLogger
from discshelf.catalog.models import ListenLog, ListenLogEntry, Profile, Release
from discshelf.catalog.query import CatalogQuery, Scope
from discshelf.core.config import Config
from discshelf.core.database import Database
from discshelf.core.exceptions import DiscshelfError
from discshelf.discogs.client import DiscogsClient, RemoteCatalog
from discshelf.discogs.synchronizer import SyncReport, Synchronizer


class Catalog:
    """
    High-level operations over a local store.

    Args:
        store: The Database holding the mirrored catalog.
        remote: Remote catalog used by sync(); optional for read-only use.
    """

    def __init__(self, store: Database, remote: RemoteCatalog | None = None) -> None:
        self.store = store
        self.remote = remote
        self._query = CatalogQuery(store)
        self._logger = ListenLogger(store)

    @classmethod
    def from_config(cls, config: Config) -> "Catalog":
        return cls(
            Database(config.storage.database_path),
            DiscogsClient(config.discogs),
        )

    def sync(self, show_progress: bool = False, **options) -> SyncReport:
        """
        Run a full refresh against the remote catalog.

        Extra keyword options are passed to Synchronizer.

        Raises:
            DiscshelfError: If no remote catalog was configured.
            SyncError / PersistenceError: See Synchronizer.full_refresh().
        """
        if self.remote is None:
            raise DiscshelfError("No remote catalog configured for sync")
        synchronizer = Synchronizer(self.store, self.remote, show_progress=show_progress, **options)
        return synchronizer.full_refresh()

    def query(self, text: str, scope: Scope = Scope.COLLECTION) -> list[Release]:
        return self._query.find(text, scope)

    def random(self, rng: random.Random | None = None) -> Release:
        return self._query.random(rng)

    def log_listen(self, release_id: int, title: str, time: datetime | None = None) -> ListenLogEntry:
        return self._logger.log(release_id, title, time)

    def profile(self) -> Profile:
        return self._query.profile()

    def listenlog(self) -> ListenLog:
        return self._query.listenlog()
