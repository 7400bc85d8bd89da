"""
Query engine over the local store.

All reads go through CatalogQuery, which works purely against what is
currently committed in the store and never contacts the remote catalog.

Matching:
    A release matches a query when normalize_query(query) is a substring of
    its search_string. Results come back in storage order (folders in
    lexicographic name order, each folder in its stored order); there is no
    ranking, the caller disambiguates between several matches.

Usage:
    query = CatalogQuery(database)
    for release in query.find("kind of blue"):
        print(release.title)

    pick = query.random()
"""

import random as _random
from enum import Enum

from discshelf.catalog.models import (
    Folders,
    ListenLog,
    Profile,
    Release,
    WANTLIST_KEY,
    normalize_query,
)
from discshelf.core.exceptions import EmptyCollectionError, NotInitializedError
from discshelf.core.logger import get_logger


logger = get_logger(__name__)


class Scope(Enum):
    """Namespace searched by CatalogQuery.find()."""

    COLLECTION = "collection"
    WANTLIST = "wantlist"


class CatalogQuery:
    """
    Read-only queries over the committed catalog.

    The store snapshot is loaded lazily and reloaded whenever the store
    reports that its content changed since the last load.

    Args:
        store: A Database (anything exposing load() and a modified flag).
    """

    def __init__(self, store) -> None:
        self._store = store
        self._snapshot: tuple[Folders, ListenLog, Profile | None] | None = None

    def _state(self) -> tuple[Folders, ListenLog, Profile | None]:
        if self._snapshot is None or self._store.modified:
            self._snapshot = self._store.load()
        return self._snapshot

    def find(self, query: str, scope: Scope = Scope.COLLECTION) -> list[Release]:
        """
        Find every release whose search string contains the query.

        Args:
            query: Free text, normalized before matching ("ABBEY, ROAD!"
                   finds "Abbey Road").
            scope: Search the collection folders or the wantlist.

        Returns:
            Matching releases in storage order, [] when nothing matches.

        Raises:
            NotInitializedError: If no sync has ever completed.
        """
        folders, _, profile = self._state()
        if profile is None:
            raise NotInitializedError(
                "The catalog is empty: run 'discshelf update' first"
            )

        needle = normalize_query(query)
        if scope is Scope.WANTLIST:
            candidates = folders.wantlist
        else:
            candidates = folders.collection_releases()

        matches = [release for release in candidates if needle in release.search_string]
        logger.debug(f"Query {needle!r} in {scope.value}: {len(matches)} match(es)")
        return matches

    def random(self, rng: _random.Random | None = None) -> Release:
        """
        Pick a release uniformly at random from the collection.

        The wantlist is never drawn from. A release present in two folders
        is counted once per folder.

        Args:
            rng: Optional random source, e.g. random.Random(seed) in tests.

        Raises:
            EmptyCollectionError: If the collection holds no releases.
        """
        folders, _, _ = self._state()
        releases = folders.collection_releases()
        if not releases:
            raise EmptyCollectionError(
                "No releases in the collection to pick from"
            )
        return (rng or _random).choice(releases)

    def profile(self) -> Profile:
        """
        Return the profile stored by the last sync.

        Raises:
            NotInitializedError: If no sync has ever completed.
        """
        _, _, profile = self._state()
        if profile is None:
            raise NotInitializedError(
                "No profile stored: run 'discshelf update' first"
            )
        return profile

    def folder_names(self) -> list[str]:
        """Collection folder names in display order."""
        folders, _, _ = self._state()
        return folders.collection_names()

    def folder(self, name: str) -> list[Release]:
        """Releases of one folder (Folders.display_name("Wantlist") also accepted)."""
        folders, _, _ = self._state()
        if name not in folders.contents and name.lower() == "wantlist":
            name = WANTLIST_KEY
        return list(folders.contents.get(name, []))

    def listenlog(self) -> ListenLog:
        _, listenlog, _ = self._state()
        return listenlog
