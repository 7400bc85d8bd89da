"""
Full-refresh synchronization of the local store with the remote catalog.

Workflow:
    1. Fetch the remote profile (no retry: failure aborts immediately)
    2. Fetch the collection folder names, then every page of every folder
    3. Fetch every page of the wantlist
    4. Commit folders and profile to the store in one atomic replace

Everything fetched in steps 1-3 is held in a new Folders structure off to
the side. Nothing reaches the store until every page has been fetched, so a
failed refresh leaves the previously committed file byte-identical. Each
refresh replaces the mirrored state entirely; there is no incremental sync.

Retry Policy:
    A failing page is attempted up to max_retries times in total, with
    exponential backoff, when the failure may be transient (RemoteDataError,
    or RemoteUnavailable flagged is_transient). Authentication errors and
    other permanent failures (e.g. HTTP 404) propagate at once. Exhausted
    retries raise RemoteUnavailable chained to the last error.

Usage:
    synchronizer = Synchronizer(database, DiscogsClient(config.discogs))
    report = synchronizer.full_refresh()
    print(f"{report.collection} releases in {report.folders} folders")
"""

import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable

from tqdm import tqdm

from discshelf.catalog.models import Folders, Release, WANTLIST_KEY
from discshelf.core.exceptions import RemoteDataError, RemoteUnavailable
from discshelf.core.logger import get_logger
from discshelf.discogs.client import RemoteCatalog
from discshelf.utils import calculate_backoff


logger = get_logger(__name__)


DEFAULT_MAX_RETRIES = 3
DEFAULT_BACKOFF = 1.0


class SyncState(Enum):
    """
    Progress of a refresh.

    IDLE -> FETCHING_PROFILE -> FETCHING_COLLECTION -> FETCHING_WANTLIST
    -> COMMITTING -> DONE, and any state -> FAILED.
    """

    IDLE = "idle"
    FETCHING_PROFILE = "fetching_profile"
    FETCHING_COLLECTION = "fetching_collection"
    FETCHING_WANTLIST = "fetching_wantlist"
    COMMITTING = "committing"
    DONE = "done"
    FAILED = "failed"


@dataclass(frozen=True)
class SyncReport:
    """
    Summary of a successful refresh.

    Attributes:
        folders: Number of collection folders mirrored.
        collection: Releases stored across collection folders.
        wantlist: Releases stored in the wantlist.
        pages: Pages fetched (collection and wantlist).
        retries: Page retries needed along the way.
    """
    folders: int
    collection: int
    wantlist: int
    pages: int
    retries: int


class Synchronizer:
    """
    Rebuilds the mirrored catalog from a RemoteCatalog.

    Args:
        store: A Database (anything exposing commit(folders, profile)).
        remote: The fetch capability.
        max_retries: Attempts per page, at least 1.
        backoff: Base backoff delay in seconds (0 disables waiting).
        sleep: Function used to wait between attempts.
        show_progress: Display a tqdm bar over fetched pages.

    Attributes:
        state: Current SyncState.
    """

    def __init__(
        self,
        store,
        remote: RemoteCatalog,
        max_retries: int = DEFAULT_MAX_RETRIES,
        backoff: float = DEFAULT_BACKOFF,
        sleep: Callable[[float], None] = time.sleep,
        show_progress: bool = False
    ) -> None:
        if max_retries < 1:
            raise ValueError("max_retries must be at least 1")
        self._store = store
        self._remote = remote
        self._max_retries = max_retries
        self._backoff = backoff
        self._sleep = sleep
        self._show_progress = show_progress
        self._pages = 0
        self._retries = 0
        self.state = SyncState.IDLE

    def full_refresh(self) -> SyncReport:
        """
        Replace the stored folders and profile with fresh remote data.

        Returns:
            SyncReport with counts of what was committed.

        Raises:
            RemoteUnavailable: Profile fetch failed, or a page kept failing.
            PersistenceError: The commit itself failed.
        """
        self.state = SyncState.IDLE
        self._pages = 0
        self._retries = 0

        try:
            return self._run()
        except BaseException:
            self.state = SyncState.FAILED
            raise

    def _run(self) -> SyncReport:
        self.state = SyncState.FETCHING_PROFILE
        logger.info("Fetching profile")
        try:
            profile = self._remote.fetch_profile()
        except RemoteDataError as e:
            raise RemoteUnavailable(
                f"Could not read the remote profile: {e.message}",
                details=e.details
            ) from e

        folders = Folders()
        with tqdm(
            desc="Syncing",
            unit="page",
            disable=not self._show_progress,
            leave=False
        ) as progress:
            self.state = SyncState.FETCHING_COLLECTION
            names = self._with_retry(self._remote.fetch_folders, "folder list")
            logger.info(f"Fetching {len(names)} collection folder(s)")
            for name in names:
                key = Folders.collection_key(name)
                if key != name:
                    logger.warning(f"Collection folder {name!r} is stored as {key!r}")
                folders.ensure_folder(key)
                self._fetch_pages(
                    folders,
                    key,
                    lambda page, name=name: self._remote.fetch_collection_page(name, page),
                    f"folder '{name}'",
                    progress
                )

            self.state = SyncState.FETCHING_WANTLIST
            logger.info("Fetching wantlist")
            folders.ensure_folder(WANTLIST_KEY)
            self._fetch_pages(
                folders,
                WANTLIST_KEY,
                self._remote.fetch_wantlist_page,
                "wantlist",
                progress
            )

        self.state = SyncState.COMMITTING
        self._store.commit(folders, profile)
        self.state = SyncState.DONE

        report = SyncReport(
            folders=len(folders.collection_names()),
            collection=folders.total_releases(),
            wantlist=len(folders.wantlist),
            pages=self._pages,
            retries=self._retries,
        )
        logger.info(
            f"Sync complete: {report.collection} releases in {report.folders} folder(s), "
            f"{report.wantlist} in wantlist"
        )
        return report

    def _fetch_pages(
        self,
        folders: Folders,
        key: str,
        fetch_page: Callable[[int], tuple[list[Release], bool]],
        description: str,
        progress: tqdm
    ) -> None:
        page = 1
        has_more = True
        while has_more:
            releases, has_more = self._with_retry(
                lambda: fetch_page(page), f"{description} page {page}"
            )
            for release in releases:
                if not folders.add(key, release):
                    logger.debug(f"Duplicate release {release.id} in {description} ignored")
            self._pages += 1
            progress.update(1)
            logger.debug(f"Fetched {description} page {page} ({len(releases)} releases)")
            page += 1

    def _with_retry(self, fetch: Callable, description: str):
        last_error: Exception | None = None

        for attempt in range(self._max_retries):
            try:
                return fetch()
            except RemoteUnavailable as e:
                if not e.is_transient:
                    raise
                last_error = e
            except RemoteDataError as e:
                last_error = e

            if attempt + 1 < self._max_retries:
                delay = self._retry_delay(attempt, last_error)
                logger.warning(
                    f"Fetching {description} failed ({last_error}); "
                    f"retrying in {delay:.1f}s ({attempt + 2}/{self._max_retries})"
                )
                self._retries += 1
                self._sleep(delay)

        raise RemoteUnavailable(
            f"Giving up on {description} after {self._max_retries} attempt(s): {last_error}",
            details={"description": description, "attempts": self._max_retries},
            is_transient=getattr(last_error, "is_transient", True)
        ) from last_error

    def _retry_delay(self, attempt: int, error: Exception | None) -> float:
        delay = calculate_backoff(attempt, self._backoff)
        retry_after = getattr(error, "details", {}).get("retry_after")
        if retry_after and self._backoff > 0:
            try:
                delay = max(delay, float(retry_after))
            except ValueError:
                pass
        return delay
