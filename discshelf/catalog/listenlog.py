"""
Listen logger: records what the user is playing.

Entries are written straight to the store; nothing is checked against the
current folders, since a release may have left the collection while its
listens remain meaningful through the copied title.
"""

from datetime import datetime

from discshelf.catalog.models import ListenLogEntry, Release
from discshelf.core.logger import get_logger
from discshelf.utils import utc_now


logger = get_logger(__name__)


class ListenLogger:
    """
    Append listens to the store's listen log.

    Args:
        store: A Database (anything exposing append_listen()).

    Example:
        ListenLogger(database).log(42, "Kind of Blue")
    """

    def __init__(self, store) -> None:
        self._store = store

    def log(self, release_id: int, title: str, time: datetime | None = None) -> ListenLogEntry:
        """
        Record one listen.

        Args:
            release_id: ID of the release played.
            title: Release title, copied into the entry.
            time: Timezone-aware time of the listen. Defaults to now (UTC).

        Returns:
            The persisted entry (time normalized to UTC).

        Raises:
            ValueError: If time is naive.
            PersistenceError: If the entry cannot be written.
        """
        entry = ListenLogEntry(id=release_id, title=title, time=time or utc_now())
        if self._store.append_listen(entry):
            logger.warning(
                f"A listen was already logged at {entry.time.isoformat()}; "
                f"it was replaced by {title!r}"
            )
        else:
            logger.info(f"Logged listen: {title}")
        return entry

    def log_release(self, release: Release, time: datetime | None = None) -> ListenLogEntry:
        return self.log(release.id, release.title, time)
