"""
SQLite local store for discshelf.

The whole local state lives in a single SQLite file: the folders and
releases mirrored by the last successful sync, the remote profile, and the
listen log the user builds over time.

Schema:
    schema_version:   Single row holding DATABASE_VERSION
    folders:          One row per folder (empty folders included)
    releases:         One row per (kind, folder, position)
    profile:          Single row with the remote user metadata
    listenlog:        One row per listen, keyed by UTC ISO-8601 time

Write Model:
    - commit() never touches the live file in place. A complete new database
      is built in a temporary file next to it (the current listen log copied
      over), fsynced, and swapped in with os.replace(). A failed commit
      leaves the previous file byte-identical.
    - append_listen() is a single INSERT OR REPLACE transaction on the live
      file. The rollback journal (not WAL) is kept so that the store is
      always exactly one file.

Usage:
    db = Database(data_dir / "discshelf.db")

    folders, listenlog, profile = db.load()
    db.commit(new_folders, new_profile)
    db.append_listen(ListenLogEntry(42, "Kind of Blue", utc_now()))
"""

import json
import os
import sqlite3
import tempfile
import threading
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Generator

from discshelf.catalog.models import (
    Folders,
    ListenLog,
    ListenLogEntry,
    Profile,
    Release,
    WANTLIST_KEY,
)
from discshelf.core.exceptions import PersistenceError
from discshelf.core.logger import get_logger
from discshelf.utils import ensure_directory


logger = get_logger(__name__)


DATABASE_VERSION = 1

KIND_COLLECTION = "collection"
KIND_WANTLIST = "wantlist"


_SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS schema_version (
    version INTEGER PRIMARY KEY
);

CREATE TABLE IF NOT EXISTS releases (
    kind TEXT NOT NULL,          -- 'collection' or 'wantlist'
    folder TEXT NOT NULL,
    position INTEGER NOT NULL,
    release_id INTEGER NOT NULL,
    search_string TEXT NOT NULL,
    title TEXT NOT NULL,
    artist TEXT NOT NULL,
    year INTEGER NOT NULL,
    labels TEXT NOT NULL,        -- JSON array
    formats TEXT NOT NULL,       -- JSON array
    date_added TEXT NOT NULL,
    PRIMARY KEY (kind, folder, position)
);

CREATE TABLE IF NOT EXISTS folders (
    kind TEXT NOT NULL,
    name TEXT NOT NULL,
    PRIMARY KEY (kind, name)
);

CREATE TABLE IF NOT EXISTS profile (
    id INTEGER PRIMARY KEY CHECK (id = 1),
    username TEXT NOT NULL,
    real_name TEXT NOT NULL,
    registered TEXT NOT NULL,
    listings INTEGER NOT NULL,
    collection INTEGER NOT NULL,
    wantlist INTEGER NOT NULL,
    rated INTEGER NOT NULL,
    average_rating REAL NOT NULL
);

CREATE TABLE IF NOT EXISTS listenlog (
    time TEXT PRIMARY KEY,       -- UTC, microsecond precision
    release_id INTEGER NOT NULL,
    title TEXT NOT NULL
);
"""


def _time_key(moment: datetime) -> str:
    """Encode a listen time so that lexical order is chronological order."""
    return moment.astimezone(timezone.utc).isoformat(timespec="microseconds")


class Database:
    """
    Durable holder of Folders, ListenLog and Profile.

    Each operation opens its own short-lived connection, since commit()
    swaps the underlying file. All public methods acquire self._lock.

    Attributes:
        db_path: Path of the store file.
        modified: True when persisted content changed since the last load().
                  Consumers holding an earlier snapshot should reload.
    """

    def __init__(self, db_path: Path) -> None:
        self.db_path = Path(db_path)
        self.modified = False
        self._lock = threading.Lock()

    @contextmanager
    def _get_connection(self, path: Path | None = None) -> Generator[sqlite3.Connection, None, None]:
        conn = sqlite3.connect(str(path or self.db_path), timeout=30.0)
        conn.row_factory = sqlite3.Row
        try:
            yield conn
        finally:
            conn.close()

    def _ensure_parent(self) -> Path:
        try:
            return ensure_directory(self.db_path.parent)
        except OSError as e:
            raise PersistenceError(
                f"Cannot create data directory: {self.db_path.parent}",
                details={"path": str(self.db_path.parent), "original_error": str(e)}
            ) from e

    def _init_schema(self, conn: sqlite3.Connection) -> None:
        conn.executescript(_SCHEMA_SQL)
        row = conn.execute("SELECT version FROM schema_version LIMIT 1").fetchone()
        if row is None:
            conn.execute("INSERT INTO schema_version (version) VALUES (?)", (DATABASE_VERSION,))
            conn.commit()
        elif row[0] != DATABASE_VERSION:
            raise PersistenceError(
                f"Database version mismatch: expected {DATABASE_VERSION}, got {row[0]}",
                details={"expected": DATABASE_VERSION, "actual": row[0]}
            )

    def _check_version(self, conn: sqlite3.Connection) -> None:
        row = conn.execute("SELECT version FROM schema_version LIMIT 1").fetchone()
        if row is None or row[0] != DATABASE_VERSION:
            raise PersistenceError(
                f"Unsupported store version: {row[0] if row else None}",
                details={"expected": DATABASE_VERSION, "path": str(self.db_path)}
            )

    # =========================================================================
    # Loading
    # =========================================================================

    def load(self) -> tuple[Folders, ListenLog, Profile | None]:
        """
        Reconstruct state from the persisted file.

        A missing file is the normal first-run case and yields empty state.
        A corrupt file (not a database, wrong schema version, undecodable
        rows) is logged as a warning and also yields empty state. commit()
        refuses to replace such a file, so its listen log is never lost.

        Returns:
            Tuple of (folders, listenlog, profile). profile is None if no
            sync has ever completed.
        """
        with self._lock:
            self.modified = False

            if not self.db_path.exists():
                logger.debug(f"No store at {self.db_path}, starting empty")
                return Folders(), ListenLog(), None

            try:
                with self._get_connection() as conn:
                    self._check_version(conn)
                    folders = self._read_folders(conn)
                    listenlog = self._read_listenlog(conn)
                    profile = self._read_profile(conn)
            except (sqlite3.Error, PersistenceError, ValueError, KeyError, TypeError) as e:
                logger.warning(f"Store {self.db_path} is unreadable, starting empty: {e}")
                return Folders(), ListenLog(), None

            return folders, listenlog, profile

    def _read_folders(self, conn: sqlite3.Connection) -> Folders:
        folders = Folders()
        for row in conn.execute("SELECT kind, name FROM folders ORDER BY kind, name"):
            folders.ensure_folder(self._folder_key(row["kind"], row["name"]))

        cursor = conn.execute("""
            SELECT * FROM releases ORDER BY kind, folder, position
        """)
        for row in cursor:
            folders.add(self._folder_key(row["kind"], row["folder"]), self._deserialize_release(row))
        return folders

    def _read_listenlog(self, conn: sqlite3.Connection) -> ListenLog:
        cursor = conn.execute("SELECT time, release_id, title FROM listenlog ORDER BY time")
        return ListenLog(
            ListenLogEntry(
                id=row["release_id"],
                title=row["title"],
                time=datetime.fromisoformat(row["time"]),
            )
            for row in cursor
        )

    def _read_profile(self, conn: sqlite3.Connection) -> Profile | None:
        row = conn.execute("SELECT * FROM profile WHERE id = 1").fetchone()
        if row is None:
            return None
        return Profile(
            username=row["username"],
            real_name=row["real_name"],
            registered=datetime.fromisoformat(row["registered"]),
            listings=row["listings"],
            collection=row["collection"],
            wantlist=row["wantlist"],
            rated=row["rated"],
            average_rating=row["average_rating"],
        )

    @staticmethod
    def _folder_key(kind: str, name: str) -> str:
        if kind == KIND_WANTLIST:
            return WANTLIST_KEY
        if kind != KIND_COLLECTION:
            raise ValueError(f"Unknown release kind: {kind!r}")
        return name

    @staticmethod
    def _deserialize_release(row: sqlite3.Row) -> Release:
        return Release(
            id=row["release_id"],
            search_string=row["search_string"],
            title=row["title"],
            artist=row["artist"],
            year=row["year"],
            labels=tuple(json.loads(row["labels"])),
            formats=tuple(json.loads(row["formats"])),
            date_added=datetime.fromisoformat(row["date_added"]),
        )

    # =========================================================================
    # Full Replace
    # =========================================================================

    def commit(self, folders: Folders, profile: Profile) -> None:
        """
        Atomically replace the persisted Folders and Profile.

        The listen log currently on disk is carried over unchanged.

        Args:
            folders: Complete new folder structure (collection + wantlist).
            profile: Remote profile fetched in the same refresh.

        Raises:
            PersistenceError: If the new file cannot be built or swapped in.
                              The previous file is untouched in that case.
                              Also raised, before anything is written, when
                              the existing listen log cannot be read.
        """
        with self._lock:
            directory = self._ensure_parent()
            listenlog = self._read_existing_listenlog()

            try:
                fd, tmp_name = tempfile.mkstemp(
                    prefix=".discshelf-", suffix=".tmp", dir=str(directory)
                )
                os.close(fd)
            except OSError as e:
                raise PersistenceError(
                    f"Cannot create temporary store in {directory}",
                    details={"path": str(directory), "original_error": str(e)}
                ) from e

            tmp_path = Path(tmp_name)
            try:
                with self._get_connection(tmp_path) as conn:
                    self._init_schema(conn)
                    with conn:
                        self._write_folders(conn, folders)
                        self._write_profile(conn, profile)
                        self._write_listenlog(conn, listenlog)

                with open(tmp_path, "rb+") as f:
                    os.fsync(f.fileno())
                os.replace(tmp_path, self.db_path)
            except (sqlite3.Error, OSError) as e:
                tmp_path.unlink(missing_ok=True)
                raise PersistenceError(
                    f"Failed to commit store: {e}",
                    details={"path": str(self.db_path), "original_error": str(e)}
                ) from e
            except BaseException:
                tmp_path.unlink(missing_ok=True)
                raise

            self.modified = True
            logger.debug(
                f"Committed {folders.total_releases()} collection and "
                f"{len(folders.wantlist)} wantlist releases to {self.db_path}"
            )

    def _read_existing_listenlog(self) -> ListenLog:
        """
        Read the listen log that commit() must carry over.

        Raises:
            PersistenceError: If the current store exists but its listen log
                              cannot be read in full.
        """
        if not self.db_path.exists():
            return ListenLog()
        try:
            with self._get_connection() as conn:
                self._check_version(conn)
                return self._read_listenlog(conn)
        except (sqlite3.Error, PersistenceError, ValueError, KeyError, TypeError) as e:
            raise PersistenceError(
                f"Cannot read the listen log in {self.db_path}, refusing to replace the store "
                f"(move the file aside to start over): {e}",
                details={"path": str(self.db_path), "original_error": str(e)}
            ) from e

    def _write_folders(self, conn: sqlite3.Connection, folders: Folders) -> None:
        for key, releases in folders.contents.items():
            if key == WANTLIST_KEY:
                kind, name = KIND_WANTLIST, ""
            else:
                kind, name = KIND_COLLECTION, key

            conn.execute("INSERT INTO folders (kind, name) VALUES (?, ?)", (kind, name))
            conn.executemany("""
                INSERT INTO releases (
                    kind, folder, position, release_id, search_string, title,
                    artist, year, labels, formats, date_added
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """, [
                (
                    kind, name, position, release.id, release.search_string,
                    release.title, release.artist, release.year,
                    json.dumps(list(release.labels)), json.dumps(list(release.formats)),
                    release.date_added.isoformat(),
                )
                for position, release in enumerate(releases)
            ])

    def _write_profile(self, conn: sqlite3.Connection, profile: Profile) -> None:
        conn.execute("""
            INSERT INTO profile (
                id, username, real_name, registered, listings,
                collection, wantlist, rated, average_rating
            ) VALUES (1, ?, ?, ?, ?, ?, ?, ?, ?)
        """, (
            profile.username, profile.real_name, profile.registered.isoformat(),
            profile.listings, profile.collection, profile.wantlist,
            profile.rated, profile.average_rating,
        ))

    def _write_listenlog(self, conn: sqlite3.Connection, listenlog: ListenLog) -> None:
        conn.executemany(
            "INSERT INTO listenlog (time, release_id, title) VALUES (?, ?, ?)",
            [(_time_key(entry.time), entry.id, entry.title) for entry in listenlog.entries()]
        )

    # =========================================================================
    # Listen Log
    # =========================================================================

    def append_listen(self, entry: ListenLogEntry) -> bool:
        """
        Persist one listen.

        Creates the store file if absent. On a timestamp collision the new
        entry overwrites the old one (last write wins).

        Returns:
            True if an existing entry with the same timestamp was replaced.

        Raises:
            PersistenceError: If the entry cannot be written.
        """
        key = _time_key(entry.time)

        with self._lock:
            self._ensure_parent()
            try:
                with self._get_connection() as conn:
                    self._init_schema(conn)
                    with conn:
                        replaced = conn.execute(
                            "SELECT 1 FROM listenlog WHERE time = ?", (key,)
                        ).fetchone() is not None
                        conn.execute(
                            "INSERT OR REPLACE INTO listenlog (time, release_id, title) VALUES (?, ?, ?)",
                            (key, entry.id, entry.title)
                        )
            except sqlite3.Error as e:
                raise PersistenceError(
                    f"Failed to record listen: {e}",
                    details={"path": str(self.db_path), "original_error": str(e)}
                ) from e

            self.modified = True
            return replaced
