"""
Data models for the record catalog.

This module defines the entities mirrored from the remote catalog and the
listening log kept locally:

    - Release: one record in the collection or wantlist
    - Folders: folder name -> ordered releases (wantlist in its own namespace)
    - Profile: remote user metadata
    - ListenLogEntry / ListenLog: chronological log of what was played

It also owns normalize(), the single definition of fuzzy equivalence used
both when a release is ingested and when a user query is matched.

Design Decisions:
    - Release, Profile and ListenLogEntry are frozen (immutable) dataclasses
    - Timestamps are always timezone-aware; log times are normalized to UTC
    - Models are independent of database storage format

Usage:
    from discshelf.catalog.models import Release, normalize

    release = Release.create(id=42, title="Kind of Blue", artist="Miles Davis")
    release.search_string  # "kind of blue miles davis"
"""

import bisect
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Iterable, Iterator

from discshelf.core.exceptions import RemoteDataError


# Reserved Folders key for the wantlist (disjoint from collection folder names)
WANTLIST_KEY = "__wantlist__"
WANTLIST_NAME = "Wantlist"

# Characters removed by normalization
STRIPPED_CHARACTERS = "(),*\".:!?;'"
_STRIP_TABLE = str.maketrans("", "", STRIPPED_CHARACTERS)

# Discogs disambiguates homonymous artists with a numeric suffix: "Nirvana (2)"
_ARTIST_SUFFIX_RE = re.compile(r"\s+\(\d+\)$")


def normalize_query(text: str) -> str:
    """
    Normalize free text for substring comparison.

    Lowercases the text and strips the fixed punctuation set
    ( ) , * " . : ! ? ; '

    Args:
        text: Raw text, e.g. a user query like "ABBEY, ROAD!".

    Returns:
        Normalized text, e.g. "abbey road". Applying the function
        twice gives the same result as applying it once.
    """
    return text.lower().translate(_STRIP_TABLE)


def normalize(raw_title: str, raw_artist: str) -> str:
    """
    Build the search string of a release from its title and artist.

    Args:
        raw_title: Release title as supplied by the remote catalog.
        raw_artist: Artist display name.

    Returns:
        normalize_query() applied to "{title} {artist}".

    Example:
        normalize("Abbey Road", "The Beatles")  # "abbey road the beatles"
    """
    return normalize_query(f"{raw_title} {raw_artist}")


def parse_timestamp(value: str) -> datetime:
    """
    Parse an ISO-8601 timestamp into an aware datetime.

    Timestamps without an offset are taken as UTC. A trailing "Z" is accepted.

    Raises:
        ValueError: If value is not a valid ISO-8601 timestamp.
    """
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    moment = datetime.fromisoformat(value)
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment


def strip_artist_suffix(name: str) -> str:
    """Remove the Discogs numeric disambiguation suffix from an artist name."""
    return _ARTIST_SUFFIX_RE.sub("", name.strip())


def _join_artists(artists: list[dict[str, Any]]) -> str:
    parts: list[str] = []
    for index, artist in enumerate(artists):
        parts.append(strip_artist_suffix(artist.get("anv") or artist["name"]))
        if index < len(artists) - 1:
            join = (artist.get("join") or "").strip()
            if not join or join == ",":
                parts.append(", ")
            else:
                parts.append(f" {join} ")
    return "".join(parts)


@dataclass(frozen=True)
class Release:
    """
    Immutable representation of a release in the catalog.

    Attributes:
        id: Remote-assigned release ID. Identity of the record: two Releases
            with the same id are the same logical release.
            Example: 1201609

        search_string: normalize(title, artist), computed at ingest time.
                       Example: "kind of blue miles davis"

        title: Release title.
               Example: "Kind of Blue"

        artist: Artist display name (several artists joined).
                Example: "Miles Davis"

        year: Release year, 0 when the remote catalog does not know it.

        labels: Label names in remote order.
                Example: ("Columbia",)

        formats: Format names in remote order.
                 Example: ("Vinyl",)

        date_added: When the release was added to the folder remotely.
                    Supplied by the remote source, never modified locally.

    Class Methods:
        create: Build a Release computing its search string.
        from_discogs_api: Build a Release from a Discogs collection/wantlist item.
    """

    id: int
    search_string: str
    title: str
    artist: str
    year: int
    labels: tuple[str, ...]
    formats: tuple[str, ...]
    date_added: datetime

    @classmethod
    def create(
        cls,
        id: int,
        title: str,
        artist: str,
        year: int = 0,
        labels: Iterable[str] = (),
        formats: Iterable[str] = (),
        date_added: datetime | None = None
    ) -> "Release":
        """
        Create a Release, deriving search_string with normalize().

        If date_added is omitted the current UTC time is used.
        """
        return cls(
            id=int(id),
            search_string=normalize(title, artist),
            title=title,
            artist=artist,
            year=int(year or 0),
            labels=tuple(labels),
            formats=tuple(formats),
            date_added=date_added or datetime.now(timezone.utc),
        )

    @classmethod
    def from_discogs_api(cls, item: dict[str, Any]) -> "Release":
        """
        Create a Release from a Discogs collection or wantlist item.

        Args:
            item: One element of the "releases" (collection) or "wants"
                  (wantlist) array. Both share the shape:
                  {
                      "id": 1201609,
                      "date_added": "2019-08-05T14:02:11-07:00",
                      "basic_information": {
                          "title": "Kind Of Blue",
                          "year": 1959,
                          "artists": [{"name": "Miles Davis", "join": ""}],
                          "labels": [{"name": "Columbia"}],
                          "formats": [{"name": "Vinyl", "qty": "1"}]
                      }
                  }

        Returns:
            Release with search_string computed.

        Raises:
            RemoteDataError: If required fields are missing or malformed.
        """
        try:
            basic = item["basic_information"]
            artists = basic.get("artists") or []
            return cls.create(
                id=item.get("id", basic.get("id")),
                title=basic["title"],
                artist=_join_artists(artists),
                year=basic.get("year") or 0,
                labels=[label["name"] for label in basic.get("labels") or []],
                formats=[fmt["name"] for fmt in basic.get("formats") or []],
                date_added=parse_timestamp(item["date_added"]),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise RemoteDataError(
                f"Malformed release item: {e!r}",
                details={"item_id": item.get("id") if isinstance(item, dict) else None,
                         "original_error": str(e)}
            ) from e


@dataclass(frozen=True)
class Profile:
    """
    Remote user metadata, a read-only mirror refreshed with every sync.

    Attributes:
        username: Remote account name.
        real_name: Display name, may be empty.
        registered: Account creation time.
        listings: Number of marketplace listings.
        collection: Number of releases in the collection.
        wantlist: Number of releases in the wantlist.
        rated: Number of releases rated.
        average_rating: Average rating given by the user.
    """

    username: str
    real_name: str
    registered: datetime
    listings: int
    collection: int
    wantlist: int
    rated: int
    average_rating: float

    @classmethod
    def from_discogs_api(cls, data: dict[str, Any]) -> "Profile":
        """
        Create a Profile from the Discogs /users/{username} response.

        Raises:
            RemoteDataError: If required fields are missing or malformed.
        """
        try:
            return cls(
                username=data["username"],
                real_name=data.get("name") or "",
                registered=parse_timestamp(data["registered"]),
                listings=int(data.get("num_for_sale") or 0),
                collection=int(data.get("num_collection") or 0),
                wantlist=int(data.get("num_wantlist") or 0),
                rated=int(data.get("releases_rated") or 0),
                average_rating=float(data.get("rating_avg") or 0.0),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise RemoteDataError(
                f"Malformed profile response: {e!r}",
                details={"original_error": str(e)}
            ) from e


@dataclass
class Folders:
    """
    Folder name -> ordered releases, as of the last sync.

    Collection folders are keyed by their remote names. The wantlist is
    stored under WANTLIST_KEY so that it never collides with a collection
    folder. A release appears at most once per folder; adding an id that
    is already present keeps the first occurrence.
    """

    contents: dict[str, list[Release]] = field(default_factory=dict)
    _seen: dict[str, set[int]] = field(default_factory=dict, repr=False, compare=False)

    def ensure_folder(self, folder: str) -> list[Release]:
        """Return the release list for folder, creating an empty one if needed."""
        return self.contents.setdefault(folder, [])

    def add(self, folder: str, release: Release) -> bool:
        """
        Append a release to a folder.

        Returns:
            True if added, False if the folder already held that release id.
        """
        releases = self.ensure_folder(folder)
        seen = self._seen.setdefault(folder, {r.id for r in releases})
        if release.id in seen:
            return False
        seen.add(release.id)
        releases.append(release)
        return True

    def collection_names(self) -> list[str]:
        """Collection folder names in lexicographic order (wantlist excluded)."""
        return sorted(name for name in self.contents if name != WANTLIST_KEY)

    def collection_releases(self) -> list[Release]:
        """All collection releases, folders in name order, each in stored order."""
        return [
            release
            for name in self.collection_names()
            for release in self.contents[name]
        ]

    @property
    def wantlist(self) -> list[Release]:
        return self.contents.get(WANTLIST_KEY, [])

    def total_releases(self) -> int:
        return sum(len(self.contents[name]) for name in self.collection_names())

    @staticmethod
    def display_name(folder: str) -> str:
        return WANTLIST_NAME if folder == WANTLIST_KEY else folder

    @staticmethod
    def collection_key(name: str) -> str:
        """
        Folders key for a remote collection folder.

        A remote folder literally named like WANTLIST_KEY is stored under
        a suffixed name so it cannot merge into the wantlist.
        """
        if name == WANTLIST_KEY:
            return f"{name} (collection)"
        return name


@dataclass(frozen=True)
class ListenLogEntry:
    """
    A single listen event.

    Attributes:
        id: ID of the release listened to. Not validated against Folders.
        title: Copy of the release title, so the entry stays meaningful
               after the release leaves the collection.
        time: When the listen happened. Must be timezone-aware;
              normalized to UTC.

    Raises:
        ValueError: If time is a naive datetime.
    """

    id: int
    title: str
    time: datetime

    def __post_init__(self) -> None:
        if self.time.tzinfo is None or self.time.utcoffset() is None:
            raise ValueError(f"Listen time must be timezone-aware: {self.time!r}")
        object.__setattr__(self, "time", self.time.astimezone(timezone.utc))


class ListenLog:
    """
    Chronological log of listens, keyed by timestamp.

    Iteration always follows key order (oldest first), whatever order the
    entries were added in. Keys are unique; adding an entry whose timestamp
    is already present replaces the earlier one (last write wins).

    Example:
        log = ListenLog()
        log.add(ListenLogEntry(42, "Kind of Blue", t2))
        log.add(ListenLogEntry(7, "Abbey Road", t1))
        list(log.items())  # [(t1, "Abbey Road"), (t2, "Kind of Blue")]
    """

    def __init__(self, entries: Iterable[ListenLogEntry] = ()) -> None:
        self._entries: dict[datetime, ListenLogEntry] = {}
        self._keys: list[datetime] = []
        for entry in entries:
            self.add(entry)

    def add(self, entry: ListenLogEntry) -> bool:
        """
        Insert an entry in chronological position.

        Returns:
            True if an entry with the same timestamp was replaced.
        """
        replaced = entry.time in self._entries
        if not replaced:
            bisect.insort(self._keys, entry.time)
        self._entries[entry.time] = entry
        return replaced

    def __len__(self) -> int:
        return len(self._keys)

    def __iter__(self) -> Iterator[datetime]:
        return iter(list(self._keys))

    def __contains__(self, time: object) -> bool:
        return time in self._entries

    def __getitem__(self, time: datetime) -> str:
        return self._entries[time].title

    def items(self) -> Iterator[tuple[datetime, str]]:
        """(timestamp, title) pairs in chronological order."""
        for key in list(self._keys):
            yield key, self._entries[key].title

    def entries(self) -> Iterator[ListenLogEntry]:
        """Full entries in chronological order."""
        for key in list(self._keys):
            yield self._entries[key]

    def recent(self, limit: int) -> list[ListenLogEntry]:
        """The last `limit` entries, still oldest first."""
        if limit <= 0:
            return []
        return [self._entries[key] for key in self._keys[-limit:]]
