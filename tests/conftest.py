"""Test configuration and fixtures"""

import tempfile
from datetime import datetime, timezone
from pathlib import Path

import pytest

from discshelf.catalog.models import Folders, Profile, Release
from discshelf.core.database import Database
from discshelf.discogs.client import RemoteCatalog


def utc(*args) -> datetime:
    """Shorthand for an aware UTC datetime."""
    return datetime(*args, tzinfo=timezone.utc)


def make_release(id, title, artist, year=0, labels=(), formats=("Vinyl",), date_added=None):
    return Release.create(
        id=id,
        title=title,
        artist=artist,
        year=year,
        labels=labels,
        formats=formats,
        date_added=date_added or utc(2020, 1, 1, 12, 0, 0),
    )


def make_profile(username="johndoe", collection=0, wantlist=0):
    return Profile(
        username=username,
        real_name="John Doe",
        registered=utc(2012, 8, 15, 21, 13, 36),
        listings=0,
        collection=collection,
        wantlist=wantlist,
        rated=4,
        average_rating=4.5,
    )


class FakeRemote(RemoteCatalog):
    """
    Scripted RemoteCatalog.

    Args:
        profile: Profile returned by fetch_profile().
        folders: Folder name -> list of pages (each a list of Releases).
        wantlist: List of wantlist pages.
        failures: Call key -> exceptions raised, one per call, before
                  the call succeeds. Keys: ("profile",), ("folders",),
                  ("collection", name, page), ("wantlist", page).
    """

    def __init__(self, profile=None, folders=None, wantlist=None, failures=None):
        self.profile = profile or make_profile()
        self.folders = folders or {}
        self.wantlist = wantlist or []
        self.failures = {key: list(errors) for key, errors in (failures or {}).items()}
        self.calls = []

    def _call(self, key):
        self.calls.append(key)
        pending = self.failures.get(key)
        if pending:
            raise pending.pop(0)

    @staticmethod
    def _page(pages, page):
        if not pages:
            return [], False
        return list(pages[page - 1]), page < len(pages)

    def fetch_profile(self):
        self._call(("profile",))
        return self.profile

    def fetch_folders(self):
        self._call(("folders",))
        return list(self.folders)

    def fetch_collection_page(self, folder, page):
        self._call(("collection", folder, page))
        return self._page(self.folders[folder], page)

    def fetch_wantlist_page(self, page):
        self._call(("wantlist", page))
        return self._page(self.wantlist, page)


@pytest.fixture
def temp_dir():
    """Create temporary directory for tests"""
    with tempfile.TemporaryDirectory() as temp_dir:
        yield Path(temp_dir)


@pytest.fixture
def database(temp_dir):
    """Store in a not-yet-existing data directory"""
    return Database(temp_dir / "data" / "discshelf.db")


@pytest.fixture
def kind_of_blue():
    return make_release(42, "Kind of Blue", "Miles Davis", 1959, labels=("Columbia",))


@pytest.fixture
def sample_folders(kind_of_blue):
    """A small catalog: two collection folders and a wantlist"""
    folders = Folders()
    folders.add("Collection", kind_of_blue)
    folders.add("Collection", make_release(7, "Abbey Road", "The Beatles", 1969, labels=("Apple",)))
    folders.add("Jazz", make_release(9, "A Love Supreme", "John Coltrane", 1965, labels=("Impulse!",)))
    folders.add("__wantlist__", make_release(11, "Blue Train", "John Coltrane", 1957))
    return folders


@pytest.fixture
def synced_database(database, sample_folders):
    """Store after one successful sync"""
    database.commit(sample_folders, make_profile(collection=3, wantlist=1))
    return database


@pytest.fixture
def sample_collection_item():
    """One element of a Discogs collection page"""
    return {
        "id": 1201609,
        "instance_id": 123456,
        "date_added": "2019-08-05T14:02:11-07:00",
        "rating": 5,
        "basic_information": {
            "id": 1201609,
            "title": "Kind Of Blue",
            "year": 1959,
            "artists": [{"name": "Miles Davis", "anv": "", "join": "", "id": 23755}],
            "labels": [{"name": "Columbia", "catno": "CL 1355"}],
            "formats": [{"name": "Vinyl", "qty": "1", "descriptions": ["LP", "Album", "Mono"]}],
        },
    }


@pytest.fixture
def sample_profile_data():
    """Discogs /users/{username} response"""
    return {
        "id": 1578108,
        "username": "johndoe",
        "name": "John Doe",
        "registered": "2012-08-15T21:13:36-07:00",
        "num_for_sale": 2,
        "num_collection": 120,
        "num_wantlist": 14,
        "releases_rated": 30,
        "rating_avg": 4.17,
    }


@pytest.fixture
def sample_folders_data():
    """Discogs /users/{username}/collection/folders response"""
    return {
        "folders": [
            {"id": 0, "name": "All", "count": 3},
            {"id": 1, "name": "Uncategorized", "count": 2},
            {"id": 4821, "name": "Jazz", "count": 1},
        ]
    }
