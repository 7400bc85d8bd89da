"""Test catalog entity models"""

from datetime import datetime, timedelta, timezone

import pytest

from conftest import make_release, utc
from discshelf.catalog.models import (
    WANTLIST_KEY,
    Folders,
    ListenLog,
    ListenLogEntry,
    Profile,
    Release,
    normalize,
    normalize_query,
    strip_artist_suffix,
)
from discshelf.core.exceptions import RemoteDataError


class TestNormalize:
    """Test search string normalization"""

    def test_lowercases_and_strips_punctuation(self):
        """Test the fixed punctuation set is removed"""
        assert normalize_query("ABBEY, ROAD!") == "abbey road"
        assert normalize_query("(What's) \"The\" Story*: Morning Glory?;.") == "whats the story morning glory"

    def test_keeps_other_characters(self):
        """Test characters outside the set survive"""
        assert normalize_query("AC/DC - Back in Black & more") == "ac/dc - back in black & more"

    def test_idempotent(self):
        """Test applying normalization twice changes nothing"""
        for text in ["ABBEY, ROAD!", "Sgt. Pepper's", "", "  spaced  ", "Déjà Vu"]:
            once = normalize_query(text)
            assert normalize_query(once) == once

    def test_normalize_joins_title_and_artist(self):
        """Test the search string covers title and artist"""
        assert normalize("Abbey Road", "The Beatles") == "abbey road the beatles"

    def test_substring_completeness(self):
        """Test partial and decorated queries match"""
        search_string = normalize("Abbey Road", "The Beatles")
        assert normalize_query("abbey") in search_string
        assert normalize_query("ABBEY, ROAD!") in search_string
        assert normalize_query("beatles") in search_string


class TestRelease:
    """Test Release construction"""

    def test_create_computes_search_string(self):
        """Test create computes search string"""
        release = make_release(42, "Kind of Blue", "Miles Davis", 1959)
        assert release.search_string == "kind of blue miles davis"
        assert release.year == 1959

    def test_release_is_frozen(self):
        """Test release is frozen"""
        release = make_release(42, "Kind of Blue", "Miles Davis")
        with pytest.raises(AttributeError):
            release.title = "Other"

    def test_from_discogs_api(self, sample_collection_item):
        """Test parsing a collection item"""
        release = Release.from_discogs_api(sample_collection_item)

        assert release.id == 1201609
        assert release.title == "Kind Of Blue"
        assert release.artist == "Miles Davis"
        assert release.year == 1959
        assert release.labels == ("Columbia",)
        assert release.formats == ("Vinyl",)
        assert release.search_string == "kind of blue miles davis"
        assert release.date_added == datetime(2019, 8, 5, 21, 2, 11, tzinfo=timezone.utc)

    def test_from_discogs_api_joins_artists(self, sample_collection_item):
        """Test multiple artists and numeric suffix removal"""
        sample_collection_item["basic_information"]["artists"] = [
            {"name": "Nirvana (2)", "join": "&"},
            {"name": "Someone Else", "join": ","},
            {"name": "Third (12)", "join": ""},
        ]
        release = Release.from_discogs_api(sample_collection_item)
        assert release.artist == "Nirvana & Someone Else, Third"

    def test_from_discogs_api_unknown_year(self, sample_collection_item):
        """Test from discogs api unknown year"""
        sample_collection_item["basic_information"]["year"] = 0
        assert Release.from_discogs_api(sample_collection_item).year == 0
        del sample_collection_item["basic_information"]["year"]
        assert Release.from_discogs_api(sample_collection_item).year == 0

    def test_from_discogs_api_malformed(self, sample_collection_item):
        """Test missing fields raise RemoteDataError"""
        del sample_collection_item["basic_information"]["title"]
        with pytest.raises(RemoteDataError):
            Release.from_discogs_api(sample_collection_item)

        with pytest.raises(RemoteDataError):
            Release.from_discogs_api({"id": 1, "date_added": "not a date", "basic_information": {"title": "x"}})

    def test_strip_artist_suffix(self):
        """Test strip artist suffix"""
        assert strip_artist_suffix("Nirvana (2)") == "Nirvana"
        assert strip_artist_suffix("Boards of Canada") == "Boards of Canada"
        assert strip_artist_suffix("Area (Band)") == "Area (Band)"


class TestProfile:
    """Test Profile parsing"""

    def test_from_discogs_api(self, sample_profile_data):
        """Test from discogs api"""
        profile = Profile.from_discogs_api(sample_profile_data)

        assert profile.username == "johndoe"
        assert profile.real_name == "John Doe"
        assert profile.listings == 2
        assert profile.collection == 120
        assert profile.wantlist == 14
        assert profile.rated == 30
        assert profile.average_rating == pytest.approx(4.17)
        assert profile.registered.utcoffset() == timedelta(hours=-7)

    def test_from_discogs_api_missing_username(self, sample_profile_data):
        """Test from discogs api missing username"""
        del sample_profile_data["username"]
        with pytest.raises(RemoteDataError):
            Profile.from_discogs_api(sample_profile_data)


class TestFolders:
    """Test Folders helpers"""

    def test_duplicate_id_keeps_first_position(self):
        """Test duplicate id keeps first position"""
        folders = Folders()
        first = make_release(1, "First", "A")
        assert folders.add("Collection", first)
        assert folders.add("Collection", make_release(2, "Second", "B"))
        assert not folders.add("Collection", make_release(1, "First again", "A"))

        assert [r.title for r in folders.contents["Collection"]] == ["First", "Second"]

    def test_same_id_allowed_in_different_folders(self):
        """Test same id allowed in different folders"""
        folders = Folders()
        release = make_release(1, "First", "A")
        assert folders.add("Collection", release)
        assert folders.add("Jazz", release)
        assert folders.total_releases() == 2

    def test_wantlist_is_separate(self, sample_folders):
        """Test wantlist is separate"""
        assert sample_folders.collection_names() == ["Collection", "Jazz"]
        assert [r.id for r in sample_folders.wantlist] == [11]
        assert 11 not in [r.id for r in sample_folders.collection_releases()]
        assert sample_folders.total_releases() == 3

    def test_collection_releases_in_folder_order(self):
        """Test collection releases in folder order"""
        folders = Folders()
        folders.add("Zeta", make_release(1, "Z1", "A"))
        folders.add("Alpha", make_release(2, "A1", "A"))
        folders.add("Alpha", make_release(3, "A2", "A"))
        assert [r.id for r in folders.collection_releases()] == [2, 3, 1]

    def test_wantlist_named_folder_does_not_collide(self):
        """Test a user folder literally named Wantlist stays in the collection"""
        folders = Folders()
        folders.add("Wantlist", make_release(1, "Mine", "A"))
        folders.add(WANTLIST_KEY, make_release(2, "Wanted", "B"))
        assert folders.collection_names() == ["Wantlist"]
        assert [r.id for r in folders.wantlist] == [2]
        assert Folders.display_name(WANTLIST_KEY) == "Wantlist"

    def test_collection_key_avoids_reserved_name(self):
        """Test a remote folder named like the wantlist key gets its own key"""
        assert Folders.collection_key("Jazz") == "Jazz"
        key = Folders.collection_key(WANTLIST_KEY)
        assert key != WANTLIST_KEY

        folders = Folders()
        folders.add(key, make_release(1, "Mine", "A"))
        assert folders.collection_names() == [key]
        assert folders.wantlist == []


class TestListenLog:
    """Test the chronological listen log"""

    def test_entry_requires_aware_time(self):
        """Test entry requires aware time"""
        with pytest.raises(ValueError):
            ListenLogEntry(42, "Kind of Blue", datetime(2024, 1, 1, 12, 0))

    def test_entry_normalized_to_utc(self):
        """Test entry normalized to utc"""
        local = datetime(2024, 1, 1, 14, 0, tzinfo=timezone(timedelta(hours=2)))
        entry = ListenLogEntry(42, "Kind of Blue", local)
        assert entry.time == utc(2024, 1, 1, 12, 0)
        assert entry.time.utcoffset() == timedelta(0)

    def test_iterates_chronologically_whatever_the_insert_order(self):
        """Test iterates chronologically whatever the insert order"""
        t1, t2, t3 = utc(2024, 1, 1), utc(2024, 1, 2), utc(2024, 1, 3)
        log = ListenLog()
        log.add(ListenLogEntry(2, "Second", t2))
        log.add(ListenLogEntry(3, "Third", t3))
        log.add(ListenLogEntry(1, "First", t1))

        assert list(log) == [t1, t2, t3]
        assert [title for _, title in log.items()] == ["First", "Second", "Third"]

    def test_collision_last_write_wins(self):
        """Test collision last write wins"""
        t = utc(2024, 1, 1, 20, 0)
        log = ListenLog()
        assert log.add(ListenLogEntry(1, "Earlier", t)) is False
        assert log.add(ListenLogEntry(2, "Later", t)) is True

        assert len(log) == 1
        assert log[t] == "Later"

    def test_recent(self):
        """Test recent returns the last n listens in order"""
        times = [utc(2024, 1, day) for day in range(1, 6)]
        log = ListenLog(ListenLogEntry(day, f"Day {day}", t) for day, t in enumerate(times, start=1))

        assert [e.title for e in log.recent(2)] == ["Day 4", "Day 5"]
        assert log.recent(0) == []
        assert len(log.recent(10)) == 5
