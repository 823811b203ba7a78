"""
Tests for cadenza.core.catalog_db and the repositories behind it.

These tests verify:
- create/get round trips and server-assigned fields
- update semantics (updated_at strictly increases, id/created_at stable)
- pagination windows and default orderings
- the nested artist -> album -> track view
- delete guarding for artists and albums
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

import pytest

from cadenza.core import StoreIntegrityError
from cadenza.core.catalog_db import CatalogDb
from cadenza.core.db import SCHEMA_VERSION
from cadenza.core.db.models import next_timestamp, normalize_text, utc_timestamp
from cadenza.core.entities import Album, Artist, ArtistWithAlbums, Track
from cadenza.core.guard import DeleteCheck, DeleteStatus

# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
async def db() -> CatalogDb:
    """Create an in-memory catalog for testing."""
    db = CatalogDb(":memory:")
    await db.open()
    await db.ensure_schema()
    yield db
    await db.close()


def _missing_id() -> str:
    return str(uuid.uuid4())


# =============================================================================
# Lifecycle
# =============================================================================


class TestCatalogDbLifecycle:
    async def test_open_close(self) -> None:
        """Test basic open/close lifecycle."""
        db = CatalogDb(":memory:")
        assert not db.is_open

        await db.open()
        assert db.is_open

        await db.close()
        assert not db.is_open

    async def test_repositories_require_open_db(self) -> None:
        db = CatalogDb(":memory:")
        with pytest.raises(RuntimeError):
            _ = db.artists

    async def test_repositories_unavailable_after_close(self) -> None:
        db = CatalogDb(":memory:")
        await db.open()
        await db.close()
        for name in ("artists", "albums", "tracks", "executor"):
            with pytest.raises(RuntimeError):
                getattr(db, name)

    async def test_ensure_schema_is_idempotent(self, db: CatalogDb) -> None:
        await db.ensure_schema()
        assert await db.artists.count() == 0

    async def test_memory_db_uses_single_connection(self, db: CatalogDb) -> None:
        assert db.executor.pool.size == 1

    async def test_schema_version_stamped(self, db: CatalogDb) -> None:
        async with db.executor.pool.acquire() as conn:
            cursor = await conn.execute("PRAGMA user_version;")
            row = await cursor.fetchone()
        assert row[0] == SCHEMA_VERSION

    async def test_newer_schema_rejected(self, db: CatalogDb) -> None:
        async with db.executor.pool.acquire() as conn:
            await conn.execute(f"PRAGMA user_version = {SCHEMA_VERSION + 1};")
        with pytest.raises(RuntimeError):
            await db.ensure_schema()


# =============================================================================
# Artists
# =============================================================================


class TestArtists:
    async def test_create_assigns_id_and_timestamps(self, db: CatalogDb) -> None:
        artist = await db.artists.create("Test", genre="rock")

        assert isinstance(artist, Artist)
        assert str(uuid.UUID(artist.id)) == artist.id
        assert artist.name == "Test"
        assert artist.genre == "rock"
        assert artist.created_at == artist.updated_at
        assert artist.created_at.endswith("+00:00")

    async def test_create_without_genre(self, db: CatalogDb) -> None:
        artist = await db.artists.create("Solo")
        assert artist.genre is None

    async def test_get_by_id_round_trip(self, db: CatalogDb) -> None:
        created = await db.artists.create("Round Trip", genre="jazz")
        fetched = await db.artists.get_by_id(created.id)
        assert fetched == created

    async def test_get_by_id_missing_returns_none(self, db: CatalogDb) -> None:
        assert await db.artists.get_by_id(_missing_id()) is None

    async def test_update_restamps_updated_at(self, db: CatalogDb) -> None:
        created = await db.artists.create("Before", genre="pop")

        assert await db.artists.update(created.id, "After", genre=None) is True

        fetched = await db.artists.get_by_id(created.id)
        assert fetched is not None
        assert fetched.id == created.id
        assert fetched.name == "After"
        assert fetched.genre is None
        assert fetched.created_at == created.created_at
        assert fetched.updated_at > created.updated_at

    async def test_repeated_updates_keep_increasing(self, db: CatalogDb) -> None:
        artist = await db.artists.create("Counter")
        stamps = [artist.updated_at]
        for i in range(5):
            await db.artists.update(artist.id, f"Counter {i}")
            fetched = await db.artists.get_by_id(artist.id)
            stamps.append(fetched.updated_at)
        assert stamps == sorted(stamps)
        assert len(set(stamps)) == len(stamps)

    async def test_update_missing_returns_false(self, db: CatalogDb) -> None:
        assert await db.artists.update(_missing_id(), "Nobody") is False

    async def test_list_newest_first(self, db: CatalogDb) -> None:
        first = await db.artists.create("First")
        second = await db.artists.create("Second")
        third = await db.artists.create("Third")

        artists = await db.artists.list()
        assert [a.id for a in artists] == [third.id, second.id, first.id]

    async def test_list_pagination_is_contiguous(self, db: CatalogDb) -> None:
        for i in range(25):
            await db.artists.create(f"Artist {i:02d}")

        everything = await db.artists.list(page=0, page_size=100)
        page0 = await db.artists.list(page=0, page_size=10)
        page1 = await db.artists.list(page=1, page_size=10)
        page2 = await db.artists.list(page=2, page_size=10)

        assert len(page0) == 10
        assert len(page1) == 10
        assert len(page2) == 5
        assert {a.id for a in page0}.isdisjoint({a.id for a in page1})
        assert page0 + page1 + page2 == everything

    async def test_page_past_the_end_is_empty(self, db: CatalogDb) -> None:
        await db.artists.create("Only One")
        assert await db.artists.list(page=5, page_size=10) == []

    async def test_name_filter_is_case_insensitive_substring(self, db: CatalogDb) -> None:
        await db.artists.create("The Beatles")
        await db.artists.create("Beat Happening")
        await db.artists.create("Radiohead")

        names = {a.name for a in await db.artists.list(name_filter="BEAT")}
        assert names == {"The Beatles", "Beat Happening"}
        assert await db.artists.count(name_filter="beat") == 2
        assert await db.artists.count() == 3

    async def test_name_filter_unicode_case(self, db: CatalogDb) -> None:
        await db.artists.create("Ólafur Arnalds")
        names = [a.name for a in await db.artists.list(name_filter="óla")]
        assert names == ["Ólafur Arnalds"]

    async def test_name_filter_treats_wildcards_literally(self, db: CatalogDb) -> None:
        await db.artists.create("100% Pure")
        await db.artists.create("Under_score")
        await db.artists.create("Plain")

        assert [a.name for a in await db.artists.list(name_filter="%")] == ["100% Pure"]
        assert [a.name for a in await db.artists.list(name_filter="_")] == ["Under_score"]


# =============================================================================
# Albums
# =============================================================================


class TestAlbums:
    async def test_create_and_get(self, db: CatalogDb) -> None:
        artist = await db.artists.create("Artist")
        album = await db.albums.create("LP", 2020, artist.id)

        assert isinstance(album, Album)
        assert album.artist_id == artist.id
        assert album.release_year == 2020
        assert await db.albums.get_by_id(album.id) == album

    async def test_create_with_unknown_artist_fails(self, db: CatalogDb) -> None:
        with pytest.raises(StoreIntegrityError):
            await db.albums.create("Orphan", 2020, _missing_id())
        assert await db.albums.count() == 0

    async def test_list_most_recent_release_first(self, db: CatalogDb) -> None:
        artist = await db.artists.create("Artist")
        await db.albums.create("Middle", 2000, artist.id)
        await db.albums.create("Newest", 2020, artist.id)
        await db.albums.create("Oldest", 1975, artist.id)

        assert [a.title for a in await db.albums.list()] == ["Newest", "Middle", "Oldest"]

    async def test_list_by_artist_oldest_release_first(self, db: CatalogDb) -> None:
        artist = await db.artists.create("Artist")
        other = await db.artists.create("Other")
        await db.albums.create("Second", 1990, artist.id)
        await db.albums.create("First", 1980, artist.id)
        await db.albums.create("Not Mine", 1970, other.id)

        albums = await db.albums.list_by_artist(artist.id)
        assert [a.title for a in albums] == ["First", "Second"]
        assert await db.albums.count_by_artist(artist.id) == 2

    async def test_update_can_move_album_to_other_artist(self, db: CatalogDb) -> None:
        old = await db.artists.create("Old")
        new = await db.artists.create("New")
        album = await db.albums.create("Moving", 2001, old.id)

        assert await db.albums.update(album.id, "Moved", 2002, new.id) is True

        fetched = await db.albums.get_by_id(album.id)
        assert fetched.artist_id == new.id
        assert fetched.title == "Moved"
        assert fetched.release_year == 2002
        assert fetched.updated_at > album.updated_at
        assert await db.artists.can_delete(old.id) == DeleteCheck(True, 0)

    async def test_update_to_unknown_artist_fails_and_keeps_row(self, db: CatalogDb) -> None:
        artist = await db.artists.create("Artist")
        album = await db.albums.create("Stays", 2001, artist.id)

        with pytest.raises(StoreIntegrityError):
            await db.albums.update(album.id, "Stays", 2001, _missing_id())

        assert await db.albums.get_by_id(album.id) == album


# =============================================================================
# Tracks
# =============================================================================


class TestTracks:
    async def test_create_and_get(self, db: CatalogDb) -> None:
        artist = await db.artists.create("Artist")
        album = await db.albums.create("LP", 2020, artist.id)
        track = await db.tracks.create("T1", 180, album.id)

        assert isinstance(track, Track)
        assert track.duration_seconds == 180
        assert track.album_id == album.id
        assert await db.tracks.get_by_id(track.id) == track

    async def test_create_with_unknown_album_fails(self, db: CatalogDb) -> None:
        with pytest.raises(StoreIntegrityError):
            await db.tracks.create("Orphan", 100, _missing_id())

    async def test_list_by_album_sorted_by_title(self, db: CatalogDb) -> None:
        artist = await db.artists.create("Artist")
        album = await db.albums.create("LP", 2020, artist.id)
        await db.tracks.create("charlie", 100, album.id)
        await db.tracks.create("Alpha", 100, album.id)
        await db.tracks.create("bravo", 100, album.id)

        titles = [t.title for t in await db.tracks.list_by_album(album.id)]
        assert titles == ["Alpha", "bravo", "charlie"]
        assert await db.tracks.count_by_album(album.id) == 3

    async def test_list_newest_first(self, db: CatalogDb) -> None:
        artist = await db.artists.create("Artist")
        album = await db.albums.create("LP", 2020, artist.id)
        first = await db.tracks.create("First", 100, album.id)
        second = await db.tracks.create("Second", 100, album.id)

        assert [t.id for t in await db.tracks.list()] == [second.id, first.id]

    async def test_delete(self, db: CatalogDb) -> None:
        artist = await db.artists.create("Artist")
        album = await db.albums.create("LP", 2020, artist.id)
        track = await db.tracks.create("Gone", 100, album.id)

        result = await db.tracks.delete(track.id)
        assert result
        assert result.status is DeleteStatus.DELETED
        assert await db.tracks.get_by_id(track.id) is None

        again = await db.tracks.delete(track.id)
        assert not again
        assert again.status is DeleteStatus.NOT_FOUND


# =============================================================================
# Pagination
# =============================================================================


async def _assert_paged(fetch, total: int, page_size: int = 3) -> None:
    """Walk `fetch(page, page_size)` to the end and compare with one big page."""
    everything = await fetch(0, 100)
    assert len(everything) == total

    walked = []
    page = 0
    while True:
        rows = await fetch(page, page_size)
        if not rows:
            break
        assert len(rows) <= page_size
        walked.extend(rows)
        page += 1

    assert walked == everything
    assert len({r.id for r in walked}) == total
    assert await fetch(page + 3, page_size) == []
    assert await fetch(10**18, page_size) == []


class TestPagination:
    async def test_artists(self, db: CatalogDb) -> None:
        for i in range(7):
            await db.artists.create(f"Artist {i}")
        await _assert_paged(lambda p, s: db.artists.list(page=p, page_size=s), 7)

    async def test_albums_sharing_a_release_year(self, db: CatalogDb) -> None:
        artist = await db.artists.create("Artist")
        other = await db.artists.create("Other")
        for i in range(5):
            await db.albums.create(f"Same Year {i}", 2000, artist.id)
        await db.albums.create("Earlier", 1990, artist.id)
        await db.albums.create("Elsewhere", 2000, other.id)

        await _assert_paged(lambda p, s: db.albums.list(page=p, page_size=s), 7)
        await _assert_paged(
            lambda p, s: db.albums.list_by_artist(artist.id, page=p, page_size=s), 6
        )

        by_artist = await db.albums.list_by_artist(artist.id, page=0, page_size=100)
        assert by_artist[0].title == "Earlier"
        assert [a.title for a in by_artist[1:]] == [f"Same Year {i}" for i in range(5)]

    async def test_tracks_sharing_a_title(self, db: CatalogDb) -> None:
        artist = await db.artists.create("Artist")
        album = await db.albums.create("LP", 2000, artist.id)
        other = await db.albums.create("Other LP", 2001, artist.id)
        created = []
        for title in ("Same", "same", "SAME", "Same", "Another", "same"):
            created.append(await db.tracks.create(title, 100, album.id))
        await db.tracks.create("Elsewhere", 100, other.id)

        await _assert_paged(lambda p, s: db.tracks.list(page=p, page_size=s), 7)
        await _assert_paged(
            lambda p, s: db.tracks.list_by_album(album.id, page=p, page_size=s), 6
        )

        by_album = await db.tracks.list_by_album(album.id, page=0, page_size=100)
        assert by_album[0].title == "Another"
        # Equal titles (ignoring case) keep insertion order.
        assert [t.id for t in by_album[1:]] == [t.id for t in created if t.title != "Another"]

    async def test_huge_page_is_empty(self, db: CatalogDb) -> None:
        artist = await db.artists.create("Only")
        await db.albums.create("LP", 2000, artist.id)

        assert await db.artists.list(page=10**18, page_size=10) == []
        assert await db.artists.list(page=10**18, page_size=10, name_filter="only") == []
        assert await db.albums.list(page=10**18, page_size=10) == []
        assert await db.albums.list_by_artist(artist.id, page=10**18, page_size=10) == []
        assert await db.tracks.list(page=2**70, page_size=100) == []
        assert await db.artists.count() == 1


# =============================================================================
# Nested view
# =============================================================================


class TestArtistWithChildren:
    async def test_missing_artist_returns_none(self, db: CatalogDb) -> None:
        assert await db.artists.get_by_id_with_children(_missing_id()) is None

    async def test_artist_without_albums(self, db: CatalogDb) -> None:
        artist = await db.artists.create("Lonely", genre="folk")
        tree = await db.artists.get_by_id_with_children(artist.id)

        assert isinstance(tree, ArtistWithAlbums)
        assert tree.id == artist.id
        assert tree.name == "Lonely"
        assert tree.genre == "folk"
        assert tree.created_at == artist.created_at
        assert tree.albums == ()

    async def test_albums_with_and_without_tracks(self, db: CatalogDb) -> None:
        """Album X keeps its tracks in insertion order; empty album Y is listed with no tracks."""
        artist = await db.artists.create("A")
        x = await db.albums.create("X", 2001, artist.id)
        y = await db.albums.create("Y", 2005, artist.id)
        t2 = await db.tracks.create("Zulu", 200, x.id)
        t1 = await db.tracks.create("Alpha", 100, x.id)

        tree = await db.artists.get_by_id_with_children(artist.id)

        assert [a.id for a in tree.albums] == [x.id, y.id]
        album_x, album_y = tree.albums
        assert album_x.title == "X"
        assert album_x.release_year == 2001
        assert [t.id for t in album_x.tracks] == [t2.id, t1.id]
        assert album_x.tracks[0] == t2
        assert album_y.tracks == ()

    async def test_only_own_albums_are_included(self, db: CatalogDb) -> None:
        mine = await db.artists.create("Mine")
        theirs = await db.artists.create("Theirs")
        album = await db.albums.create("Mine LP", 2000, mine.id)
        other = await db.albums.create("Their LP", 2000, theirs.id)
        await db.tracks.create("Mine 1", 100, album.id)
        await db.tracks.create("Theirs 1", 100, other.id)

        tree = await db.artists.get_by_id_with_children(mine.id)
        assert [a.title for a in tree.albums] == ["Mine LP"]
        assert [t.title for t in tree.albums[0].tracks] == ["Mine 1"]

    async def test_albums_in_release_order(self, db: CatalogDb) -> None:
        artist = await db.artists.create("A")
        await db.albums.create("Late", 2010, artist.id)
        await db.albums.create("Early", 1990, artist.id)

        tree = await db.artists.get_by_id_with_children(artist.id)
        assert [a.title for a in tree.albums] == ["Early", "Late"]


# =============================================================================
# Delete guard
# =============================================================================


class TestDeleteGuard:
    async def test_artist_with_albums_is_protected(self, db: CatalogDb) -> None:
        artist = await db.artists.create("Prolific")
        await db.albums.create("One", 2000, artist.id)
        await db.albums.create("Two", 2001, artist.id)

        allowed, count = await db.artists.can_delete(artist.id)
        assert (allowed, count) == (False, 2)

        result = await db.artists.delete(artist.id)
        assert not result
        assert result.status is DeleteStatus.CONFLICT
        assert result.dependent_count == 2
        assert await db.artists.get_by_id(artist.id) == artist

    async def test_album_with_tracks_is_protected(self, db: CatalogDb) -> None:
        artist = await db.artists.create("Artist")
        album = await db.albums.create("Full", 2000, artist.id)
        for i in range(3):
            await db.tracks.create(f"T{i}", 100, album.id)

        assert await db.albums.can_delete(album.id) == DeleteCheck(False, 3)

        result = await db.albums.delete(album.id)
        assert result.conflict
        assert result.dependent_count == 3
        assert await db.albums.get_by_id(album.id) == album

    async def test_delete_without_dependents(self, db: CatalogDb) -> None:
        artist = await db.artists.create("Free")
        assert await db.artists.can_delete(artist.id) == DeleteCheck(True, 0)

        result = await db.artists.delete(artist.id)
        assert result.deleted
        assert await db.artists.get_by_id(artist.id) is None

    async def test_delete_missing_is_not_found(self, db: CatalogDb) -> None:
        missing = _missing_id()
        assert await db.albums.can_delete(missing) == DeleteCheck(True, 0)

        result = await db.albums.delete(missing)
        assert result.status is DeleteStatus.NOT_FOUND
        assert result.dependent_count == 0

    async def test_full_scenario(self, db: CatalogDb) -> None:
        """Artist -> album -> track, then unwind bottom-up."""
        artist = await db.artists.create("Test", genre="rock")
        album = await db.albums.create("LP", 2020, artist.id)
        track = await db.tracks.create("T1", 180, album.id)

        assert tuple(await db.albums.can_delete(album.id)) == (False, 1)
        assert (await db.tracks.delete(track.id)).deleted
        assert tuple(await db.albums.can_delete(album.id)) == (True, 0)
        assert (await db.albums.delete(album.id)).deleted
        assert (await db.artists.delete(artist.id)).deleted
        assert await db.artists.count() == 0


# =============================================================================
# Timestamps
# =============================================================================


class TestTimestamps:
    def test_fixed_width_utc(self) -> None:
        stamp = utc_timestamp(datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc))
        assert stamp == "2024-05-01T12:00:00.000000+00:00"

    def test_next_timestamp_after_future_stamp(self) -> None:
        future = "2999-01-01T00:00:00.000000+00:00"
        assert next_timestamp(future) == "2999-01-01T00:00:00.000001+00:00"

    def test_next_timestamp_uses_clock_when_later(self) -> None:
        past = "2000-01-01T00:00:00.000000+00:00"
        assert next_timestamp(past) > past
        assert next_timestamp(None).endswith("+00:00")

    def test_normalize_text(self) -> None:
        assert normalize_text("  rock ") == "rock"
        assert normalize_text("   ") is None
        assert normalize_text(None) is None
