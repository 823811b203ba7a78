"""
Repository facades for artists, albums and tracks.

Each repository composes the executor, the aggregator and the delete guard
into the catalog operations for one entity type. Every method is one unit of
work: it borrows a connection, runs inside a single transaction, and returns
plain value objects from `cadenza.core.entities`.

Contract with callers:
- Inputs are already validated (non-blank titles, year range, positive
  durations, pagination bounds). Only referential existence is checked here,
  by the store's foreign keys (`StoreIntegrityError`).
- Not-found is `None` (reads), `False` (updates) or `DeleteStatus.NOT_FOUND`.
- Delete conflicts are values (`DeleteResult` / `DeleteCheck`), not exceptions.
"""

from __future__ import annotations

import aiosqlite

from cadenza.core.aggregate import group_album_rows
from cadenza.core.db import queries_artists
from cadenza.core.db.executor import Executor, delete_row, fetch_by_id
from cadenza.core.db.models import ALBUMS, ARTISTS, TRACKS, normalize_text
from cadenza.core.db.ordering import albums_order_clause, tracks_order_clause
from cadenza.core.entities import Album, Artist, ArtistWithAlbums, Track
from cadenza.core.guard import DeleteCheck, DeleteGuard, DeleteResult


def page_window(page: int, page_size: int) -> tuple[int, int]:
    """Translate a zero-based page number into (limit, offset)."""
    return int(page_size), int(page) * int(page_size)


class ArtistRepository:
    def __init__(self, executor: Executor) -> None:
        self._executor = executor
        self._guard = DeleteGuard(ARTISTS, ALBUMS, "artist_id")

    async def create(self, name: str, genre: str | None = None) -> Artist:
        row = await self._executor.insert(
            ARTISTS, {"name": name, "genre": normalize_text(genre)}
        )
        return Artist.from_row(row)

    async def list(
        self, page: int = 0, page_size: int = 10, name_filter: str | None = None
    ) -> list[Artist]:
        """Artists newest first, optionally filtered by a case-insensitive name substring."""
        limit, offset = page_window(page, page_size)
        rows = await self._executor.run(
            lambda conn: queries_artists.list_artists(
                conn, limit=limit, offset=offset, name_filter=name_filter
            )
        )
        return [Artist.from_row(r) for r in rows]

    async def count(self, name_filter: str | None = None) -> int:
        return await self._executor.run(
            lambda conn: queries_artists.count_artists(conn, name_filter=name_filter)
        )

    async def get_by_id(self, artist_id: str) -> Artist | None:
        row = await self._executor.get(ARTISTS, artist_id)
        return Artist.from_row(row) if row is not None else None

    async def get_by_id_with_children(self, artist_id: str) -> ArtistWithAlbums | None:
        """
        The artist with its albums and each album's tracks.

        The artist row and the join rows are read in one transaction, so the
        tree is a consistent snapshot. Albums without tracks are included
        with an empty track list.
        """

        async def read_tree(conn: aiosqlite.Connection) -> ArtistWithAlbums | None:
            row = await fetch_by_id(conn, ARTISTS, artist_id)
            if row is None:
                return None
            flat = await queries_artists.list_album_track_rows(conn, artist_id)
            return ArtistWithAlbums.of(Artist.from_row(row), group_album_rows(flat))

        return await self._executor.run(read_tree)

    async def update(self, artist_id: str, name: str, genre: str | None = None) -> bool:
        count = await self._executor.update(
            ARTISTS, artist_id, {"name": name, "genre": normalize_text(genre)}
        )
        return count > 0

    async def can_delete(self, artist_id: str) -> DeleteCheck:
        return await self._guard.can_delete(self._executor, artist_id)

    async def delete(self, artist_id: str) -> DeleteResult:
        return await self._guard.guarded_delete(self._executor, artist_id)


class AlbumRepository:
    def __init__(self, executor: Executor) -> None:
        self._executor = executor
        self._guard = DeleteGuard(ALBUMS, TRACKS, "album_id")

    async def create(self, title: str, release_year: int, artist_id: str) -> Album:
        row = await self._executor.insert(
            ALBUMS,
            {"title": title, "release_year": int(release_year), "artist_id": artist_id},
        )
        return Album.from_row(row)

    async def list(self, page: int = 0, page_size: int = 10) -> list[Album]:
        """All albums, most recent release year first."""
        limit, offset = page_window(page, page_size)
        rows = await self._executor.select(
            ALBUMS,
            order_by=albums_order_clause("release_year_desc"),
            limit=limit,
            offset=offset,
        )
        return [Album.from_row(r) for r in rows]

    async def count(self) -> int:
        return await self._executor.count(ALBUMS)

    async def list_by_artist(
        self, artist_id: str, page: int = 0, page_size: int = 10
    ) -> list[Album]:
        """One artist's albums, oldest release first."""
        limit, offset = page_window(page, page_size)
        rows = await self._executor.select(
            ALBUMS,
            where="artist_id = ?",
            params=(artist_id,),
            order_by=albums_order_clause("release_year_asc"),
            limit=limit,
            offset=offset,
        )
        return [Album.from_row(r) for r in rows]

    async def count_by_artist(self, artist_id: str) -> int:
        return await self._executor.count(ALBUMS, where="artist_id = ?", params=(artist_id,))

    async def get_by_id(self, album_id: str) -> Album | None:
        row = await self._executor.get(ALBUMS, album_id)
        return Album.from_row(row) if row is not None else None

    async def update(self, album_id: str, title: str, release_year: int, artist_id: str) -> bool:
        count = await self._executor.update(
            ALBUMS,
            album_id,
            {"title": title, "release_year": int(release_year), "artist_id": artist_id},
        )
        return count > 0

    async def can_delete(self, album_id: str) -> DeleteCheck:
        return await self._guard.can_delete(self._executor, album_id)

    async def delete(self, album_id: str) -> DeleteResult:
        return await self._guard.guarded_delete(self._executor, album_id)


class TrackRepository:
    """Tracks have no dependents; deletes need no guard."""

    def __init__(self, executor: Executor) -> None:
        self._executor = executor

    async def create(self, title: str, duration_seconds: int, album_id: str) -> Track:
        row = await self._executor.insert(
            TRACKS,
            {"title": title, "duration_seconds": int(duration_seconds), "album_id": album_id},
        )
        return Track.from_row(row)

    async def list(self, page: int = 0, page_size: int = 10) -> list[Track]:
        limit, offset = page_window(page, page_size)
        rows = await self._executor.select(
            TRACKS,
            order_by=tracks_order_clause("created"),
            limit=limit,
            offset=offset,
        )
        return [Track.from_row(r) for r in rows]

    async def count(self) -> int:
        return await self._executor.count(TRACKS)

    async def list_by_album(self, album_id: str, page: int = 0, page_size: int = 10) -> list[Track]:
        """One album's tracks, by title."""
        limit, offset = page_window(page, page_size)
        rows = await self._executor.select(
            TRACKS,
            where="album_id = ?",
            params=(album_id,),
            order_by=tracks_order_clause("title"),
            limit=limit,
            offset=offset,
        )
        return [Track.from_row(r) for r in rows]

    async def count_by_album(self, album_id: str) -> int:
        return await self._executor.count(TRACKS, where="album_id = ?", params=(album_id,))

    async def get_by_id(self, track_id: str) -> Track | None:
        row = await self._executor.get(TRACKS, track_id)
        return Track.from_row(row) if row is not None else None

    async def update(
        self, track_id: str, title: str, duration_seconds: int, album_id: str
    ) -> bool:
        count = await self._executor.update(
            TRACKS,
            track_id,
            {"title": title, "duration_seconds": int(duration_seconds), "album_id": album_id},
        )
        return count > 0

    async def delete(self, track_id: str) -> DeleteResult:
        rowcount = await self._executor.run(
            lambda conn: delete_row(conn, TRACKS, track_id), write=True
        )
        return DeleteResult.from_rowcount(rowcount)
