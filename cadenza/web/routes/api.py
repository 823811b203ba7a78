"""
REST API Routes for Cadenza.

Provides REST endpoints over the catalog repositories:
- /api/artists: artists, their nested albums/tracks, delete checks
- /api/albums: albums, their tracks, delete checks
- /api/tracks: tracks

Field validation happens here (see `cadenza.web.validation`); the
repositories receive already-checked values.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from fastapi import APIRouter, HTTPException, Request

from cadenza.core import StoreIntegrityError
from cadenza.web import validation as v

if TYPE_CHECKING:
    from cadenza.core.catalog_db import CatalogDb
    from cadenza.core.guard import DeleteCheck, DeleteResult

logger = logging.getLogger(__name__)

router = APIRouter(tags=["api"])

# Reference set during route registration
_catalog: CatalogDb | None = None


def register_api_routes(app, catalog: CatalogDb) -> None:
    """
    Register API routes with the FastAPI app.

    Args:
        app: FastAPI application instance
        catalog: Open CatalogDb used by all handlers
    """
    global _catalog
    _catalog = catalog
    app.include_router(router)


def _require_catalog() -> CatalogDb:
    if _catalog is None or not _catalog.is_open:
        raise HTTPException(status_code=503, detail="Catalog not initialized")
    return _catalog


def _delete_check_response(check: DeleteCheck, reason: str) -> dict[str, Any]:
    return {
        "canDelete": check.allowed,
        "reason": None if check.allowed else reason,
        "relatedCount": check.dependent_count,
    }


def _delete_response(result: DeleteResult, what: str, dependents: str) -> dict[str, Any]:
    if result.conflict:
        logger.warning(
            "Refused to delete %s: %d related %s", what, result.dependent_count, dependents
        )
        raise HTTPException(
            status_code=409,
            detail={
                "error": f"Cannot delete {what}: it has {result.dependent_count} related {dependents}",
                "relatedCount": result.dependent_count,
            },
        )
    if not result.deleted:
        raise HTTPException(status_code=404, detail=f"{what.capitalize()} not found")
    return {"message": f"{what.capitalize()} deleted"}


# =============================================================================
# Artists
# =============================================================================


@router.post("/api/artists", status_code=201)
async def create_artist(request: Request) -> dict[str, Any]:
    """Create an artist.

    Request body: {"name": "...", "genre": "..."}
    """
    catalog = _require_catalog()
    body = await v.read_body(request)
    name = v.required_text(body, "name", v.ARTIST_NAME_MAX)
    genre = v.optional_text(body, "genre", v.GENRE_MAX)

    artist = await catalog.artists.create(name, genre)
    return artist.to_dict()


@router.get("/api/artists")
async def list_artists(
    page: int = 0, size: int = v.DEFAULT_PAGE_SIZE, name: str | None = None
) -> dict[str, Any]:
    """List artists, newest first.

    Query params:
        page: Zero-based page (default: 0)
        size: Page size, 1..100 (default: 10)
        name: Optional case-insensitive name substring
    """
    catalog = _require_catalog()
    v.check_pagination(page, size)

    artists = await catalog.artists.list(page, size, name_filter=name)
    total = await catalog.artists.count(name_filter=name)
    return {
        "count": total,
        "page": page,
        "size": size,
        "artists": [a.to_dict() for a in artists],
    }


@router.get("/api/artists/{artist_id}")
async def get_artist(artist_id: str) -> dict[str, Any]:
    """Get an artist with its albums and their tracks."""
    catalog = _require_catalog()
    artist = await catalog.artists.get_by_id_with_children(v.parse_id(artist_id))
    if artist is None:
        raise HTTPException(status_code=404, detail="Artist not found")
    return artist.to_dict()


@router.get("/api/artists/{artist_id}/albums")
async def get_artist_albums(artist_id: str) -> dict[str, Any]:
    """Get an artist's albums with their tracks (empty when the artist is unknown)."""
    catalog = _require_catalog()
    artist = await catalog.artists.get_by_id_with_children(v.parse_id(artist_id))
    albums = artist.albums if artist is not None else ()
    return {"count": len(albums), "albums": [a.to_dict() for a in albums]}


@router.put("/api/artists/{artist_id}")
async def update_artist(artist_id: str, request: Request) -> dict[str, Any]:
    """Replace an artist's name and genre."""
    catalog = _require_catalog()
    artist_id = v.parse_id(artist_id)
    body = await v.read_body(request)
    name = v.required_text(body, "name", v.ARTIST_NAME_MAX)
    genre = v.optional_text(body, "genre", v.GENRE_MAX)

    if not await catalog.artists.update(artist_id, name, genre):
        raise HTTPException(status_code=404, detail="Artist not found")
    artist = await catalog.artists.get_by_id(artist_id)
    if artist is None:
        # Deleted between the update and the read.
        raise HTTPException(status_code=404, detail="Artist not found")
    return artist.to_dict()


@router.get("/api/artists/{artist_id}/can-delete")
async def can_delete_artist(artist_id: str) -> dict[str, Any]:
    catalog = _require_catalog()
    check = await catalog.artists.can_delete(v.parse_id(artist_id))
    return _delete_check_response(check, "The artist has related albums")


@router.delete("/api/artists/{artist_id}")
async def delete_artist(artist_id: str) -> dict[str, Any]:
    """Delete an artist. Refused with 409 while albums reference it."""
    catalog = _require_catalog()
    result = await catalog.artists.delete(v.parse_id(artist_id))
    return _delete_response(result, "artist", "album(s)")


# =============================================================================
# Albums
# =============================================================================


@router.post("/api/albums", status_code=201)
async def create_album(request: Request) -> dict[str, Any]:
    """Create an album.

    Request body: {"title": "...", "releaseYear": 2020, "artistId": "<uuid>"}
    """
    catalog = _require_catalog()
    body = await v.read_body(request)
    title = v.required_text(body, "title", v.TITLE_MAX)
    year = v.release_year(body)
    artist_id = v.reference_id(body, "artistId")

    try:
        album = await catalog.albums.create(title, year, artist_id)
    except StoreIntegrityError:
        raise v.bad_request(f"Artist {artist_id} does not exist") from None
    return album.to_dict()


@router.get("/api/albums")
async def list_albums(page: int = 0, size: int = v.DEFAULT_PAGE_SIZE) -> dict[str, Any]:
    """List albums, most recent release first."""
    catalog = _require_catalog()
    v.check_pagination(page, size)

    albums = await catalog.albums.list(page, size)
    total = await catalog.albums.count()
    return {
        "count": total,
        "page": page,
        "size": size,
        "albums": [a.to_dict() for a in albums],
    }


@router.get("/api/albums/{album_id}")
async def get_album(album_id: str) -> dict[str, Any]:
    catalog = _require_catalog()
    album = await catalog.albums.get_by_id(v.parse_id(album_id))
    if album is None:
        raise HTTPException(status_code=404, detail="Album not found")
    return album.to_dict()


@router.get("/api/albums/{album_id}/tracks")
async def get_album_tracks(
    album_id: str, page: int = 0, size: int = v.DEFAULT_PAGE_SIZE
) -> dict[str, Any]:
    """List an album's tracks by title."""
    catalog = _require_catalog()
    album_id = v.parse_id(album_id)
    v.check_pagination(page, size)

    tracks = await catalog.tracks.list_by_album(album_id, page, size)
    total = await catalog.tracks.count_by_album(album_id)
    return {
        "count": total,
        "page": page,
        "size": size,
        "tracks": [t.to_dict() for t in tracks],
    }


@router.put("/api/albums/{album_id}")
async def update_album(album_id: str, request: Request) -> dict[str, Any]:
    catalog = _require_catalog()
    album_id = v.parse_id(album_id)
    body = await v.read_body(request)
    title = v.required_text(body, "title", v.TITLE_MAX)
    year = v.release_year(body)
    artist_id = v.reference_id(body, "artistId")

    try:
        updated = await catalog.albums.update(album_id, title, year, artist_id)
    except StoreIntegrityError:
        raise v.bad_request(f"Artist {artist_id} does not exist") from None
    if not updated:
        raise HTTPException(status_code=404, detail="Album not found")
    album = await catalog.albums.get_by_id(album_id)
    if album is None:
        raise HTTPException(status_code=404, detail="Album not found")
    return album.to_dict()


@router.get("/api/albums/{album_id}/can-delete")
async def can_delete_album(album_id: str) -> dict[str, Any]:
    catalog = _require_catalog()
    check = await catalog.albums.can_delete(v.parse_id(album_id))
    return _delete_check_response(check, "The album has related tracks")


@router.delete("/api/albums/{album_id}")
async def delete_album(album_id: str) -> dict[str, Any]:
    """Delete an album. Refused with 409 while tracks reference it."""
    catalog = _require_catalog()
    result = await catalog.albums.delete(v.parse_id(album_id))
    return _delete_response(result, "album", "track(s)")


# =============================================================================
# Tracks
# =============================================================================


@router.post("/api/tracks", status_code=201)
async def create_track(request: Request) -> dict[str, Any]:
    """Create a track.

    Request body: {"title": "...", "duration": 180, "albumId": "<uuid>"}
    """
    catalog = _require_catalog()
    body = await v.read_body(request)
    title = v.required_text(body, "title", v.TITLE_MAX)
    seconds = v.duration(body)
    album_id = v.reference_id(body, "albumId")

    try:
        track = await catalog.tracks.create(title, seconds, album_id)
    except StoreIntegrityError:
        raise v.bad_request(f"Album {album_id} does not exist") from None
    return track.to_dict()


@router.get("/api/tracks")
async def list_tracks(page: int = 0, size: int = v.DEFAULT_PAGE_SIZE) -> dict[str, Any]:
    """List tracks, newest first."""
    catalog = _require_catalog()
    v.check_pagination(page, size)

    tracks = await catalog.tracks.list(page, size)
    total = await catalog.tracks.count()
    return {
        "count": total,
        "page": page,
        "size": size,
        "tracks": [t.to_dict() for t in tracks],
    }


@router.get("/api/tracks/{track_id}")
async def get_track(track_id: str) -> dict[str, Any]:
    catalog = _require_catalog()
    track = await catalog.tracks.get_by_id(v.parse_id(track_id))
    if track is None:
        raise HTTPException(status_code=404, detail="Track not found")
    return track.to_dict()


@router.put("/api/tracks/{track_id}")
async def update_track(track_id: str, request: Request) -> dict[str, Any]:
    catalog = _require_catalog()
    track_id = v.parse_id(track_id)
    body = await v.read_body(request)
    title = v.required_text(body, "title", v.TITLE_MAX)
    seconds = v.duration(body)
    album_id = v.reference_id(body, "albumId")

    try:
        updated = await catalog.tracks.update(track_id, title, seconds, album_id)
    except StoreIntegrityError:
        raise v.bad_request(f"Album {album_id} does not exist") from None
    if not updated:
        raise HTTPException(status_code=404, detail="Track not found")
    track = await catalog.tracks.get_by_id(track_id)
    if track is None:
        raise HTTPException(status_code=404, detail="Track not found")
    return track.to_dict()


@router.delete("/api/tracks/{track_id}")
async def delete_track(track_id: str) -> dict[str, Any]:
    catalog = _require_catalog()
    result = await catalog.tracks.delete(v.parse_id(track_id))
    # Tracks have no dependents; a delete either removes the row or finds nothing.
    if not result.deleted:
        raise HTTPException(status_code=404, detail="Track not found")
    return {"message": "Track deleted"}
