"""
Catalog value objects returned by the repositories.

These are plain, immutable copies of stored rows: ids and timestamps are
strings, and nothing here holds a reference back to the store. The flat
shapes (`Artist`, `Album`, `Track`) and the nested shapes
(`ArtistWithAlbums`, `AlbumWithTracks`) are distinct types that only share
base fields.

`to_dict()` renders the camelCase JSON shape used by the REST layer.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping


@dataclass(frozen=True, slots=True)
class Artist:
    id: str
    name: str
    genre: str | None
    created_at: str
    updated_at: str

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> Artist:
        return cls(
            id=str(row["id"]),
            name=row["name"],
            genre=row["genre"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "genre": self.genre,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }


@dataclass(frozen=True, slots=True)
class Album:
    id: str
    title: str
    release_year: int
    artist_id: str
    created_at: str
    updated_at: str

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> Album:
        return cls(
            id=str(row["id"]),
            title=row["title"],
            release_year=int(row["release_year"]),
            artist_id=str(row["artist_id"]),
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "releaseYear": self.release_year,
            "artistId": self.artist_id,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }


@dataclass(frozen=True, slots=True)
class Track:
    id: str
    title: str
    duration_seconds: int
    album_id: str
    created_at: str
    updated_at: str

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> Track:
        return cls(
            id=str(row["id"]),
            title=row["title"],
            duration_seconds=int(row["duration_seconds"]),
            album_id=str(row["album_id"]),
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "duration": self.duration_seconds,
            "albumId": self.album_id,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }


@dataclass(frozen=True, slots=True)
class AlbumWithTracks:
    """An album as seen from its artist: base fields plus ordered tracks."""

    id: str
    title: str
    release_year: int
    tracks: tuple[Track, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "releaseYear": self.release_year,
            "tracks": [t.to_dict() for t in self.tracks],
        }


@dataclass(frozen=True, slots=True)
class ArtistWithAlbums:
    id: str
    name: str
    genre: str | None
    created_at: str
    updated_at: str
    albums: tuple[AlbumWithTracks, ...] = ()

    @classmethod
    def of(cls, artist: Artist, albums: tuple[AlbumWithTracks, ...]) -> ArtistWithAlbums:
        return cls(
            id=artist.id,
            name=artist.name,
            genre=artist.genre,
            created_at=artist.created_at,
            updated_at=artist.updated_at,
            albums=albums,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "genre": self.genre,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
            "albums": [a.to_dict() for a in self.albums],
        }
