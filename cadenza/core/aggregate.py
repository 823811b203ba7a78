"""
Regroup flat album/track join rows into nested albums.

The input is the result of joining albums to tracks for one artist, one row
per (album, track) pair. Rows are plain mappings keyed by the aliases below,
so this module has no knowledge of the store and can be fed synthetic dicts.

Rules:
- Grouping key is the album id; groups are emitted in first-seen order.
- The first row of a group supplies the album's own fields (every row of a
  group carries the same album fields).
- Tracks keep the order their rows arrived in.
- A row whose `track_id` is NULL is outer-join padding for an album without
  tracks: the album is emitted with an empty track list.
"""

from __future__ import annotations

from typing import Any, Iterable, Mapping

from cadenza.core.entities import AlbumWithTracks, Track

# Column aliases expected in each row.
ALBUM_COLUMNS = ("album_id", "album_title", "album_release_year")
TRACK_COLUMNS = (
    "track_id",
    "track_title",
    "track_duration_seconds",
    "track_created_at",
    "track_updated_at",
)


def _track_from_row(row: Mapping[str, Any], album_id: str) -> Track:
    return Track(
        id=str(row["track_id"]),
        title=row["track_title"],
        duration_seconds=int(row["track_duration_seconds"]),
        album_id=album_id,
        created_at=row["track_created_at"],
        updated_at=row["track_updated_at"],
    )


def group_album_rows(rows: Iterable[Mapping[str, Any]]) -> tuple[AlbumWithTracks, ...]:
    """Single pass over `rows`, O(n)."""
    heads: dict[str, Mapping[str, Any]] = {}
    tracks: dict[str, list[Track]] = {}

    for row in rows:
        album_id = str(row["album_id"])
        if album_id not in heads:
            heads[album_id] = row
            tracks[album_id] = []
        if row["track_id"] is not None:
            tracks[album_id].append(_track_from_row(row, album_id))

    return tuple(
        AlbumWithTracks(
            id=album_id,
            title=head["album_title"],
            release_year=int(head["album_release_year"]),
            tracks=tuple(tracks[album_id]),
        )
        for album_id, head in heads.items()
    )
