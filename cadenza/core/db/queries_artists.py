"""
Artist-related DB queries that go beyond single-table selects.

Design:
- Functions are *pure DB helpers*: they take an open `aiosqlite.Connection`
  (already inside a transaction) and return rows.
- These functions assume `conn.row_factory = aiosqlite.Row` and the
  `casefold()` SQL function registered by the connection pool.

Important:
- Do NOT interpolate user input into SQL. The name filter is bound as a
  parameter and matched with `instr`, so LIKE wildcards in user input have no
  special meaning.
"""

from __future__ import annotations

from typing import Any

import aiosqlite

from cadenza.core.db.executor import count_rows, select_rows
from cadenza.core.db.models import ARTISTS
from cadenza.core.db.ordering import ARTIST_TREE_ORDER, artists_order_clause

NAME_FILTER = "instr(casefold(name), ?) > 0"


def name_filter_params(name_filter: str | None) -> tuple[str | None, tuple[Any, ...]]:
    """Return the WHERE fragment and params for an optional name filter."""
    if name_filter is None:
        return None, ()
    return NAME_FILTER, (name_filter.casefold(),)


async def list_artists(
    conn: aiosqlite.Connection,
    *,
    limit: int,
    offset: int,
    name_filter: str | None = None,
) -> list[aiosqlite.Row]:
    where, params = name_filter_params(name_filter)
    return await select_rows(
        conn,
        ARTISTS,
        where=where,
        params=params,
        order_by=artists_order_clause("created"),
        limit=limit,
        offset=offset,
    )


async def count_artists(conn: aiosqlite.Connection, *, name_filter: str | None = None) -> int:
    where, params = name_filter_params(name_filter)
    return await count_rows(conn, ARTISTS, where=where, params=params)


async def list_album_track_rows(
    conn: aiosqlite.Connection, artist_id: str
) -> list[aiosqlite.Row]:
    """
    Flat (album, track) rows for one artist, ready for `group_album_rows`.

    LEFT JOIN: albums without tracks yield one row with NULL track columns.
    """
    cursor = await conn.execute(
        f"""
        SELECT
            al.id AS album_id,
            al.title AS album_title,
            al.release_year AS album_release_year,
            t.id AS track_id,
            t.title AS track_title,
            t.duration_seconds AS track_duration_seconds,
            t.created_at AS track_created_at,
            t.updated_at AS track_updated_at
        FROM albums al
        LEFT JOIN tracks t ON t.album_id = al.id
        WHERE al.artist_id = ?
        ORDER BY {ARTIST_TREE_ORDER};
        """,
        (artist_id,),
    )
    return list(await cursor.fetchall())
