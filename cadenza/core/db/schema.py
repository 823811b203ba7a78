"""
Database schema for the Cadenza catalog.

Connection management lives in `cadenza.core.db.pool`; this module only knows
how to bring a connection's database up to the current schema.

Design notes:
- We use SQLite `PRAGMA user_version` as the schema version.
- Foreign keys carry no ON DELETE action. Cascading would silently remove
  children; deletes of parents go through the delete guard instead.
- Length limits mirror the value constraints of the catalog entities.
"""

from __future__ import annotations

import logging
from typing import Final

import aiosqlite

logger = logging.getLogger(__name__)

SCHEMA_VERSION: Final[int] = 1

_CREATE_STATEMENTS: Final[tuple[str, ...]] = (
    """
    CREATE TABLE IF NOT EXISTS artists (
        id TEXT PRIMARY KEY NOT NULL,
        name TEXT NOT NULL CHECK (length(name) BETWEEN 1 AND 100),
        genre TEXT CHECK (genre IS NULL OR length(genre) <= 50),
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS albums (
        id TEXT PRIMARY KEY NOT NULL,
        title TEXT NOT NULL CHECK (length(title) BETWEEN 1 AND 150),
        release_year INTEGER NOT NULL,
        artist_id TEXT NOT NULL REFERENCES artists(id),
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS tracks (
        id TEXT PRIMARY KEY NOT NULL,
        title TEXT NOT NULL CHECK (length(title) BETWEEN 1 AND 150),
        duration_seconds INTEGER NOT NULL,
        album_id TEXT NOT NULL REFERENCES albums(id),
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_artists_created_at ON artists(created_at);",
    "CREATE INDEX IF NOT EXISTS idx_albums_artist_id ON albums(artist_id);",
    "CREATE INDEX IF NOT EXISTS idx_albums_release_year ON albums(release_year);",
    "CREATE INDEX IF NOT EXISTS idx_tracks_album_id ON tracks(album_id);",
    "CREATE INDEX IF NOT EXISTS idx_tracks_title ON tracks(title);",
    "CREATE INDEX IF NOT EXISTS idx_tracks_created_at ON tracks(created_at);",
)


async def ensure_schema(conn: aiosqlite.Connection) -> None:
    """
    Create the catalog tables if needed and stamp the schema version.

    This function assumes:
    - `conn` is an open aiosqlite connection in autocommit mode
      (the pool opens connections with `isolation_level=None`)
    - foreign_keys pragma is enabled by the caller
    """
    cursor = await conn.execute("PRAGMA user_version;")
    row = await cursor.fetchone()
    current = int(row[0]) if row is not None else 0

    if current > SCHEMA_VERSION:
        raise RuntimeError(
            f"Database schema version {current} is newer than supported {SCHEMA_VERSION}."
        )

    if current == SCHEMA_VERSION:
        return

    await conn.execute("BEGIN IMMEDIATE;")
    try:
        for statement in _CREATE_STATEMENTS:
            await conn.execute(statement)
        await conn.execute(f"PRAGMA user_version = {SCHEMA_VERSION};")
        await conn.execute("COMMIT;")
    except Exception:
        await conn.execute("ROLLBACK;")
        raise

    logger.info("Catalog schema created (version %d)", SCHEMA_VERSION)
