"""
Catalog database facade.

Goals:
- SQLite + aiosqlite, async/await friendly.
- One transaction per catalog operation; no state shared between operations
  other than the connection pool.

This module is intentionally independent of the web layer.

Note:
- Table descriptors and helpers live in `cadenza.core.db.models`
- Schema creation lives in `cadenza.core.db.schema`
- Pooling lives in `cadenza.core.db.pool`, transactions in `cadenza.core.db.executor`
- Entity operations live in `cadenza.core.repositories`
- `CatalogDb` is the public entry point used by the rest of the codebase
"""

from __future__ import annotations

import logging
from pathlib import Path

from cadenza.core.db.executor import Executor
from cadenza.core.db.pool import ConnectionPool
from cadenza.core.db.schema import ensure_schema as ensure_schema_sql
from cadenza.core.repositories import AlbumRepository, ArtistRepository, TrackRepository

logger = logging.getLogger(__name__)

_NOT_OPEN = "CatalogDb is not open. Call await db.open() first."


class CatalogDb:
    """
    Async access layer for the catalog DB.

    Usage:
        db = CatalogDb("cadenza.db")
        await db.open()
        await db.ensure_schema()
        artist = await db.artists.create("Test", genre="rock")
        ...
        await db.close()

    Notes:
    - This class is designed to be injected into other components.
    - `operation_timeout` (seconds) is the default deadline for every
      operation; `None` disables it.
    """

    def __init__(
        self,
        db_path: str | Path,
        *,
        pool_size: int = 5,
        busy_timeout_ms: int = 5000,
        operation_timeout: float | None = None,
    ) -> None:
        self._db_path = str(db_path)
        self._pool_size = pool_size
        self._busy_timeout_ms = busy_timeout_ms
        self._operation_timeout = operation_timeout
        self._pool: ConnectionPool | None = None
        self._executor: Executor | None = None
        self._artists: ArtistRepository | None = None
        self._albums: AlbumRepository | None = None
        self._tracks: TrackRepository | None = None

    @property
    def is_open(self) -> bool:
        return self._pool is not None

    async def open(self) -> None:
        if self._pool is not None:
            return
        self._pool = ConnectionPool(
            self._db_path, size=self._pool_size, busy_timeout_ms=self._busy_timeout_ms
        )
        self._executor = Executor(self._pool, timeout=self._operation_timeout)
        self._artists = ArtistRepository(self._executor)
        self._albums = AlbumRepository(self._executor)
        self._tracks = TrackRepository(self._executor)
        logger.info("Catalog DB %s opened (pool size %d)", self._db_path, self._pool.size)

    async def close(self) -> None:
        if self._pool is None:
            return
        await self._pool.close()
        self._pool = None
        self._executor = None
        self._artists = self._albums = self._tracks = None

    def _require_executor(self) -> Executor:
        if self._executor is None:
            raise RuntimeError(_NOT_OPEN)
        return self._executor

    async def ensure_schema(self) -> None:
        """Create the schema if needed."""
        executor = self._require_executor()
        async with executor.pool.acquire() as conn:
            await ensure_schema_sql(conn)

    @property
    def executor(self) -> Executor:
        return self._require_executor()

    @property
    def artists(self) -> ArtistRepository:
        if self._artists is None:
            raise RuntimeError(_NOT_OPEN)
        return self._artists

    @property
    def albums(self) -> AlbumRepository:
        if self._albums is None:
            raise RuntimeError(_NOT_OPEN)
        return self._albums

    @property
    def tracks(self) -> TrackRepository:
        if self._tracks is None:
            raise RuntimeError(_NOT_OPEN)
        return self._tracks
