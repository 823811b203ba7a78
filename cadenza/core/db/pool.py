"""
Bounded pool of aiosqlite connections.

Every catalog operation borrows one connection for the duration of its
transaction and gives it back afterwards. `acquire()` is an async context
manager so a connection is returned even when the operation fails; a
connection still inside a transaction is rolled back before it goes back
into the pool.

Notes:
- Connections are opened lazily, up to `size`.
- A `":memory:"` database exists per connection in SQLite, so such a pool is
  limited to a single connection.
- Connections run with `isolation_level=None`; transactions are issued
  explicitly by the executor.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections import deque
from pathlib import Path
from typing import AsyncIterator

import aiosqlite

from cadenza.core import StoreError

logger = logging.getLogger(__name__)

MEMORY_DB = ":memory:"


def _casefold(value: str | None) -> str | None:
    """SQL `casefold(x)`: Unicode-aware case folding (SQLite's lower() is ASCII-only)."""
    return value.casefold() if value is not None else None


class ConnectionPool:
    """
    Async connection pool for the catalog DB.

    Usage:
        pool = ConnectionPool("cadenza.db", size=5)
        async with pool.acquire() as conn:
            ...
        await pool.close()

    Slot accounting is guarded by one `asyncio.Condition`. Every change that
    can let a waiter proceed (a connection returned, a connection dropped, a
    failed open, the pool closing) notifies it, so a waiter either gets a
    connection, opens a fresh one, or sees the pool closed.
    """

    def __init__(
        self,
        db_path: str | Path,
        *,
        size: int = 5,
        busy_timeout_ms: int = 5000,
    ) -> None:
        if size < 1:
            raise ValueError("Pool size must be at least 1")
        self._db_path = str(db_path)
        self._size = 1 if self._db_path == MEMORY_DB else size
        self._busy_timeout_ms = int(busy_timeout_ms)
        self._slots = asyncio.Condition()
        self._idle: deque[aiosqlite.Connection] = deque()
        self._connections: list[aiosqlite.Connection] = []
        self._opening = 0
        self._closed = False

    @property
    def size(self) -> int:
        return self._size

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def in_use(self) -> int:
        """Number of connections currently checked out."""
        return len(self._connections) - len(self._idle)

    async def _connect(self) -> aiosqlite.Connection:
        conn = await aiosqlite.connect(self._db_path, isolation_level=None)
        conn.row_factory = aiosqlite.Row
        await conn.execute("PRAGMA foreign_keys = ON;")
        await conn.execute(f"PRAGMA busy_timeout = {self._busy_timeout_ms};")
        await conn.create_function("casefold", 1, _casefold, deterministic=True)
        if self._db_path != MEMORY_DB:
            await conn.execute("PRAGMA journal_mode = WAL;")
            await conn.execute("PRAGMA synchronous = NORMAL;")
        return conn

    async def _checkout(self) -> aiosqlite.Connection:
        async with self._slots:
            while True:
                if self._closed:
                    raise StoreError("Connection pool is closed")
                if self._idle:
                    return self._idle.popleft()
                if len(self._connections) + self._opening < self._size:
                    # Reserve the slot before awaiting so concurrent callers can't overshoot.
                    self._opening += 1
                    break
                await self._slots.wait()

        try:
            conn = await self._connect()
        except Exception as e:
            await self._release_slot()
            raise StoreError(f"Could not open database {self._db_path!r}: {e}") from e
        except BaseException:
            await self._release_slot()
            raise

        async with self._slots:
            self._opening -= 1
            if not self._closed:
                self._connections.append(conn)
                logger.debug(
                    "Opened pooled connection %d/%d", len(self._connections), self._size
                )
                return conn
            self._slots.notify_all()

        with contextlib.suppress(Exception):
            await conn.close()
        raise StoreError("Connection pool is closed")

    async def _release_slot(self) -> None:
        async with self._slots:
            self._opening -= 1
            self._slots.notify()

    async def _checkin(self, conn: aiosqlite.Connection) -> None:
        if conn.in_transaction:
            try:
                await conn.rollback()
            except Exception:
                logger.warning("Discarding connection that failed to roll back", exc_info=True)
                await self._discard(conn)
                return

        async with self._slots:
            if not self._closed:
                self._idle.append(conn)
                self._slots.notify()
                return

        await self._discard(conn)

    async def _discard(self, conn: aiosqlite.Connection) -> None:
        """Drop `conn` from the pool; its slot becomes free for a waiter."""
        async with self._slots:
            if conn in self._connections:
                self._connections.remove(conn)
            self._slots.notify()
        with contextlib.suppress(Exception):
            await conn.close()

    @contextlib.asynccontextmanager
    async def acquire(self) -> AsyncIterator[aiosqlite.Connection]:
        """Borrow a connection; it is always returned, even on error."""
        conn = await self._checkout()
        try:
            yield conn
        finally:
            await self._checkin(conn)

    async def close(self) -> None:
        """Close idle connections now; busy ones are closed when returned.

        Callers waiting in `acquire()` are woken and raise `StoreError`.
        """
        async with self._slots:
            if self._closed:
                return
            self._closed = True
            idle = list(self._idle)
            self._idle.clear()
            for conn in idle:
                self._connections.remove(conn)
            self._slots.notify_all()

        for conn in idle:
            with contextlib.suppress(Exception):
                await conn.close()
        logger.info("Connection pool for %s closed", self._db_path)
