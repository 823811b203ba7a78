"""
Query/mutation executor for the catalog DB.

Two layers live here:

- Statement helpers (`insert_row`, `update_row`, `delete_row`, `select_rows`,
  `count_rows`) take an open connection that is already inside a transaction.
  They can be composed when one unit of work needs several statements.
- `Executor` borrows a pooled connection, opens a transaction, runs one unit
  of work, and commits or rolls back. Driver errors are translated into
  `StoreError` / `StoreIntegrityError`; an exceeded deadline rolls back and
  raises `StoreTimeoutError`.

Important:
- Table and column names come from the `Table` descriptors in
  `cadenza.core.db.models`; WHERE/ORDER BY fragments are static strings owned
  by the query modules. Values are always bound as parameters.
- SQLite transactions are serializable. Writes use `BEGIN IMMEDIATE` so the
  write lock is taken up front and check-then-act sequences inside one unit of
  work can't interleave with other writers.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import sqlite3
from typing import Any, AsyncIterator, Awaitable, Callable, Mapping, Sequence, TypeVar

import aiosqlite

from cadenza.core import StoreError, StoreIntegrityError, StoreTimeoutError
from cadenza.core.db.models import Table, new_id, next_timestamp, utc_timestamp
from cadenza.core.db.pool import ConnectionPool

logger = logging.getLogger(__name__)

T = TypeVar("T")

Params = Sequence[Any] | Mapping[str, Any]

# Largest value SQLite can bind as an INTEGER.
SQLITE_MAX_INTEGER = 2**63 - 1

# ---------------------------------------------------------------------------
# Statement helpers (caller owns the transaction)
# ---------------------------------------------------------------------------


async def fetch_by_id(
    conn: aiosqlite.Connection, table: Table, row_id: str
) -> aiosqlite.Row | None:
    cursor = await conn.execute(
        f"SELECT {', '.join(table.columns)} FROM {table.name} WHERE id = ?;",
        (row_id,),
    )
    return await cursor.fetchone()


async def insert_row(
    conn: aiosqlite.Connection, table: Table, fields: dict[str, Any]
) -> aiosqlite.Row:
    """
    Insert one row with a fresh id and creation/update stamps.

    Returns the row as re-read from the store, so callers see server-assigned
    values rather than their own input.
    """
    table.check_writable(fields)
    row_id = new_id()
    stamp = utc_timestamp()
    values = {"id": row_id, **fields, "created_at": stamp, "updated_at": stamp}
    columns = ", ".join(values)
    placeholders = ", ".join(f":{c}" for c in values)
    await conn.execute(
        f"INSERT INTO {table.name} ({columns}) VALUES ({placeholders});",
        values,
    )
    row = await fetch_by_id(conn, table, row_id)
    if row is None:
        raise StoreError(f"Insert into {table.name} failed: row not found after insert.")
    logger.debug("Inserted %s %s", table.name, row_id)
    return row


async def update_row(
    conn: aiosqlite.Connection, table: Table, row_id: str, fields: dict[str, Any]
) -> int:
    """
    Update one row by id and re-stamp `updated_at`.

    The new stamp is strictly later than the stored one. `id` and
    `created_at` are never written. Returns the number of rows affected.
    """
    table.check_writable(fields)
    cursor = await conn.execute(
        f"SELECT updated_at FROM {table.name} WHERE id = ?;",
        (row_id,),
    )
    current = await cursor.fetchone()
    if current is None:
        return 0

    values = {**fields, "updated_at": next_timestamp(current["updated_at"])}
    assignments = ", ".join(f"{c} = :{c}" for c in values)
    cursor = await conn.execute(
        f"UPDATE {table.name} SET {assignments} WHERE id = :row_id;",
        {**values, "row_id": row_id},
    )
    return cursor.rowcount


async def delete_row(conn: aiosqlite.Connection, table: Table, row_id: str) -> int:
    cursor = await conn.execute(f"DELETE FROM {table.name} WHERE id = ?;", (row_id,))
    return cursor.rowcount


async def select_rows(
    conn: aiosqlite.Connection,
    table: Table,
    *,
    where: str | None = None,
    params: Params = (),
    order_by: str | None = None,
    limit: int | None = None,
    offset: int = 0,
) -> list[aiosqlite.Row]:
    """
    Select rows from one table.

    `where` and `order_by` are static SQL fragments (without the keywords);
    `limit`/`offset` are bound as parameters.

    An offset past the largest SQLite integer can only point beyond the last
    row, so it yields an empty list without querying.
    """
    if limit is not None and offset > SQLITE_MAX_INTEGER:
        return []

    sql = f"SELECT {', '.join(table.columns)} FROM {table.name}"
    if where:
        sql += f" WHERE {where}"
    if order_by:
        sql += f" ORDER BY {order_by}"

    bound: list[Any] = list(params) if not isinstance(params, Mapping) else []
    named: dict[str, Any] = dict(params) if isinstance(params, Mapping) else {}
    if limit is not None:
        if named:
            sql += " LIMIT :_limit OFFSET :_offset"
            named.update(_limit=min(int(limit), SQLITE_MAX_INTEGER), _offset=int(offset))
        else:
            sql += " LIMIT ? OFFSET ?"
            bound.extend((min(int(limit), SQLITE_MAX_INTEGER), int(offset)))

    cursor = await conn.execute(sql + ";", named if named else bound)
    return list(await cursor.fetchall())


async def count_rows(
    conn: aiosqlite.Connection,
    table: Table,
    *,
    where: str | None = None,
    params: Params = (),
) -> int:
    sql = f"SELECT COUNT(*) AS c FROM {table.name}"
    if where:
        sql += f" WHERE {where}"
    cursor = await conn.execute(sql + ";", params)
    row = await cursor.fetchone()
    return int(row["c"]) if row is not None else 0


# ---------------------------------------------------------------------------
# Executor (one transaction per unit of work)
# ---------------------------------------------------------------------------


def _translate(e: sqlite3.Error) -> StoreError:
    if isinstance(e, sqlite3.IntegrityError):
        return StoreIntegrityError(str(e))
    return StoreError(str(e))


class Executor:
    """
    Runs units of work against the pool, one transaction each.

    `timeout` is the default deadline in seconds for every operation
    (`None` disables it); each call may override it.
    """

    def __init__(self, pool: ConnectionPool, *, timeout: float | None = None) -> None:
        self._pool = pool
        self._timeout = timeout

    @property
    def pool(self) -> ConnectionPool:
        return self._pool

    @contextlib.asynccontextmanager
    async def transaction(self, *, write: bool = False) -> AsyncIterator[aiosqlite.Connection]:
        """
        Borrow a connection and hold one transaction open on it.

        Commits when the body completes, rolls back on any exception.
        """
        async with self._pool.acquire() as conn:
            try:
                await conn.execute("BEGIN IMMEDIATE;" if write else "BEGIN;")
            except sqlite3.Error as e:
                raise _translate(e) from e

            try:
                yield conn
            except sqlite3.Error as e:
                await conn.rollback()
                raise _translate(e) from e
            except BaseException:
                # Cancellation included; the pool also rolls back on check-in.
                if conn.in_transaction:
                    await conn.rollback()
                raise

            try:
                await conn.commit()
            except sqlite3.Error as e:
                await conn.rollback()
                raise _translate(e) from e

    async def run(
        self,
        work: Callable[[aiosqlite.Connection], Awaitable[T]],
        *,
        write: bool = False,
        timeout: float | None = None,
    ) -> T:
        """Execute `work(conn)` as one unit of work under the deadline."""

        async def unit() -> T:
            async with self.transaction(write=write) as conn:
                return await work(conn)

        deadline = self._timeout if timeout is None else timeout
        if deadline is None:
            return await unit()

        try:
            return await asyncio.wait_for(unit(), timeout=deadline)
        except asyncio.TimeoutError as e:
            logger.warning("Store operation exceeded %.3fs deadline; rolled back", deadline)
            raise StoreTimeoutError(f"Operation exceeded {deadline}s deadline") from e

    # Single-statement conveniences -------------------------------------------------

    async def insert(
        self, table: Table, fields: dict[str, Any], *, timeout: float | None = None
    ) -> aiosqlite.Row:
        return await self.run(
            lambda conn: insert_row(conn, table, fields), write=True, timeout=timeout
        )

    async def update(
        self,
        table: Table,
        row_id: str,
        fields: dict[str, Any],
        *,
        timeout: float | None = None,
    ) -> int:
        return await self.run(
            lambda conn: update_row(conn, table, row_id, fields), write=True, timeout=timeout
        )

    async def delete(self, table: Table, row_id: str, *, timeout: float | None = None) -> int:
        return await self.run(
            lambda conn: delete_row(conn, table, row_id), write=True, timeout=timeout
        )

    async def get(
        self, table: Table, row_id: str, *, timeout: float | None = None
    ) -> aiosqlite.Row | None:
        return await self.run(lambda conn: fetch_by_id(conn, table, row_id), timeout=timeout)

    async def select(
        self,
        table: Table,
        *,
        where: str | None = None,
        params: Params = (),
        order_by: str | None = None,
        limit: int | None = None,
        offset: int = 0,
        timeout: float | None = None,
    ) -> list[aiosqlite.Row]:
        return await self.run(
            lambda conn: select_rows(
                conn,
                table,
                where=where,
                params=params,
                order_by=order_by,
                limit=limit,
                offset=offset,
            ),
            timeout=timeout,
        )

    async def count(
        self,
        table: Table,
        *,
        where: str | None = None,
        params: Params = (),
        timeout: float | None = None,
    ) -> int:
        return await self.run(
            lambda conn: count_rows(conn, table, where=where, params=params), timeout=timeout
        )
