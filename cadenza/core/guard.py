"""
Delete guard: parents may not be removed while children reference them.

The store's foreign keys have no ON DELETE action, so deleting a referenced
album or artist would fail (or, without FK enforcement, orphan rows). The
guard answers "can this be deleted, and how many dependents block it?" and
enforces that answer on the delete path.

The dependent count and the delete run inside one write transaction
(`BEGIN IMMEDIATE`), so no dependent can be inserted between the check and
the delete. The foreign key constraint stays as the last line of defence: if
it fires anyway, the violation is reported as a conflict with a fresh count.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import Iterator

import aiosqlite

from cadenza.core import StoreIntegrityError
from cadenza.core.db.executor import Executor, count_rows, delete_row
from cadenza.core.db.models import Table

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class DeleteCheck:
    """Outcome of a dry-run delete check. Unpacks as `(allowed, dependent_count)`."""

    allowed: bool
    dependent_count: int

    @classmethod
    def from_count(cls, count: int) -> DeleteCheck:
        return cls(allowed=count == 0, dependent_count=count)

    def __iter__(self) -> Iterator[bool | int]:
        yield self.allowed
        yield self.dependent_count


class DeleteStatus(enum.Enum):
    DELETED = "deleted"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"


@dataclass(frozen=True, slots=True)
class DeleteResult:
    """
    Outcome of a delete. Truthy iff the row was removed.

    `dependent_count` is non-zero only for `CONFLICT`.
    """

    status: DeleteStatus
    dependent_count: int = 0

    @property
    def deleted(self) -> bool:
        return self.status is DeleteStatus.DELETED

    @property
    def conflict(self) -> bool:
        return self.status is DeleteStatus.CONFLICT

    def __bool__(self) -> bool:
        return self.deleted

    @classmethod
    def from_rowcount(cls, rowcount: int) -> DeleteResult:
        return cls(DeleteStatus.DELETED if rowcount > 0 else DeleteStatus.NOT_FOUND)


class DeleteGuard:
    """Guards deletes of `parent` rows referenced by `child.fk_column`."""

    def __init__(self, parent: Table, child: Table, fk_column: str) -> None:
        if fk_column not in child.writable:
            raise ValueError(f"{fk_column!r} is not a column of {child.name}")
        self.parent = parent
        self.child = child
        self.fk_column = fk_column

    async def count_dependents(self, conn: aiosqlite.Connection, entity_id: str) -> int:
        return await count_rows(
            conn, self.child, where=f"{self.fk_column} = ?", params=(entity_id,)
        )

    async def can_delete(
        self, executor: Executor, entity_id: str, *, timeout: float | None = None
    ) -> DeleteCheck:
        count = await executor.run(
            lambda conn: self.count_dependents(conn, entity_id), timeout=timeout
        )
        return DeleteCheck.from_count(count)

    async def guarded_delete(
        self, executor: Executor, entity_id: str, *, timeout: float | None = None
    ) -> DeleteResult:
        async def check_and_delete(conn: aiosqlite.Connection) -> DeleteResult:
            count = await self.count_dependents(conn, entity_id)
            if count:
                return DeleteResult(DeleteStatus.CONFLICT, count)
            return DeleteResult.from_rowcount(await delete_row(conn, self.parent, entity_id))

        try:
            result = await executor.run(check_and_delete, write=True, timeout=timeout)
        except StoreIntegrityError:
            check = await self.can_delete(executor, entity_id, timeout=timeout)
            if check.allowed:
                raise
            result = DeleteResult(DeleteStatus.CONFLICT, check.dependent_count)

        if result.conflict:
            logger.debug(
                "Refused delete of %s %s: %d dependent %s",
                self.parent.name,
                entity_id,
                result.dependent_count,
                self.child.name,
            )
        return result
