"""
Table descriptors and small helpers shared by the executor and query modules.

This module is intentionally lightweight:
- No DB connection knowledge
- No SQL
- Pure dataclasses + helper functions

The `Table` descriptors double as the whitelist of identifiers the executor
is allowed to interpolate into SQL. Values are always bound as parameters.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Final


@dataclass(frozen=True, slots=True)
class Table:
    """A catalog table: its name and the columns callers may write."""

    name: str
    writable: tuple[str, ...]

    @property
    def columns(self) -> tuple[str, ...]:
        return ("id", *self.writable, "created_at", "updated_at")

    def check_writable(self, fields: dict[str, object]) -> None:
        unknown = set(fields) - set(self.writable)
        if unknown:
            raise ValueError(f"Unknown column(s) for {self.name}: {sorted(unknown)}")


ARTISTS: Final[Table] = Table("artists", ("name", "genre"))
ALBUMS: Final[Table] = Table("albums", ("title", "release_year", "artist_id"))
TRACKS: Final[Table] = Table("tracks", ("title", "duration_seconds", "album_id"))


def new_id() -> str:
    """Return a fresh random UUID in canonical string form."""
    return str(uuid.uuid4())


def utc_timestamp(now: datetime | None = None) -> str:
    """
    Render a UTC timestamp as a fixed-width ISO-8601 string.

    Microseconds are always present so that lexical order equals
    chronological order (ORDER BY on the text column is correct).
    """
    if now is None:
        now = datetime.now(timezone.utc)
    return now.astimezone(timezone.utc).isoformat(timespec="microseconds")


def next_timestamp(previous: str | None) -> str:
    """
    Return a timestamp strictly later than `previous`.

    Two stamps taken within the clock's resolution would otherwise compare
    equal, so the result is bumped by one microsecond when needed.
    """
    now = datetime.now(timezone.utc)
    if previous is not None:
        floor = datetime.fromisoformat(previous) + timedelta(microseconds=1)
        if now < floor:
            now = floor
    return utc_timestamp(now)


def normalize_text(value: str | None) -> str | None:
    """
    Normalize optional text fields:
    - strip whitespace
    - coerce empty strings to None
    """
    if value is None:
        return None
    v = value.strip()
    return v if v else None
