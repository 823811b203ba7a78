"""
Shared ORDER BY fragments for catalog queries.

These helpers centralize the translation from higher-level sort keys into
SQL snippets so the logic doesn't get duplicated across query modules.

Important:
- The returned strings are *static SQL fragments* selected from a small
  whitelist. Do NOT concatenate user input into ORDER BY.
- Fragments are returned without the `ORDER BY` keyword; the executor adds it.
- Every ordering ends with `rowid` so rows sharing a sort key keep their
  insertion order and pagination windows never overlap or skip.
"""

from __future__ import annotations

from typing import Literal

ArtistsOrderBy = Literal["created", "name"]
AlbumsOrderBy = Literal["release_year_desc", "release_year_asc"]
TracksOrderBy = Literal["created", "title"]


def artists_order_clause(order_by: ArtistsOrderBy = "created") -> str:
    """Newest artists first by default."""
    if order_by == "name":
        return "name COLLATE NOCASE ASC, rowid ASC"
    return "created_at DESC, rowid DESC"


def albums_order_clause(order_by: AlbumsOrderBy = "release_year_desc") -> str:
    """
    Album listings.

    The global listing shows the newest releases first; listings scoped to one
    artist read as a discography, oldest first.
    """
    if order_by == "release_year_asc":
        return "release_year ASC, created_at ASC, rowid ASC"
    return "release_year DESC, created_at DESC, rowid DESC"


def tracks_order_clause(order_by: TracksOrderBy = "created") -> str:
    if order_by == "title":
        return "title COLLATE NOCASE ASC, rowid ASC"
    return "created_at DESC, rowid DESC"


# Nested artist view: discography order, tracks in insertion order.
ARTIST_TREE_ORDER = (
    "al.release_year ASC, al.created_at ASC, al.rowid ASC, "
    "t.created_at ASC, t.rowid ASC"
)
