"""
Internal DB subpackage for Cadenza.

Split into focused units (table descriptors, schema, pooling, the executor,
ordering fragments, and query groups) behind `CatalogDb` as the single public
interface the rest of the codebase imports.

Re-exports here are primarily for convenience inside the `core` package.
External code should import `CatalogDb` from `cadenza.core.catalog_db`.
"""

from __future__ import annotations

# Table descriptors
from .models import ALBUMS, ARTISTS, TRACKS, Table

# Schema
from .schema import SCHEMA_VERSION, ensure_schema

__all__ = [
    # models
    "Table",
    "ARTISTS",
    "ALBUMS",
    "TRACKS",
    # schema
    "SCHEMA_VERSION",
    "ensure_schema",
]
