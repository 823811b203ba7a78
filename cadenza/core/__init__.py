"""
Core domain package.

This package contains the catalog's data access and aggregation logic, which
is independent of any UI layer (web, CLI, etc.).

Consumers should usually import from the specific module they need
(e.g. `cadenza.core.catalog_db` or `cadenza.core.repositories`).

Expected outcomes (not-found, delete conflicts) are returned as values.
Only infrastructure failures are raised, using the hierarchy below.
"""

from __future__ import annotations

__all__: list[str] = [
    "CoreError",
    "ConfigError",
    "StoreError",
    "StoreIntegrityError",
    "StoreTimeoutError",
]


class CoreError(Exception):
    """Base class for core-layer exceptions."""


class ConfigError(CoreError):
    """Raised when the configuration file holds invalid values."""


class StoreError(CoreError):
    """Raised when the store fails; the enclosing transaction has been rolled back."""


class StoreIntegrityError(StoreError):
    """Raised when a write violates a store constraint (foreign key, check, unique)."""


class StoreTimeoutError(StoreError):
    """Raised when an operation exceeds its deadline and was rolled back."""
