"""
Configuration management for Cadenza.

Loads database and server settings from a TOML file:

    [database]
    path = "cadenza.db"
    pool_size = 5
    busy_timeout_ms = 5000
    operation_timeout = 10.0

    [server]
    host = "127.0.0.1"
    port = 8080

Every key is optional; a missing file yields the defaults.
"""

from __future__ import annotations

import logging
import tomllib
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

from cadenza.core import ConfigError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DatabaseConfig:
    """Store settings."""

    path: str = "cadenza.db"
    pool_size: int = 5
    busy_timeout_ms: int = 5000
    operation_timeout: float | None = 10.0


@dataclass(frozen=True)
class ServerConfig:
    """HTTP listener settings."""

    host: str = "127.0.0.1"
    port: int = 8080


@dataclass(frozen=True)
class CatalogConfig:
    """Loaded configuration."""

    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    server: ServerConfig = field(default_factory=ServerConfig)

    def with_overrides(
        self,
        *,
        db_path: str | None = None,
        host: str | None = None,
        port: int | None = None,
    ) -> CatalogConfig:
        """Return a copy with command-line overrides applied (None keeps the file value)."""
        database = self.database
        server = self.server
        if db_path is not None:
            database = replace(database, path=db_path)
        if host is not None:
            server = replace(server, host=host)
        if port is not None:
            server = replace(server, port=port)
        config = replace(self, database=database, server=server)
        validate_config(config)
        return config


def validate_config(config: CatalogConfig) -> None:
    """Raise ConfigError for values the service can't run with."""
    db = config.database
    if not db.path:
        raise ConfigError("database.path must not be empty")
    if db.pool_size < 1:
        raise ConfigError(f"database.pool_size must be >= 1, got {db.pool_size}")
    if db.busy_timeout_ms < 0:
        raise ConfigError(f"database.busy_timeout_ms must be >= 0, got {db.busy_timeout_ms}")
    if db.operation_timeout is not None and db.operation_timeout <= 0:
        raise ConfigError(
            f"database.operation_timeout must be positive, got {db.operation_timeout}"
        )
    if not 1 <= config.server.port <= 65535:
        raise ConfigError(f"server.port must be in 1..65535, got {config.server.port}")


def _section(data: dict[str, Any], name: str) -> dict[str, Any]:
    section = data.get(name, {})
    if not isinstance(section, dict):
        raise ConfigError(f"[{name}] must be a table")
    return section


def _parse_database(data: dict[str, Any]) -> DatabaseConfig:
    defaults = DatabaseConfig()
    timeout = data.get("operation_timeout", defaults.operation_timeout)
    try:
        return DatabaseConfig(
            path=str(data.get("path", defaults.path)),
            pool_size=int(data.get("pool_size", defaults.pool_size)),
            busy_timeout_ms=int(data.get("busy_timeout_ms", defaults.busy_timeout_ms)),
            # 0 in the file means "no deadline"
            operation_timeout=float(timeout) if timeout else None,
        )
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Invalid [database] setting: {e}") from e


def _parse_server(data: dict[str, Any]) -> ServerConfig:
    defaults = ServerConfig()
    try:
        return ServerConfig(
            host=str(data.get("host", defaults.host)),
            port=int(data.get("port", defaults.port)),
        )
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Invalid [server] setting: {e}") from e


def load_config(config_path: Path | str | None = None) -> CatalogConfig:
    """
    Load configuration from a TOML file.

    Args:
        config_path: Path to the TOML file. If None or missing, defaults are used.

    Returns:
        Loaded and validated CatalogConfig instance.
    """
    if config_path is None:
        return CatalogConfig()

    path = Path(config_path)
    if not path.exists():
        logger.info("Config file %s not found, using defaults", path)
        return CatalogConfig()

    logger.debug("Loading config from %s", path)

    try:
        with path.open("rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Could not parse {path}: {e}") from e

    config = CatalogConfig(
        database=_parse_database(_section(data, "database")),
        server=_parse_server(_section(data, "server")),
    )
    validate_config(config)
    return config
