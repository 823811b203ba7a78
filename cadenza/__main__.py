"""
Cadenza Catalog Service - Entry Point

Run with: python -m cadenza
"""

import argparse
import asyncio
import logging
import sys

from cadenza import __version__
from cadenza.config import CatalogConfig, load_config
from cadenza.core import ConfigError
from cadenza.core.catalog_db import CatalogDb
from cadenza.web.server import WebServer


def setup_logging(verbose: bool = False) -> None:
    """Configure logging for the application."""
    level = logging.DEBUG if verbose else logging.INFO

    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    # Reduce noise from third-party libraries
    logging.getLogger("asyncio").setLevel(logging.WARNING)
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog="cadenza",
        description="Cadenza - artist/album/track catalog service",
    )

    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose (debug) logging",
    )

    parser.add_argument(
        "-c",
        "--config",
        type=str,
        default=None,
        help="Path to a TOML config file (default: built-in defaults)",
    )

    parser.add_argument(
        "--db",
        type=str,
        default=None,
        help="SQLite database path (overrides [database] path)",
    )

    parser.add_argument(
        "--host",
        type=str,
        default=None,
        help="Host address to bind to (overrides [server] host)",
    )

    parser.add_argument(
        "-p",
        "--port",
        type=int,
        default=None,
        help="HTTP port (overrides [server] port)",
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    return parser.parse_args(argv)


async def run_server(config: CatalogConfig) -> None:
    """Open the catalog and serve HTTP until stopped."""
    db = CatalogDb(
        config.database.path,
        pool_size=config.database.pool_size,
        busy_timeout_ms=config.database.busy_timeout_ms,
        operation_timeout=config.database.operation_timeout,
    )
    await db.open()
    try:
        await db.ensure_schema()
        server = WebServer(db)
        await server.start(host=config.server.host, port=config.server.port)
        await server.wait()
    finally:
        await db.close()


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the application."""
    args = parse_args(argv)
    setup_logging(verbose=args.verbose)

    logger = logging.getLogger(__name__)

    try:
        config = load_config(args.config).with_overrides(
            db_path=args.db, host=args.host, port=args.port
        )
    except ConfigError as e:
        logger.error("Invalid configuration: %s", e)
        return 2

    logger.info("Starting Cadenza catalog service...")

    try:
        asyncio.run(run_server(config))
    except KeyboardInterrupt:
        logger.info("Shutdown requested by user")
    except Exception as e:
        logger.exception("Fatal error: %s", e)
        return 1

    logger.info("Server stopped")
    return 0


if __name__ == "__main__":
    sys.exit(main())
