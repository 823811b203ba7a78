"""
Web Server Module for Cadenza.

This module provides the WebServer class that creates and manages the
FastAPI application, registers all routes, and maps store failures to HTTP
responses:

- StoreTimeoutError -> 504
- StoreError (anything else from the store) -> 500
- RequestValidationError (unparseable query parameters) -> 400

Not-found and delete conflicts never reach these handlers; the routes turn
those values into 404/409 themselves.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

import uvicorn
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from cadenza import __version__
from cadenza.core import StoreError, StoreTimeoutError
from cadenza.web.routes.api import register_api_routes

if TYPE_CHECKING:
    from cadenza.core.catalog_db import CatalogDb

logger = logging.getLogger(__name__)


class WebServer:
    """FastAPI-based web server for the catalog."""

    def __init__(self, catalog: CatalogDb) -> None:
        """
        Initialize the WebServer.

        Args:
            catalog: Open catalog database used by all handlers
        """
        self.catalog = catalog

        self.app = FastAPI(
            title="Cadenza",
            description="Artist/album/track catalog service",
            version=__version__,
        )

        # Server state
        self._server: uvicorn.Server | None = None
        self._serve_task: asyncio.Task | None = None
        self._host = "127.0.0.1"
        self._port = 8080

        self._register_exception_handlers()
        self._register_routes()

    def _register_exception_handlers(self) -> None:
        @self.app.exception_handler(RequestValidationError)
        async def validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
            # Unparseable query/path parameters: 400, like every other input error.
            return JSONResponse(status_code=400, content={"detail": jsonable_encoder(exc.errors())})

        @self.app.exception_handler(StoreTimeoutError)
        async def store_timeout_handler(request: Request, exc: StoreTimeoutError) -> JSONResponse:
            logger.warning("%s %s timed out: %s", request.method, request.url.path, exc)
            return JSONResponse(status_code=504, content={"detail": "Store operation timed out"})

        @self.app.exception_handler(StoreError)
        async def store_error_handler(request: Request, exc: StoreError) -> JSONResponse:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc)
            return JSONResponse(status_code=500, content={"detail": "Store error"})

    def _register_routes(self) -> None:
        """Register all routes with the FastAPI app."""

        @self.app.get("/health")
        async def health_check() -> dict[str, str]:
            """Health check endpoint."""
            return {"status": "ok", "server": "cadenza"}

        register_api_routes(self.app, catalog=self.catalog)

    async def start(self, host: str = "127.0.0.1", port: int = 8080) -> None:
        """
        Start the web server in the background.

        Args:
            host: Host address to bind to
            port: Port to listen on
        """
        self._host = host
        self._port = port

        config = uvicorn.Config(
            self.app,
            host=host,
            port=port,
            log_level="warning",
            access_log=False,
        )
        self._server = uvicorn.Server(config)
        self._serve_task = asyncio.create_task(self._server.serve())

        logger.info("Web server started on http://%s:%d", host, port)

    async def wait(self) -> None:
        """Block until the server task finishes."""
        if self._serve_task is not None:
            await self._serve_task

    async def stop(self) -> None:
        """Stop the web server."""
        if self._server is not None:
            self._server.should_exit = True
            self._server = None
        if self._serve_task is not None:
            await self._serve_task
            self._serve_task = None

        logger.info("Web server stopped")

    @property
    def port(self) -> int:
        """Get the server port."""
        return self._port

    @property
    def host(self) -> str:
        """Get the server host."""
        return self._host
