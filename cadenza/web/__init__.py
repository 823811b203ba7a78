"""
Cadenza Web Layer.

This package provides the HTTP plumbing around the catalog: request parsing
and validation, status code mapping, and JSON rendering of value objects.

Components:
- WebServer: FastAPI application with all routes
- validation: field and pagination checks applied before the repositories
"""

from cadenza.web.server import WebServer

__all__ = [
    "WebServer",
]
