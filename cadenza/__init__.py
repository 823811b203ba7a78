"""
Cadenza - A catalog service for artists, albums and tracks.

Cadenza keeps a small relational catalog with referential integrity:
albums belong to artists, tracks belong to albums, and parents can't be
deleted while children reference them.
"""

__version__ = "0.1.0"
__license__ = "GPL-2.0"

__all__ = ["__version__"]
