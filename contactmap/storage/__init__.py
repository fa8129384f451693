"""Persistence helpers: typed collections and the embedded server."""

from .collection import EntityCollection
from .server import EmbeddedServer, EmbeddedServerError

__all__ = ["EntityCollection", "EmbeddedServer", "EmbeddedServerError"]
