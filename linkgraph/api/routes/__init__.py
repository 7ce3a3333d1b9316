"""HTTP API route handlers."""

from . import graph, system

__all__ = ["graph", "system"]
