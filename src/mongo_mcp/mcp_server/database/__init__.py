"""MongoDB connection lifecycle."""

from .connection import ConnectionManager
from .diagnostics import ConnectionDiagnostics

__all__ = ["ConnectionDiagnostics", "ConnectionManager"]
