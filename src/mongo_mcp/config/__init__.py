"""Configuration for the MongoDB MCP server."""

from .settings import Settings, redact_connection_string, settings

__all__ = ["Settings", "redact_connection_string", "settings"]
