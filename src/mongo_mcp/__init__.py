"""MongoDB MCP server: database and document operations exposed as MCP tools."""

__version__ = "1.0.0"
