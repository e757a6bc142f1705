"""MCP tools for MongoDB database and document operations.

- document_tools: the six handlers, one MongoDB call each
- registry: name -> (description, parameter model, handler)
- dispatcher: validation, execution and response normalization
"""

from .dispatcher import DispatchState, ToolDispatcher
from .document_tools import DocumentTools
from .models import ToolRequest, ToolResponse
from .registry import ToolDefinition, ToolRegistry, build_registry

__all__ = [
    "DispatchState",
    "DocumentTools",
    "ToolDefinition",
    "ToolDispatcher",
    "ToolRegistry",
    "ToolRequest",
    "ToolResponse",
    "build_registry",
]
