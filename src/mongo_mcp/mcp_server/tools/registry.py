"""Static registry of the tools this server exposes.

A ToolDefinition binds a tool name to its description, its pydantic
parameter model and an async handler. Definitions are registered once at
startup and never change afterwards.

Example:
    >>> registry = build_registry(DocumentTools(connection_manager))
    >>> registry.names()
    ['list_databases', 'list_collections', 'find_documents', ...]
"""

import inspect
import logging
from collections.abc import Awaitable, Callable, Iterator
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel

from ..exceptions import ToolRegistrationError, UnknownToolError
from .document_tools import DocumentTools
from .models import (
    DeleteDocumentRequest,
    FindDocumentsRequest,
    InsertDocumentRequest,
    ListCollectionsRequest,
    ListDatabasesRequest,
    UpdateDocumentRequest,
)

logger = logging.getLogger(__name__)

ToolHandler = Callable[[Any], Awaitable[Any]]


@dataclass(frozen=True)
class ToolDefinition:
    """A named, schema-described operation callable by an MCP client."""

    name: str
    description: str
    parameter_schema: type[BaseModel]
    handler: ToolHandler

    def input_schema(self) -> dict[str, Any]:
        """JSON schema of the tool's arguments, using wire (alias) names."""
        return self.parameter_schema.model_json_schema(by_alias=True)


class ToolRegistry:
    """Append-only mapping from tool name to ToolDefinition."""

    def __init__(self) -> None:
        self._tools: dict[str, ToolDefinition] = {}

    def register(self, definition: ToolDefinition) -> None:
        """Add a tool definition.

        Raises:
            ToolRegistrationError: If the name is taken, empty, or the handler
                is not an async function
        """
        if not definition.name:
            raise ToolRegistrationError(message="Tool name must not be empty")

        if definition.name in self._tools:
            raise ToolRegistrationError(
                message=f"Tool '{definition.name}' is already registered",
                details={"tool": definition.name},
            )

        if not inspect.iscoroutinefunction(definition.handler):
            raise ToolRegistrationError(
                message=f"Handler for tool '{definition.name}' must be async (use async def)",
                details={"tool": definition.name},
            )

        self._tools[definition.name] = definition
        logger.debug(f"Registered tool {definition.name}")

    def get(self, name: str) -> ToolDefinition:
        """Look up a tool by name.

        Raises:
            UnknownToolError: If no tool with that name is registered
        """
        try:
            return self._tools[name]
        except KeyError:
            raise UnknownToolError(
                message=f"Unknown tool: {name}",
                details={"tool": name, "available_tools": self.names()},
            ) from None

    def names(self) -> list[str]:
        return list(self._tools)

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __iter__(self) -> Iterator[ToolDefinition]:
        return iter(self._tools.values())

    def __len__(self) -> int:
        return len(self._tools)


def build_registry(tools: DocumentTools) -> ToolRegistry:
    """Register the six database and document tools bound to ``tools``."""
    registry = ToolRegistry()

    registry.register(
        ToolDefinition(
            name="list_databases",
            description="List all databases",
            parameter_schema=ListDatabasesRequest,
            handler=tools.list_databases,
        )
    )
    registry.register(
        ToolDefinition(
            name="list_collections",
            description="List all collections in a specified database",
            parameter_schema=ListCollectionsRequest,
            handler=tools.list_collections,
        )
    )
    registry.register(
        ToolDefinition(
            name="find_documents",
            description="Find documents in a collection",
            parameter_schema=FindDocumentsRequest,
            handler=tools.find_documents,
        )
    )
    registry.register(
        ToolDefinition(
            name="insert_document",
            description="Insert a single document into a collection",
            parameter_schema=InsertDocumentRequest,
            handler=tools.insert_document,
        )
    )
    registry.register(
        ToolDefinition(
            name="update_document",
            description="Update a single document in a collection",
            parameter_schema=UpdateDocumentRequest,
            handler=tools.update_document,
        )
    )
    registry.register(
        ToolDefinition(
            name="delete_document",
            description="Delete a single document from a collection",
            parameter_schema=DeleteDocumentRequest,
            handler=tools.delete_document,
        )
    )

    logger.info(f"Registered {len(registry)} tools: {', '.join(registry.names())}")
    return registry
