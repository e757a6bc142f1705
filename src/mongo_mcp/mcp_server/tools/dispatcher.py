"""Tool dispatch and response normalization.

The dispatcher turns every ToolRequest into exactly one ToolResponse:

    IDLE -> EXECUTING    request accepted (one at a time)
    EXECUTING -> RESPONDING    handler finished, or failed, or never ran
    RESPONDING -> IDLE    response handed back to the transport

Unknown tools and malformed arguments are rejected before any handler runs.
Handler failures are converted into the server's exception hierarchy and
reported as error responses; nothing short of cancellation escapes dispatch().
"""

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from enum import Enum
from typing import Any

import pydantic

from ..exceptions import (
    MCPServerError,
    ValidationError,
    convert_to_mcp_exception,
    format_validation_errors,
)
from .models import ToolRequest, ToolResponse
from .registry import ToolDefinition, ToolRegistry
from .result_serialization import serialize_mongodb_result

logger = logging.getLogger(__name__)


class DispatchState(str, Enum):
    """Where the dispatcher is in handling the current request."""

    IDLE = "idle"
    EXECUTING = "executing"
    RESPONDING = "responding"


class ToolDispatcher:
    """Serializes tool execution and normalizes results into ToolResponses."""

    def __init__(self, registry: ToolRegistry) -> None:
        self._registry = registry
        self._lock = asyncio.Lock()
        self._state = DispatchState.IDLE

    @property
    def registry(self) -> ToolRegistry:
        return self._registry

    @property
    def state(self) -> DispatchState:
        return self._state

    async def dispatch(self, request: ToolRequest) -> ToolResponse:
        """Run one tool request to completion and return its response."""
        async with self._lock:
            self._state = DispatchState.EXECUTING
            try:
                response = await self._execute(request)
                self._state = DispatchState.RESPONDING
                return response
            finally:
                self._state = DispatchState.IDLE

    async def call(self, tool_name: str, arguments: dict[str, Any] | None = None) -> ToolResponse:
        """Shorthand for dispatch(ToolRequest(tool_name=..., arguments=...))."""
        return await self.dispatch(ToolRequest(tool_name=tool_name, arguments=arguments or {}))

    @asynccontextmanager
    async def drained(self) -> AsyncIterator[None]:
        """Hold the dispatcher idle: waits for the in-flight request, blocks new ones."""
        async with self._lock:
            yield

    async def _execute(self, request: ToolRequest) -> ToolResponse:
        tool_name = request.tool_name
        logger.debug(f"Dispatching {tool_name} with arguments {request.arguments}")

        try:
            definition = self._registry.get(tool_name)
            params = self._validate_arguments(definition, request.arguments)
            result = await definition.handler(params)
            payload = serialize_mongodb_result(result)

        except MCPServerError as e:
            logger.warning(f"Tool {tool_name} rejected: {e}")
            return ToolResponse.failure(e)

        except Exception as e:
            error = convert_to_mcp_exception(
                e,
                default_message=f"Tool '{tool_name}' failed",
                context={"tool": tool_name},
            )
            logger.error(f"Error executing tool {tool_name}: {type(e).__name__}: {e}")
            return ToolResponse.failure(error)

        logger.debug(f"Tool {tool_name} completed")
        return ToolResponse.success(payload)

    @staticmethod
    def _validate_arguments(definition: ToolDefinition, arguments: dict[str, Any]) -> Any:
        if not isinstance(arguments, dict):
            raise ValidationError(
                message=f"Arguments for tool '{definition.name}' must be an object",
                details={"tool": definition.name, "received": type(arguments).__name__},
            )

        try:
            return definition.parameter_schema.model_validate(arguments)
        except pydantic.ValidationError as e:
            raise ValidationError(
                message=f"Invalid arguments for tool '{definition.name}'",
                details={"tool": definition.name, "errors": format_validation_errors(e)},
            ) from e
