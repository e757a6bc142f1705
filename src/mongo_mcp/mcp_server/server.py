"""MongoDB MCP Server using FastMCP.

This module implements a Model Context Protocol (MCP) server that exposes a
fixed set of MongoDB operations as tools over stdio, so an agent can list,
read and modify documents without speaking the MongoDB wire protocol.

Key Features:
    - FastMCP-based stdio server
    - Six tools: list_databases, list_collections, find_documents,
      insert_document, update_document, delete_document
    - One tool call at a time through the ToolDispatcher
    - Fail-fast startup: no connection target or no server means exit status 1
    - Clean shutdown on SIGINT/SIGTERM: the MongoDB client is closed exactly once

Usage:
    mongo-mcp mongodb://localhost:27017
    MONGO_URL=mongodb://localhost:27017 python -m mongo_mcp
"""

import argparse
import asyncio
import contextlib
import logging
import os
import signal
import sys
from typing import Any

from fastmcp import FastMCP
from fastmcp.exceptions import ToolError
from fastmcp.tools import Tool, ToolResult

from mongo_mcp.config.settings import Settings, settings

from .database import ConnectionDiagnostics, ConnectionManager
from .exceptions import ConfigurationError, MCPServerError
from .tools import DocumentTools, ToolDefinition, ToolDispatcher, ToolRequest, build_registry

logger = logging.getLogger(__name__)

# Time allowed for the stdio transport to stop after a termination signal
SHUTDOWN_GRACE_SECONDS = 5.0

SERVER_INSTRUCTIONS = (
    "Tools for reading and modifying a MongoDB deployment. Use list_databases and "
    "list_collections to discover data, find_documents to query it, and "
    "insert_document, update_document and delete_document to change single "
    "documents. Filters, projections, sorts and updates use MongoDB query syntax; "
    "ObjectIds and dates may be given as Extended JSON ({\"$oid\": ...}, {\"$date\": ...})."
)


def configure_logging(level: str) -> None:
    """Send log records to stderr; stdout carries the MCP protocol."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )


class DispatchedTool(Tool):
    """FastMCP tool backed by a registry entry.

    The advertised input schema is the entry's parameter model, and raw
    arguments go straight to the dispatcher, which is the only place they
    are validated.
    """

    _dispatcher: ToolDispatcher | None = None

    def __init__(self, dispatcher: ToolDispatcher, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self._dispatcher = dispatcher

    @classmethod
    def from_definition(
        cls, dispatcher: ToolDispatcher, definition: ToolDefinition
    ) -> "DispatchedTool":
        return cls(
            dispatcher,
            name=definition.name,
            description=definition.description,
            parameters=definition.input_schema(),
        )

    async def run(self, arguments: dict[str, Any]) -> ToolResult:
        response = await self._dispatcher.dispatch(
            ToolRequest(tool_name=self.name, arguments=arguments or {})
        )
        if response.is_error:
            raise ToolError(response.payload)
        return ToolResult(content=response.payload)


def create_server(dispatcher: ToolDispatcher, name: str = "mongo-mcp") -> FastMCP:
    """Create the FastMCP server and expose every registered tool through the dispatcher.

    Args:
        dispatcher: Dispatcher wrapping the tool registry
        name: Server name advertised to clients

    Returns:
        Configured FastMCP server instance
    """
    server = FastMCP(name=name, instructions=SERVER_INSTRUCTIONS)

    for definition in dispatcher.registry:
        server.add_tool(DispatchedTool.from_definition(dispatcher, definition))

    return server


async def _connect_unless_stopped(manager: ConnectionManager, stop: asyncio.Event) -> bool:
    """Connect, giving up early if ``stop`` is set while the ping is pending.

    Returns:
        True once connected, False if shutdown was requested first

    Raises:
        MCPServerError: If the connection attempt itself fails
    """
    connecting = asyncio.create_task(manager.connect(), name="mongo-connect")
    stopping = asyncio.create_task(stop.wait(), name="mcp-stop")

    try:
        done, _ = await asyncio.wait(
            {connecting, stopping}, return_when=asyncio.FIRST_COMPLETED
        )
        if connecting in done:
            connecting.result()
            return True

        connecting.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await connecting
        return False

    finally:
        stopping.cancel()


async def _run_until_signal(
    server: FastMCP,
    dispatcher: ToolDispatcher,
    manager: ConnectionManager,
    stop: asyncio.Event,
) -> int:
    """Serve stdio until the transport ends or ``stop`` is set."""
    serving = asyncio.create_task(server.run_async(transport="stdio"), name="mcp-stdio")
    stopping = asyncio.create_task(stop.wait(), name="mcp-stop")

    try:
        done, _ = await asyncio.wait({serving, stopping}, return_when=asyncio.FIRST_COMPLETED)

        if serving in done:
            # Transport failures propagate to serve() and become exit status 1
            serving.result()
            logger.info("Transport closed, shutting down server...")
            return 0

        logger.info("Shutting down server...")
        async with dispatcher.drained():
            serving.cancel()
            done, _ = await asyncio.wait({serving}, timeout=SHUTDOWN_GRACE_SECONDS)

        if serving not in done:
            # The stdio reader thread cannot be interrupted; exit without waiting for it.
            logger.warning(
                f"Transport did not stop within {SHUTDOWN_GRACE_SECONDS:.0f}s, exiting"
            )
            manager.close()
            logging.shutdown()
            os._exit(0)

        with contextlib.suppress(asyncio.CancelledError):
            serving.result()
        return 0

    finally:
        stopping.cancel()


async def serve(
    connection_string: str,
    config: Settings = settings,
    stop: asyncio.Event | None = None,
) -> int:
    """Connect, register the tools, and serve until shutdown.

    Args:
        connection_string: MongoDB URI to connect to
        config: Settings for pooling, timeouts and diagnostics
        stop: Event that triggers shutdown; when omitted SIGINT/SIGTERM set it

    Returns:
        Process exit status: 0 after a normal shutdown, 1 on a startup fault
    """
    listeners = [ConnectionDiagnostics()] if config.log_pool_events else []
    manager = ConnectionManager(
        connection_string,
        timeout_seconds=config.mongodb_timeout,
        min_pool_size=config.mongodb_min_pool_size,
        max_pool_size=config.mongodb_max_pool_size,
        default_database=config.mongodb_default_database,
        event_listeners=listeners,
    )

    loop = asyncio.get_running_loop()
    installed_signals: list[signal.Signals] = []
    if stop is None:
        stop = asyncio.Event()
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, stop.set)
                installed_signals.append(sig)
            except (NotImplementedError, RuntimeError):
                logger.debug(f"Cannot install handler for {sig.name} on this platform")

    try:
        if not await _connect_unless_stopped(manager, stop):
            logger.info("Shutdown requested before the connection was established")
            return 0

        registry = build_registry(DocumentTools(manager))
        dispatcher = ToolDispatcher(registry)
        server = create_server(dispatcher, name=config.server_name)
        logger.info("MongoDB MCP Server tools registered. Listening via stdio.")

        return await _run_until_signal(server, dispatcher, manager, stop)

    except MCPServerError as e:
        logger.error(f"Failed to start server: {e}")
        return 1

    except Exception as e:
        logger.error(f"Server failed: {e}", exc_info=True)
        return 1

    finally:
        manager.close()
        for sig in installed_signals:
            loop.remove_signal_handler(sig)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="mongo-mcp",
        description="Expose MongoDB database and document operations as MCP tools over stdio.",
    )
    parser.add_argument(
        "connection_string",
        nargs="?",
        default=None,
        help="MongoDB connection string (defaults to the MONGO_URL environment variable)",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        type=str.upper,
        default=None,
        help="Override LOG_LEVEL for diagnostic output on stderr",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> None:
    """Main entry point for the MCP server."""
    args = parse_args(argv)
    configure_logging(args.log_level or settings.log_level)

    try:
        connection_string = settings.resolve_connection_target(args.connection_string)
    except ConfigurationError as e:
        logger.error(e.message)
        sys.exit(1)

    logger.info(f"Starting {settings.server_name} v{settings.server_version}...")

    try:
        exit_code = asyncio.run(serve(connection_string, settings))
    except KeyboardInterrupt:
        logger.info("Server shutdown requested by user")
        exit_code = 0

    sys.exit(exit_code)


if __name__ == "__main__":
    main()
