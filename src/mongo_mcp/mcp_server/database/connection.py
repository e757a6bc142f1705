"""MongoDB connection manager for the tool server.

This module owns the single Motor client used by every tool. The manager is
created once from configuration, validated by an explicit connect() step that
pings the server, shared read-only with the tool handlers, and closed exactly
once by the top-level lifecycle.

Key Features:
    - Fail fast: a missing connection string or a failed ping raises at startup
    - Cheap database handles for any logical database on the server
    - Idempotent close() that is safe during error unwinding and signal handling
    - Optional connection pool diagnostics through a pymongo event listener

Example:
    >>> manager = ConnectionManager("mongodb://localhost:27017")
    >>> await manager.connect()
    >>> db = manager.database("inventory")
    >>> manager.close()
"""

import logging
from typing import Any

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo.errors import ConfigurationError as PyMongoConfigurationError
from pymongo.errors import PyMongoError

from mongo_mcp.config.settings import redact_connection_string

from ..exceptions import ConfigurationError, DatabaseConnectionError, ShutdownError

logger = logging.getLogger(__name__)


class ConnectionManager:
    """Owns one MongoDB client for the lifetime of the process.

    Handlers receive the manager as a capability and only ever call
    database() or read client; creation and closing belong to the lifecycle.

    Attributes:
        connection_string: The MongoDB URI this manager connects to
        default_database: Database used when the URI does not name one
    """

    def __init__(
        self,
        connection_string: str | None,
        *,
        timeout_seconds: int = 30,
        min_pool_size: int = 0,
        max_pool_size: int = 100,
        default_database: str = "test",
        event_listeners: list[Any] | None = None,
    ) -> None:
        self.connection_string = connection_string
        self.default_database = default_database
        self._timeout_ms = timeout_seconds * 1000
        self._min_pool_size = min_pool_size
        self._max_pool_size = max_pool_size
        self._event_listeners = list(event_listeners or [])

        self._client: AsyncIOMotorClient | None = None
        self._connected: bool = False

        logger.debug("ConnectionManager initialized")

    async def connect(self) -> None:
        """Create the client and verify the server answers a ping.

        Calling connect() on an already connected manager does nothing.

        Raises:
            ConfigurationError: If no connection string was supplied or it is malformed
            DatabaseConnectionError: If the server cannot be reached
        """
        if self._connected:
            logger.debug("Already connected to MongoDB")
            return

        if not self.connection_string:
            raise ConfigurationError(
                message="MongoDB URL is required to connect",
                details={"env_var": "MONGO_URL"},
            )

        redacted = redact_connection_string(self.connection_string)
        logger.info(f"Connecting to MongoDB at {redacted}...")

        try:
            self._client = AsyncIOMotorClient(
                self.connection_string,
                serverSelectionTimeoutMS=self._timeout_ms,
                connectTimeoutMS=self._timeout_ms,
                minPoolSize=self._min_pool_size,
                maxPoolSize=self._max_pool_size,
                event_listeners=self._event_listeners,
            )
        except PyMongoConfigurationError as e:
            raise ConfigurationError(
                message="Invalid MongoDB connection string",
                details={"uri": redacted, "error": str(e)},
                original_exception=e,
            ) from e

        try:
            await self._client.admin.command("ping")
        except PyMongoError as e:
            self._client.close()
            self._client = None
            logger.error(f"Failed to connect to MongoDB: {e}")
            raise DatabaseConnectionError(
                message="Failed to connect to MongoDB",
                details={"uri": redacted, "error": str(e)},
                original_exception=e,
            ) from e

        self._connected = True
        logger.info("Connected to MongoDB")

    @property
    def client(self) -> AsyncIOMotorClient:
        """The Motor client, for server-level operations such as listing databases.

        Raises:
            DatabaseConnectionError: If connect() has not succeeded or close() ran
        """
        if not self._connected or self._client is None:
            raise DatabaseConnectionError(
                message="Not connected to MongoDB. Call connect() first",
                details={"operation": "client"},
            )
        return self._client

    def database(self, name: str | None = None) -> AsyncIOMotorDatabase:
        """Get a handle to a logical database.

        This is side-effect free; no network round trip happens until an
        operation runs against the returned handle.

        Args:
            name: Database name, or None for the URI's default database
                (falling back to default_database when the URI names none)

        Returns:
            AsyncIOMotorDatabase handle

        Raises:
            DatabaseConnectionError: If not connected
        """
        client = self.client
        if name:
            return client[name]
        return client.get_default_database(default=self.default_database)

    def is_connected(self) -> bool:
        """Check if the manager holds a live client."""
        return self._connected

    def close(self) -> bool:
        """Close the client and release pooled connections.

        Safe to call more than once and from error paths. Failures are logged
        and reported through the return value instead of being raised, so
        that shutdown always completes.

        Returns:
            True if closed cleanly or nothing to close, False on error
        """
        if self._client is None:
            logger.debug("Not connected to MongoDB, nothing to close")
            return True

        client = self._client
        self._client = None
        self._connected = False

        try:
            logger.info("Closing MongoDB connection...")
            client.close()
            logger.info("MongoDB connection closed")
            return True

        except Exception as e:
            error = ShutdownError(
                message="Error during MongoDB disconnection",
                original_exception=e,
            )
            logger.error(str(error))
            return False

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"uri='{redact_connection_string(self.connection_string)}', "
            f"connected={self._connected})"
        )
