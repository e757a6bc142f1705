"""Base class for tools that reach MongoDB through an injected connection.

Example:
    >>> from mongo_mcp.mcp_server.tools.base_tool import BaseTool
    >>> class MyTool(BaseTool):
    ...     async def count(self, db_name, coll_name):
    ...         collection = self.get_collection(db_name, coll_name)
    ...         return await collection.count_documents({})
"""

import logging

from motor.motor_asyncio import AsyncIOMotorCollection, AsyncIOMotorDatabase

from ..database.connection import ConnectionManager

logger = logging.getLogger(__name__)


class BaseTool:
    """Base class for all MCP tools.

    The connection manager is passed in at construction time; tools only
    read from it and never connect or close it.
    """

    def __init__(self, connection: ConnectionManager) -> None:
        self._connection = connection
        logger.debug(f"Initialized {self.__class__.__name__}")

    @property
    def connection(self) -> ConnectionManager:
        return self._connection

    def get_database(self, name: str | None = None) -> AsyncIOMotorDatabase:
        """Get a Motor database handle.

        Args:
            name: Database name, or None for the connection's default database

        Raises:
            DatabaseConnectionError: If the connection is not open
        """
        return self._connection.database(name)

    def get_collection(self, database_name: str, collection_name: str) -> AsyncIOMotorCollection:
        """Get a Motor collection handle within the named database."""
        return self.get_database(database_name)[collection_name]

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self._connection!r})"
