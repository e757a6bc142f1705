"""Handlers for the database and document tools.

Every handler performs exactly one MongoDB call with the validated arguments
and returns the raw result reshaped into the tool's output shape. Handlers do
not retry and do not catch driver errors; failures propagate to the
dispatcher, which reports them to the caller.
"""

import logging
from typing import Any

from .base_tool import BaseTool
from .models import (
    DeleteDocumentRequest,
    FindDocumentsRequest,
    InsertDocumentRequest,
    ListCollectionsRequest,
    ListDatabasesRequest,
    UpdateDocumentRequest,
)

logger = logging.getLogger(__name__)


class DocumentTools(BaseTool):
    """List, find, insert, update and delete operations on MongoDB."""

    async def list_databases(self, request: ListDatabasesRequest) -> list[str]:
        """Return the names of all databases visible to the connection."""
        return await self.connection.client.list_database_names()

    async def list_collections(self, request: ListCollectionsRequest) -> list[str]:
        """Return the collection names of one database."""
        database = self.get_database(request.database_name)
        return await database.list_collection_names()

    async def find_documents(self, request: FindDocumentsRequest) -> list[dict[str, Any]]:
        """Return documents matching the query.

        Projection, sort, skip and limit are applied in that order; a skip or
        limit of 0 leaves the cursor unchanged.
        """
        collection = self.get_collection(request.database_name, request.collection_name)

        cursor = collection.find(request.query, request.projection)
        if request.sort:
            cursor = cursor.sort(list(request.sort.items()))
        if request.skip:
            cursor = cursor.skip(request.skip)
        if request.limit:
            cursor = cursor.limit(request.limit)

        documents = await cursor.to_list(length=None)
        logger.debug(
            f"find_documents returned {len(documents)} documents from "
            f"{request.database_name}.{request.collection_name}"
        )
        return documents

    async def insert_document(self, request: InsertDocumentRequest) -> dict[str, Any]:
        """Insert one document and return its assigned identifier."""
        collection = self.get_collection(request.database_name, request.collection_name)
        # insert_one adds _id to the dict it is given
        result = await collection.insert_one(dict(request.document))
        return {"insertedId": result.inserted_id}

    async def update_document(self, request: UpdateDocumentRequest) -> dict[str, int]:
        """Apply update operators to the first document matching the filter."""
        collection = self.get_collection(request.database_name, request.collection_name)
        result = await collection.update_one(request.filter, request.update)
        return {"matchedCount": result.matched_count, "modifiedCount": result.modified_count}

    async def delete_document(self, request: DeleteDocumentRequest) -> dict[str, int]:
        """Delete the first document matching the filter."""
        collection = self.get_collection(request.database_name, request.collection_name)
        result = await collection.delete_one(request.filter)
        return {"deletedCount": result.deleted_count}
