"""Pydantic models for MCP tool requests and responses.

Each tool declares its parameter schema as one of the request models below.
Arguments are validated against the model before a handler runs, so
handlers never see malformed input.

Design Principles:
    - Wire names are camelCase (databaseName, collectionName); Python
      attributes are snake_case through field aliases
    - Query, projection, sort, filter, update and document values are opaque
      records: validated only as "a mapping with string keys" and passed to
      MongoDB as-is (after Extended JSON decoding)
    - Unknown extra arguments are ignored
"""

from typing import Any

from bson.errors import BSONError
from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..exceptions import MCPServerError
from .result_serialization import decode_extended_json

# Opaque, order-preserving MongoDB document / query record
Document = dict[str, Any]


def _decode_record(value: Document | None) -> Document | None:
    if value is None:
        return None
    try:
        return decode_extended_json(value)
    except (TypeError, ValueError, BSONError) as e:
        raise ValueError(f"Invalid Extended JSON value: {e}") from e


class ToolArguments(BaseModel):
    """Base for every tool parameter model."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")


# =============================================================================
# TOOL PARAMETER MODELS
# =============================================================================


class ListDatabasesRequest(ToolArguments):
    """list_databases takes no arguments."""


class DatabaseRequest(ToolArguments):
    """Arguments addressing one database."""

    database_name: str = Field(
        ...,
        alias="databaseName",
        min_length=1,
        strict=True,
        description="Name of the database",
    )


class CollectionRequest(DatabaseRequest):
    """Arguments addressing one collection within a database."""

    collection_name: str = Field(
        ...,
        alias="collectionName",
        min_length=1,
        strict=True,
        description="Name of the collection",
    )


class ListCollectionsRequest(DatabaseRequest):
    """Request model for listing the collections of a database."""


class FindDocumentsRequest(CollectionRequest):
    """Request model for retrieving documents.

    Projection, sort, skip and limit are applied in that order. A limit or
    skip of 0 is treated as not set, as MongoDB does. Whole-number floats
    (2.0) are accepted for limit and skip; fractional values are not.
    """

    query: Document = Field(
        default_factory=dict, description="Query filter object (MongoDB syntax)"
    )
    projection: Document | None = Field(None, description="Projection object (MongoDB syntax)")
    sort: Document | None = Field(
        None, description="Sort order (MongoDB syntax), e.g. {\"createdAt\": -1}"
    )
    limit: int | None = Field(
        None, ge=0, strict=True, description="Maximum number of documents to return"
    )
    skip: int | None = Field(None, ge=0, strict=True, description="Number of documents to skip")

    @field_validator("limit", "skip", mode="before")
    @classmethod
    def accept_integral_numbers(cls, value: Any) -> Any:
        # JSON numbers such as 2.0 arrive as floats; strings and booleans stay rejected
        if isinstance(value, float) and value.is_integer():
            return int(value)
        return value

    @field_validator("query", "projection", "sort")
    @classmethod
    def decode_records(cls, value: Document | None) -> Document | None:
        return _decode_record(value)


class InsertDocumentRequest(CollectionRequest):
    """Request model for inserting a single document."""

    document: Document = Field(..., description="Document to insert")

    @field_validator("document")
    @classmethod
    def decode_document(cls, value: Document) -> Document:
        return _decode_record(value)


class UpdateDocumentRequest(CollectionRequest):
    """Request model for updating the first document matching a filter."""

    filter: Document = Field(..., description="Filter to select the document to update")
    update: Document = Field(..., description="Update operations to apply")

    @field_validator("filter", "update")
    @classmethod
    def decode_records(cls, value: Document) -> Document:
        return _decode_record(value)


class DeleteDocumentRequest(CollectionRequest):
    """Request model for deleting the first document matching a filter."""

    filter: Document = Field(..., description="Filter to select the document to delete")

    @field_validator("filter")
    @classmethod
    def decode_filter(cls, value: Document) -> Document:
        return _decode_record(value)


# =============================================================================
# DISPATCH MODELS
# =============================================================================


class ToolRequest(BaseModel):
    """One tool invocation as received from the transport."""

    tool_name: str = Field(..., description="Registered name of the tool to run")
    arguments: dict[str, Any] = Field(
        default_factory=dict, description="Raw, not yet validated tool arguments"
    )


class ToolResponse(BaseModel):
    """The single response produced for every ToolRequest."""

    payload: str = Field(..., description="Serialized result text or error description")
    is_error: bool = Field(False, description="True when payload describes a failure")

    @classmethod
    def success(cls, payload: str) -> "ToolResponse":
        return cls(payload=payload, is_error=False)

    @classmethod
    def failure(cls, error: MCPServerError) -> "ToolResponse":
        return cls(payload=str(error), is_error=True)
