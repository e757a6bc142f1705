"""Pytest configuration and shared fixtures for the MongoDB MCP server tests.

Test Organization:
-------------------
tests/
├── unit/            # No network: Motor replaced by mocks or the in-memory fake below
├── integration/     # Real MongoDB at TEST_MONGODB_URI, skipped when unreachable
└── conftest.py      # This file - shared fixtures

The in-memory fake implements the small slice of the Motor API the tools use
(find/sort/skip/limit/to_list, insert_one, update_one with $set/$inc,
delete_one, list_collection_names, list_database_names, admin ping) with
top-level equality filters only.
"""

import copy
from pathlib import Path
from types import SimpleNamespace
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest
from bson import ObjectId

from mongo_mcp.mcp_server.database import connection as connection_module
from mongo_mcp.mcp_server.database.connection import ConnectionManager
from mongo_mcp.mcp_server.tools import DocumentTools, ToolDispatcher, build_registry

# =============================================================================
# PYTEST CONFIGURATION
# =============================================================================


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "unit: Fast unit tests with mocked dependencies")
    config.addinivalue_line("markers", "integration: Integration tests with real dependencies")


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their location."""
    for item in items:
        test_path = Path(item.fspath)

        if "unit" in test_path.parts:
            item.add_marker(pytest.mark.unit)
        elif "integration" in test_path.parts:
            item.add_marker(pytest.mark.integration)


# =============================================================================
# IN-MEMORY MOTOR FAKE
# =============================================================================


def _matches(document: dict[str, Any], query: dict[str, Any]) -> bool:
    return all(document.get(key) == value for key, value in query.items())


def _project(document: dict[str, Any], projection: dict[str, Any] | None) -> dict[str, Any]:
    if not projection:
        return copy.deepcopy(document)

    include_id = projection.get("_id", 1)
    inclusions = [key for key, flag in projection.items() if flag and key != "_id"]
    if inclusions:
        projected = {key: document[key] for key in inclusions if key in document}
    else:
        projected = {key: value for key, value in document.items() if projection.get(key, 1)}
    if include_id and "_id" in document:
        projected = {"_id": document["_id"], **projected}
    elif not include_id:
        projected.pop("_id", None)
    return copy.deepcopy(projected)


class FakeCursor:
    """Cursor that applies sort, then skip, then limit, like the server does."""

    def __init__(self, documents: list[dict[str, Any]]) -> None:
        self._documents = documents
        self._sort: list[tuple[str, int]] = []
        self._skip = 0
        self._limit = 0

    def sort(self, keys: list[tuple[str, int]]) -> "FakeCursor":
        self._sort = list(keys)
        return self

    def skip(self, count: int) -> "FakeCursor":
        self._skip = count
        return self

    def limit(self, count: int) -> "FakeCursor":
        self._limit = count
        return self

    async def to_list(self, length: int | None = None) -> list[dict[str, Any]]:
        documents = list(self._documents)
        for key, direction in reversed(self._sort):
            documents.sort(key=lambda doc: doc.get(key), reverse=direction < 0)
        documents = documents[self._skip :]
        if self._limit:
            documents = documents[: self._limit]
        return documents


class FakeCollection:
    def __init__(self, database: "FakeDatabase", name: str) -> None:
        self.database = database
        self.name = name
        self.documents: list[dict[str, Any]] = []

    def find(self, query: dict[str, Any] | None = None, projection=None) -> FakeCursor:
        query = query or {}
        return FakeCursor(
            [_project(doc, projection) for doc in self.documents if _matches(doc, query)]
        )

    async def insert_one(self, document: dict[str, Any]) -> SimpleNamespace:
        document.setdefault("_id", ObjectId())
        self.documents.append(copy.deepcopy(document))
        self.database.created.add(self.name)
        return SimpleNamespace(inserted_id=document["_id"], acknowledged=True)

    async def update_one(self, query: dict[str, Any], update: dict[str, Any]) -> SimpleNamespace:
        for document in self.documents:
            if _matches(document, query):
                before = copy.deepcopy(document)
                for key, value in update.get("$set", {}).items():
                    document[key] = value
                for key, value in update.get("$inc", {}).items():
                    document[key] = document.get(key, 0) + value
                modified = 1 if document != before else 0
                return SimpleNamespace(matched_count=1, modified_count=modified)
        return SimpleNamespace(matched_count=0, modified_count=0)

    async def delete_one(self, query: dict[str, Any]) -> SimpleNamespace:
        for index, document in enumerate(self.documents):
            if _matches(document, query):
                del self.documents[index]
                return SimpleNamespace(deleted_count=1)
        return SimpleNamespace(deleted_count=0)


class FakeDatabase:
    def __init__(self, name: str) -> None:
        self.name = name
        self.collections: dict[str, FakeCollection] = {}
        self.created: set[str] = set()

    def __getitem__(self, name: str) -> FakeCollection:
        if name not in self.collections:
            self.collections[name] = FakeCollection(self, name)
        return self.collections[name]

    async def list_collection_names(self) -> list[str]:
        return sorted(self.created)

    async def command(self, name: str) -> dict[str, Any]:
        return {"ok": 1.0}


class FakeMotorClient:
    """Just enough of AsyncIOMotorClient for the tools and the connection manager."""

    def __init__(self) -> None:
        self.databases: dict[str, FakeDatabase] = {}
        self.close_calls = 0

    def __getitem__(self, name: str) -> FakeDatabase:
        if name not in self.databases:
            self.databases[name] = FakeDatabase(name)
        return self.databases[name]

    @property
    def admin(self) -> FakeDatabase:
        return self["admin"]

    def get_default_database(self, default: str | None = None) -> FakeDatabase:
        return self[default or "test"]

    async def list_database_names(self) -> list[str]:
        user_databases = [name for name, db in self.databases.items() if db.created]
        return sorted({"admin", "local", *user_databases})

    def close(self) -> None:
        self.close_calls += 1


# =============================================================================
# FIXTURES
# =============================================================================


@pytest.fixture
def fake_client(monkeypatch) -> FakeMotorClient:
    """Replace AsyncIOMotorClient in the connection module with an in-memory fake."""
    client = FakeMotorClient()
    monkeypatch.setattr(connection_module, "AsyncIOMotorClient", lambda *args, **kwargs: client)
    return client


@pytest.fixture
async def connection_manager(fake_client: FakeMotorClient) -> ConnectionManager:
    """A ConnectionManager connected to the in-memory fake."""
    manager = ConnectionManager("mongodb://localhost:27017")
    await manager.connect()
    yield manager
    manager.close()


@pytest.fixture
def dispatcher(connection_manager: ConnectionManager) -> ToolDispatcher:
    """A dispatcher over the six tools, backed by the in-memory fake."""
    return ToolDispatcher(build_registry(DocumentTools(connection_manager)))


@pytest.fixture
def mock_motor_client() -> MagicMock:
    """A mocked Motor client for asserting exact driver calls.

    Example:
    --------
    >>> def test_query(mock_motor_client):
    ...     collection = mock_motor_client["db"]["orders"]
    ...     collection.find.return_value.to_list = AsyncMock(return_value=[...])
    """
    client = MagicMock()
    client.admin.command = AsyncMock(return_value={"ok": 1.0})
    client.list_database_names = AsyncMock(return_value=[])
    return client


@pytest.fixture
def mock_connection(mock_motor_client: MagicMock) -> MagicMock:
    """A mocked ConnectionManager whose database() returns MagicMock databases."""
    manager = MagicMock(spec=ConnectionManager)
    manager.client = mock_motor_client
    manager.database.side_effect = lambda name=None: mock_motor_client[name or "test"]
    return manager


# =============================================================================
# TEST DATA FIXTURES
# =============================================================================


@pytest.fixture
def sample_documents() -> list[dict[str, Any]]:
    """Five documents with a strictly increasing "position" field."""
    return [
        {"position": 1, "sku": "A-100", "qty": 5},
        {"position": 2, "sku": "B-200", "qty": 0},
        {"position": 3, "sku": "C-300", "qty": 12},
        {"position": 4, "sku": "D-400", "qty": 7},
        {"position": 5, "sku": "E-500", "qty": 1},
    ]
