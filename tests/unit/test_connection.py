"""Unit tests for ConnectionManager: connect, database handles and close."""

import logging
from unittest.mock import AsyncMock, MagicMock

import pytest
from pymongo.errors import ServerSelectionTimeoutError

from mongo_mcp.mcp_server.database import ConnectionDiagnostics
from mongo_mcp.mcp_server.database import connection as connection_module
from mongo_mcp.mcp_server.database.connection import ConnectionManager
from mongo_mcp.mcp_server.exceptions import ConfigurationError, DatabaseConnectionError


class TestConnect:
    async def test_connect_pings_server(self, monkeypatch):
        client = MagicMock()
        client.admin.command = AsyncMock(return_value={"ok": 1.0})
        factory = MagicMock(return_value=client)
        monkeypatch.setattr(connection_module, "AsyncIOMotorClient", factory)

        manager = ConnectionManager(
            "mongodb://localhost:27017", timeout_seconds=5, max_pool_size=10
        )
        await manager.connect()

        assert manager.is_connected()
        client.admin.command.assert_awaited_once_with("ping")
        _, kwargs = factory.call_args
        assert kwargs["serverSelectionTimeoutMS"] == 5000
        assert kwargs["maxPoolSize"] == 10

    async def test_connect_twice_is_noop(self, monkeypatch):
        client = MagicMock()
        client.admin.command = AsyncMock(return_value={"ok": 1.0})
        factory = MagicMock(return_value=client)
        monkeypatch.setattr(connection_module, "AsyncIOMotorClient", factory)

        manager = ConnectionManager("mongodb://localhost:27017")
        await manager.connect()
        await manager.connect()

        factory.assert_called_once()

    @pytest.mark.parametrize("uri", [None, ""])
    async def test_missing_connection_string(self, uri):
        manager = ConnectionManager(uri)

        with pytest.raises(ConfigurationError):
            await manager.connect()

        assert not manager.is_connected()

    async def test_failed_ping_raises_and_closes_client(self, monkeypatch):
        client = MagicMock()
        client.admin.command = AsyncMock(
            side_effect=ServerSelectionTimeoutError("No servers found")
        )
        monkeypatch.setattr(connection_module, "AsyncIOMotorClient", MagicMock(return_value=client))

        manager = ConnectionManager("mongodb://unreachable:27017", timeout_seconds=1)

        with pytest.raises(DatabaseConnectionError) as exc_info:
            await manager.connect()

        assert "No servers found" in exc_info.value.details["error"]
        client.close.assert_called_once()
        assert not manager.is_connected()


class TestDatabaseHandles:
    async def test_named_database(self, connection_manager, fake_client):
        assert connection_manager.database("inventory") is fake_client["inventory"]

    async def test_default_database(self, connection_manager, fake_client):
        assert connection_manager.database() is fake_client["test"]

    def test_client_before_connect_raises(self):
        manager = ConnectionManager("mongodb://localhost:27017")

        with pytest.raises(DatabaseConnectionError):
            _ = manager.client

        with pytest.raises(DatabaseConnectionError):
            manager.database("inventory")


class TestClose:
    async def test_close_is_idempotent(self, fake_client):
        manager = ConnectionManager("mongodb://localhost:27017")
        await manager.connect()

        assert manager.close() is True
        assert manager.close() is True
        assert fake_client.close_calls == 1
        assert not manager.is_connected()

    def test_close_without_connect(self):
        assert ConnectionManager("mongodb://localhost:27017").close() is True

    async def test_close_error_is_reported_not_raised(self, monkeypatch):
        client = MagicMock()
        client.admin.command = AsyncMock(return_value={"ok": 1.0})
        client.close.side_effect = RuntimeError("socket already gone")
        monkeypatch.setattr(connection_module, "AsyncIOMotorClient", MagicMock(return_value=client))

        manager = ConnectionManager("mongodb://localhost:27017")
        await manager.connect()

        assert manager.close() is False
        # A failed close still releases the reference
        assert manager.close() is True
        client.close.assert_called_once()

    def test_repr_hides_password(self):
        manager = ConnectionManager("mongodb://admin:secret@db:27017")

        assert "secret" not in repr(manager)
        assert "connected=False" in repr(manager)


class TestDiagnostics:
    async def test_listeners_are_passed_to_client(self, monkeypatch):
        client = MagicMock()
        client.admin.command = AsyncMock(return_value={"ok": 1.0})
        factory = MagicMock(return_value=client)
        monkeypatch.setattr(connection_module, "AsyncIOMotorClient", factory)
        diagnostics = ConnectionDiagnostics()

        manager = ConnectionManager("mongodb://localhost:27017", event_listeners=[diagnostics])
        await manager.connect()

        assert factory.call_args.kwargs["event_listeners"] == [diagnostics]

    def test_pool_events_logged_at_debug(self, caplog):
        event = MagicMock(address=("localhost", 27017), connection_id=7, reason="idle")

        with caplog.at_level(logging.DEBUG, logger="mongo_mcp.mcp_server.database.diagnostics"):
            ConnectionDiagnostics().connection_closed(event)

        assert "Connection 7" in caplog.text
        assert "idle" in caplog.text
