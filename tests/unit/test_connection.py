"""
Unit tests for the shared MongoDB connection.

Tests client creation, reuse, configuration errors and verification.
"""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from pymongo.errors import ServerSelectionTimeoutError

from mdb_repo.config import RepositorySettings
from mdb_repo.database import connection
from mdb_repo.exceptions import ConfigurationError


@pytest.fixture
def connection_settings():
    return RepositorySettings(
        _env_file=None,
        mongo_uri="mongodb://localhost:27017",
        db_name="test_db",
        max_pool_size=10,
        min_pool_size=1,
    )


@pytest.fixture(autouse=True)
def reset_shared_client():
    connection.close_mongo_client()
    yield
    connection.close_mongo_client()


class TestSharedClient:
    """Test creation and reuse of the shared client."""

    def test_client_is_created_once(self, connection_settings):
        with patch.object(connection, "AsyncIOMotorClient") as client_class:
            first = connection.get_mongo_client(connection_settings)
            second = connection.get_mongo_client(connection_settings)

        assert first is second
        client_class.assert_called_once()
        kwargs = client_class.call_args.kwargs
        assert kwargs["maxPoolSize"] == 10
        assert kwargs["tz_aware"] is True

    def test_get_database(self, connection_settings):
        with patch.object(connection, "AsyncIOMotorClient") as client_class:
            db = connection.get_database(connection_settings)

        client_class.return_value.__getitem__.assert_called_once_with("test_db")
        assert db is client_class.return_value.__getitem__.return_value

    def test_missing_configuration(self):
        settings = RepositorySettings(_env_file=None, mongo_uri="", db_name="test_db")

        with pytest.raises(ConfigurationError):
            connection.get_mongo_client(settings)

    def test_client_errors_propagate(self, connection_settings):
        with patch.object(connection, "AsyncIOMotorClient", side_effect=TypeError("bad option")):
            with pytest.raises(TypeError):
                connection.get_mongo_client(connection_settings)

    def test_close_resets_client(self, connection_settings):
        with patch.object(connection, "AsyncIOMotorClient") as client_class:
            client = connection.get_mongo_client(connection_settings)
            connection.close_mongo_client()

            client.close.assert_called_once()
            assert connection.get_mongo_client(connection_settings) is not None
            assert client_class.call_count == 2


class TestVerifyConnection:
    @pytest.mark.asyncio
    async def test_without_client(self):
        assert await connection.verify_connection() is False

    @pytest.mark.asyncio
    async def test_ping_success(self, connection_settings):
        mock_client = MagicMock()
        mock_client.admin.command = AsyncMock(return_value={"ok": 1})

        with patch.object(connection, "AsyncIOMotorClient", return_value=mock_client):
            connection.get_mongo_client(connection_settings)
            assert await connection.verify_connection() is True

        mock_client.admin.command.assert_awaited_once_with("ping")

    @pytest.mark.asyncio
    async def test_ping_failure(self, connection_settings):
        mock_client = MagicMock()
        mock_client.admin.command = AsyncMock(side_effect=ServerSelectionTimeoutError("timeout"))

        with patch.object(connection, "AsyncIOMotorClient", return_value=mock_client):
            connection.get_mongo_client(connection_settings)
            assert await connection.verify_connection() is False
