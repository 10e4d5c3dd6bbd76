"""
Unit tests for RepositorySettings.
"""

import pytest
from pydantic import ValidationError

from mdb_repo.config import RepositorySettings
from mdb_repo.exceptions import ConfigurationError


class TestDefaults:
    def test_defaults(self):
        settings = RepositorySettings(_env_file=None)

        assert settings.settle_delay_ms == 150
        assert settings.settle_delay_seconds == 0.15
        assert settings.bulk_chunk_size == 50
        assert settings.flush_chunk_size == 100
        assert settings.transaction_threshold == 15
        assert settings.batch_size == 100
        assert settings.max_cursor_batches == 15000
        assert settings.index_name_separator == "."


class TestEnvironment:
    def test_prefixed_variables(self, monkeypatch):
        monkeypatch.setenv("MDB_REPO_SETTLE_DELAY_MS", "0")
        monkeypatch.setenv("MDB_REPO_TRANSACTION_THRESHOLD", "40")

        settings = RepositorySettings(_env_file=None)

        assert settings.settle_delay_ms == 0
        assert settings.transaction_threshold == 40

    def test_connection_variables_are_unprefixed(self, monkeypatch):
        monkeypatch.setenv("MONGO_URI", "mongodb://db:27017")
        monkeypatch.setenv("DB_NAME", "inventory")

        settings = RepositorySettings(_env_file=None)

        assert settings.mongo_uri == "mongodb://db:27017"
        assert settings.db_name == "inventory"


class TestValidation:
    @pytest.mark.parametrize(
        "field,value",
        [
            ("batch_size", 0),
            ("transaction_threshold", 0),
            ("settle_delay_ms", -1),
            ("index_name_separator", ""),
        ],
    )
    def test_rejects_invalid_values(self, field, value):
        with pytest.raises(ValidationError):
            RepositorySettings(_env_file=None, **{field: value})

    def test_missing_uri(self):
        settings = RepositorySettings(_env_file=None, mongo_uri="", db_name="inventory")

        with pytest.raises(ConfigurationError) as exc_info:
            settings.validate_connection()

        assert exc_info.value.config_key == "mongo_uri"

    def test_missing_db_name(self):
        settings = RepositorySettings(_env_file=None, mongo_uri="mongodb://db", db_name="")

        with pytest.raises(ConfigurationError) as exc_info:
            settings.validate_connection()

        assert exc_info.value.config_key == "db_name"

    def test_pool_bounds(self):
        settings = RepositorySettings(
            _env_file=None,
            mongo_uri="mongodb://db",
            db_name="inventory",
            min_pool_size=20,
            max_pool_size=5,
        )

        with pytest.raises(ConfigurationError) as exc_info:
            settings.validate_connection()

        assert exc_info.value.config_value == 20

    def test_valid_connection(self):
        RepositorySettings(
            _env_file=None, mongo_uri="mongodb://db", db_name="inventory"
        ).validate_connection()
