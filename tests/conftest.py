"""
Pytest configuration and shared fixtures for MDB_REPO tests.

This module provides:
- An in-memory asynchronous stand-in for a Motor collection
- Mock Motor collection fixtures for failure-path tests
- Settings fixtures with the settle delay disabled
"""

import asyncio
import copy
from types import SimpleNamespace
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest
from motor.motor_asyncio import AsyncIOMotorCollection
from pymongo import InsertOne, ReplaceOne

from mdb_repo.config import RepositorySettings
from mdb_repo.observability.metrics import get_metrics_collector

# ============================================================================
# IN-MEMORY COLLECTION
# ============================================================================

_MISSING = object()

_OPERATORS = {
    "$in": lambda value, operand: value is not _MISSING and value in operand,
    "$nin": lambda value, operand: value is _MISSING or value not in operand,
    "$ne": lambda value, operand: value != operand,
    "$gt": lambda value, operand: value is not _MISSING and value > operand,
    "$gte": lambda value, operand: value is not _MISSING and value >= operand,
    "$lt": lambda value, operand: value is not _MISSING and value < operand,
    "$lte": lambda value, operand: value is not _MISSING and value <= operand,
}


def _matches(document: dict[str, Any], filter: dict[str, Any] | None) -> bool:
    for key, condition in (filter or {}).items():
        value = document.get(key, _MISSING)
        if isinstance(condition, dict) and condition and all(k.startswith("$") for k in condition):
            if not all(_OPERATORS[op](value, operand) for op, operand in condition.items()):
                return False
        elif value != condition:
            return False
    return True


def _project(document: dict[str, Any], projection: dict[str, int] | None) -> dict[str, Any]:
    if not projection:
        return copy.deepcopy(document)
    included = {k for k, v in projection.items() if v}
    if projection.get("_id", 1):
        included.add("_id")
    else:
        included.discard("_id")
    return copy.deepcopy({k: v for k, v in document.items() if k in included})


class FakeCursor:
    """Cursor over a snapshot of matching documents; supports incremental ``to_list``."""

    def __init__(
        self,
        documents: list[dict[str, Any]],
        projection: dict[str, int] | None = None,
        sort: list[tuple[str, int]] | None = None,
        batch_size: int | None = None,
    ):
        self._documents = documents
        self._projection = projection
        self._sort = sort
        self._skip = 0
        self._limit: int | None = None
        self._results: list[dict[str, Any]] | None = None
        self._position = 0
        self.batch_size = batch_size
        self.fetch_lengths: list[int | None] = []
        self.closed = False

    def skip(self, count: int) -> "FakeCursor":
        self._skip = count
        return self

    def limit(self, count: int) -> "FakeCursor":
        self._limit = count
        return self

    def sort(self, spec: list[tuple[str, int]]) -> "FakeCursor":
        self._sort = spec
        return self

    def _resolve(self) -> list[dict[str, Any]]:
        if self._results is None:
            results = list(self._documents)
            for field, direction in reversed(self._sort or []):
                results.sort(key=lambda doc: doc.get(field), reverse=direction < 0)
            results = results[self._skip :]
            if self._limit:
                results = results[: self._limit]
            self._results = [_project(doc, self._projection) for doc in results]
        return self._results

    async def to_list(self, length: int | None = None) -> list[dict[str, Any]]:
        await asyncio.sleep(0)
        self.fetch_lengths.append(length)
        results = self._resolve()
        end = len(results) if length is None else self._position + length
        chunk = results[self._position : end]
        self._position += len(chunk)
        return chunk

    async def close(self) -> None:
        self.closed = True


class FakeCollection:
    """
    In-memory stand-in for an AsyncIOMotorCollection.

    Implements the subset of the collection API the repository uses, keeps
    documents in insertion order and records every bulk request.
    """

    def __init__(self, name: str = "documents"):
        self.name = name
        self.documents: dict[Any, dict[str, Any]] = {}
        self.indexes: dict[str, dict[str, Any]] = {"_id_": {"name": "_id_", "key": {"_id": 1}}}
        self.bulk_requests: list[list[Any]] = []
        self.cursors: list[FakeCursor] = []
        self.index_calls: list[tuple[str, str]] = []

    def _matching(self, filter: dict[str, Any] | None) -> list[dict[str, Any]]:
        return [doc for doc in self.documents.values() if _matches(doc, filter)]

    def find(
        self,
        filter: dict[str, Any] | None = None,
        projection: dict[str, int] | None = None,
        sort: list[tuple[str, int]] | None = None,
        batch_size: int | None = None,
    ) -> FakeCursor:
        cursor = FakeCursor(self._matching(filter), projection, sort, batch_size)
        self.cursors.append(cursor)
        return cursor

    async def find_one(
        self, filter: dict[str, Any] | None = None, projection: dict[str, int] | None = None
    ) -> dict[str, Any] | None:
        matching = self._matching(filter)
        return _project(matching[0], projection) if matching else None

    async def count_documents(self, filter: dict[str, Any]) -> int:
        return len(self._matching(filter))

    async def replace_one(
        self, filter: dict[str, Any], replacement: dict[str, Any], upsert: bool = False
    ) -> SimpleNamespace:
        matching = self._matching(filter)
        if matching:
            key = matching[0]["_id"]
            self.documents[key] = copy.deepcopy({**replacement, "_id": key})
            return SimpleNamespace(matched_count=1, modified_count=1, upserted_id=None)
        if upsert:
            document = copy.deepcopy(replacement)
            document.setdefault("_id", filter.get("_id"))
            self.documents[document["_id"]] = document
            return SimpleNamespace(matched_count=0, modified_count=0, upserted_id=document["_id"])
        return SimpleNamespace(matched_count=0, modified_count=0, upserted_id=None)

    async def bulk_write(self, requests: list[Any], ordered: bool = True) -> SimpleNamespace:
        self.bulk_requests.append(list(requests))
        inserted = modified = 0
        for request in requests:
            if isinstance(request, InsertOne):
                document = copy.deepcopy(request._doc)
                self.documents[document["_id"]] = document
                inserted += 1
            elif isinstance(request, ReplaceOne):
                result = await self.replace_one(
                    request._filter, request._doc, upsert=bool(request._upsert)
                )
                modified += result.modified_count
        return SimpleNamespace(inserted_count=inserted, modified_count=modified)

    async def delete_many(self, filter: dict[str, Any]) -> SimpleNamespace:
        matching = self._matching(filter)
        for doc in matching:
            del self.documents[doc["_id"]]
        return SimpleNamespace(deleted_count=len(matching))

    async def find_one_and_delete(self, filter: dict[str, Any]) -> dict[str, Any] | None:
        matching = self._matching(filter)
        if not matching:
            return None
        return self.documents.pop(matching[0]["_id"])

    async def drop(self) -> None:
        self.documents.clear()
        self.indexes = {"_id_": {"name": "_id_", "key": {"_id": 1}}}

    def list_indexes(self) -> FakeCursor:
        return FakeCursor([copy.deepcopy(index) for index in self.indexes.values()])

    async def create_index(self, keys: list[tuple[str, Any]], **kwargs: Any) -> str:
        name = kwargs.get("name") or "_".join(f"{k}_{v}" for k, v in keys)
        index = {"name": name, "key": dict(keys)}
        if kwargs.get("unique"):
            index["unique"] = True
        self.indexes[name] = index
        self.index_calls.append(("create", name))
        return name

    async def drop_index(self, name: str) -> None:
        del self.indexes[name]
        self.index_calls.append(("drop", name))

    def add_raw_index(self, name: str, keys: dict[str, Any], unique: bool = False) -> None:
        """Seed an index as if it had been created outside the repository."""
        index = {"name": name, "key": keys}
        if unique:
            index["unique"] = True
        self.indexes[name] = index


class FakeDatabase:
    """Dictionary-style database handing out FakeCollections by name."""

    def __init__(self):
        self.collections: dict[str, FakeCollection] = {}

    def __getitem__(self, name: str) -> FakeCollection:
        if name not in self.collections:
            self.collections[name] = FakeCollection(name)
        return self.collections[name]


# ============================================================================
# FIXTURES
# ============================================================================


@pytest.fixture
def fake_collection() -> FakeCollection:
    return FakeCollection("products")


@pytest.fixture
def fake_database() -> FakeDatabase:
    return FakeDatabase()


@pytest.fixture
def settings() -> RepositorySettings:
    """Settings with the settle delay disabled so tests run fast."""
    return RepositorySettings(settle_delay_ms=0)


@pytest.fixture
def mock_mongo_collection() -> MagicMock:
    """Create a mock Motor collection for failure-path tests."""
    collection = MagicMock(spec=AsyncIOMotorCollection)
    collection.name = "test_collection"
    collection.find_one = AsyncMock(return_value=None)
    collection.replace_one = AsyncMock(return_value=MagicMock(modified_count=1))
    collection.bulk_write = AsyncMock(return_value=MagicMock(inserted_count=0))
    collection.delete_many = AsyncMock(return_value=MagicMock(deleted_count=2))
    collection.find_one_and_delete = AsyncMock(return_value=None)
    collection.count_documents = AsyncMock(return_value=0)
    collection.create_index = AsyncMock(return_value="test_index")
    collection.drop_index = AsyncMock()
    collection.drop = AsyncMock()
    return collection


@pytest.fixture(autouse=True)
def reset_metrics():
    """Give every test a clean metrics collector."""
    get_metrics_collector().reset()
    yield
    get_metrics_collector().reset()
