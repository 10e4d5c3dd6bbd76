"""
Unit tests for the Document base class and OrderBy.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone

from bson import ObjectId
from pymongo import ASCENDING, DESCENDING

from mdb_repo.repositories import Document, OrderBy


@dataclass
class Dimensions:
    width: float = 0.0
    height: float = 0.0


@dataclass
class StockItem(Document):
    sku: str = ""
    quantity: int = 0
    dimensions: Dimensions | None = None
    tags: list[str] = field(default_factory=list)


@dataclass
class Currency(Document):
    __collection__ = "currencies"

    code: str = ""

    def alternate_key(self) -> str | None:
        return self.code


class TestCollectionName:
    def test_defaults_to_snake_cased_class_name(self):
        assert StockItem.collection_name() == "stock_item"

    def test_explicit_collection_name(self):
        assert Currency.collection_name() == "currencies"


class TestSerialization:
    """Test conversion to and from stored form."""

    def test_to_dict_maps_id_and_omits_none(self):
        oid = ObjectId()
        item = StockItem(id=oid, sku="A-1", quantity=3)

        data = item.to_dict()

        assert data["_id"] == oid
        assert "id" not in data
        assert data["sku"] == "A-1"
        assert "dimensions" not in data
        assert "created_at" not in data

    def test_unsaved_document_has_no_id_key(self):
        assert "_id" not in StockItem(sku="A-1").to_dict()

    def test_nested_dataclass_becomes_dict(self):
        item = StockItem(sku="A-1", dimensions=Dimensions(width=2.0, height=3.0))
        assert item.to_dict()["dimensions"] == {"width": 2.0, "height": 3.0}

    def test_from_dict_maps_id_and_ignores_unknown_fields(self):
        oid = ObjectId()
        item = StockItem.from_dict({"_id": oid, "sku": "B-2", "legacy": True})

        assert item.id == oid
        assert item.sku == "B-2"
        assert item.quantity == 0

    def test_from_dict_none(self):
        assert StockItem.from_dict(None) is None

    def test_from_dict_makes_naive_timestamps_utc(self):
        naive = datetime(2024, 5, 1, 12, 0, 0)
        item = StockItem.from_dict({"_id": ObjectId(), "created_at": naive})
        assert item.created_at == naive.replace(tzinfo=timezone.utc)

    def test_field_names(self):
        assert {"id", "created_at", "updated_at", "sku"} <= StockItem.field_names()

    def test_default_alternate_key_is_none(self):
        assert StockItem().alternate_key() is None
        assert Currency(code="EUR").alternate_key() == "EUR"


class TestChangeDetection:
    """Test content hash snapshots."""

    def test_unsaved_document_never_snapshots(self):
        item = StockItem(sku="A-1")
        item.create_hash()
        assert "_hash" not in item.__dict__
        assert item.has_changes()

    def test_missing_snapshot_policy(self):
        item = StockItem(id=ObjectId(), sku="A-1")
        assert item.has_changes() is True
        assert item.has_changes(treat_missing_snapshot_as_changed=False) is True

    def test_unchanged_after_snapshot(self):
        item = StockItem(id=ObjectId(), sku="A-1")
        item.create_hash()
        assert item.has_changes() is False

    def test_changed_after_mutation(self):
        item = StockItem(id=ObjectId(), sku="A-1")
        item.create_hash()
        item.quantity = 7
        assert item.has_changes() is True

    def test_hash_is_not_serialized(self):
        item = StockItem(id=ObjectId(), sku="A-1")
        item.create_hash()
        assert "_hash" not in item.to_dict()

    def test_equal_content_gives_equal_hash(self):
        oid = ObjectId()
        assert StockItem(id=oid, sku="A").content_hash == StockItem(id=oid, sku="A").content_hash


class TestOrderBy:
    def test_descending_by_default(self):
        assert OrderBy("price").to_sort() == [("price", DESCENDING)]

    def test_ascending(self):
        assert OrderBy.asc("price").to_sort() == [("price", ASCENDING)]

    def test_id_maps_to_stored_field(self):
        assert OrderBy.desc("id").to_sort() == [("_id", DESCENDING)]
