"""
Document Model and Repository Interface

Defines the stored-document contract shared by every collection and the
abstract repository interface that the transaction buffer writes through.
"""

import dataclasses
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, ClassVar, Generic, TypeVar

from bson import ObjectId
from pymongo import ASCENDING, DESCENDING

from ..constants import ID_FIELD
from ..utils.mongo import content_fingerprint

_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")


@dataclass
class Document:
    """
    Base class for stored documents.

    Every document has an ObjectId and audit timestamps. ``id`` stays ``None``
    until the first persist; the repository assigns it together with both
    timestamps and refreshes ``updated_at`` on every later persist. Subclass
    fields must have defaults so partial (projected) documents can be built.

    Example:
        @dataclass
        class Currency(Document):
            __collection__ = "currencies"

            code: str = indexed(default="", unique=True)
            name: str = ""

            def alternate_key(self) -> str | None:
                return self.code
    """

    __collection__: ClassVar[str | None] = None

    id: ObjectId | None = None
    created_at: datetime | None = field(default=None)
    updated_at: datetime | None = field(default=None)

    @classmethod
    def collection_name(cls) -> str:
        """Collection name: ``__collection__`` or the snake_cased class name."""
        if cls.__collection__:
            return cls.__collection__
        return _CAMEL_BOUNDARY.sub("_", cls.__name__).lower()

    @classmethod
    def field_names(cls) -> frozenset[str]:
        return frozenset(f.name for f in dataclasses.fields(cls))

    @property
    def is_persisted(self) -> bool:
        return self.id is not None

    def alternate_key(self) -> str | None:
        """
        Natural key used to derive the identifier on first persist.

        Return ``None`` (the default) for a random ObjectId.
        """
        return None

    def to_dict(self) -> dict[str, Any]:
        """Convert document to dictionary for storage. ``None`` values are omitted."""
        data: dict[str, Any] = {}
        for f in dataclasses.fields(self):
            value = getattr(self, f.name)
            if value is None:
                continue
            if dataclasses.is_dataclass(value) and not isinstance(value, type):
                value = dataclasses.asdict(value)
            if f.name == "id":
                data[ID_FIELD] = value
            else:
                data[f.name] = value
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "Document | None":
        """Create document from dictionary (e.g., from database)."""
        if data is None:
            return None

        data = dict(data)
        if ID_FIELD in data:
            data["id"] = data.pop(ID_FIELD)

        field_names = cls.field_names()
        filtered_data = {k: v for k, v in data.items() if k in field_names}

        for key in ("created_at", "updated_at"):
            value = filtered_data.get(key)
            if isinstance(value, datetime) and value.tzinfo is None:
                filtered_data[key] = value.replace(tzinfo=timezone.utc)

        return cls(**filtered_data)

    # Change detection

    @property
    def content_hash(self) -> str:
        """Fingerprint of the current content. Never persisted."""
        return content_fingerprint(self.to_dict())

    def create_hash(self) -> None:
        """Snapshot the current content hash. No-op for unsaved documents."""
        if self.id is None:
            return
        self.__dict__["_hash"] = self.content_hash

    def has_changes(self, treat_missing_snapshot_as_changed: bool = True) -> bool:
        """
        Report whether the content changed since the last ``create_hash()``.

        Args:
            treat_missing_snapshot_as_changed: Result when no snapshot was taken yet
        """
        snapshot = self.__dict__.get("_hash")
        if not snapshot and treat_missing_snapshot_as_changed:
            return True
        return snapshot != self.content_hash


@dataclass(frozen=True)
class OrderBy:
    """
    Sort command for queries and streamed cursors.

    Descending unless stated otherwise.
    """

    field: str
    direction: int = DESCENDING

    @classmethod
    def asc(cls, field_name: str) -> "OrderBy":
        return cls(field_name, ASCENDING)

    @classmethod
    def desc(cls, field_name: str) -> "OrderBy":
        return cls(field_name, DESCENDING)

    def to_sort(self) -> list[tuple[str, int]]:
        """Sort specification in the driver's list-of-pairs form."""
        name = ID_FIELD if self.field == "id" else self.field
        return [(name, self.direction)]


T = TypeVar("T", bound=Document)


class Repository(ABC, Generic[T]):
    """
    Abstract repository interface for document access.

    The transaction buffer and the index reconciler depend on this interface
    rather than on the MongoDB implementation.
    """

    @property
    @abstractmethod
    def collection_name(self) -> str:
        """Name of the backing collection, attached to log records."""

    @abstractmethod
    async def find_by_id(self, id: ObjectId | str) -> T | None:
        """
        Get a single document by ID.

        Raises:
            InvalidIdentifierError: If ``id`` is not a valid identifier
        """

    @abstractmethod
    async def find_one(self, filter: dict[str, Any]) -> T | None:
        """First document matching a filter, or None."""

    @abstractmethod
    async def filter_by(
        self,
        filter: dict[str, Any],
        limit: int | None = None,
        skip: int | None = None,
        order_by: OrderBy | None = None,
    ) -> list[T]:
        """
        Find documents matching a filter.

        Args:
            filter: MongoDB filter dictionary, passed through untouched
            limit: Maximum documents to return (store default when None)
            skip: Number of documents to skip (store default when None)
            order_by: Sort command (natural order when None)
        """

    @abstractmethod
    async def count(self, filter: dict[str, Any] | None = None) -> int:
        """Count documents matching a filter."""

    @abstractmethod
    async def insert_or_update(self, document: T) -> None:
        """Assign identity on first persist and upsert the document by id."""

    @abstractmethod
    async def insert_or_update_multiple(self, documents: list[T]) -> Any:
        """Write inserts and replacements in one unordered bulk round trip."""

    @abstractmethod
    async def insert_or_update_multiple_in_batch(
        self,
        documents: list[T],
        batch_size: int | None = None,
        delay: float | None = None,
    ) -> None:
        """Chunked variant of ``insert_or_update_multiple``."""

    @abstractmethod
    async def delete_many(self, filter: dict[str, Any]) -> int:
        """Delete documents matching a filter and return the deleted count."""

    @abstractmethod
    async def delete_documents(self, documents: list[T]) -> int:
        """Delete the given (persisted) documents by id and return the deleted count."""
