"""
MongoDB Repository Implementation

Implements the Repository interface on top of a Motor collection: CRUD,
filtered and projected queries, bulk writes, streamed reads, buffered writes
and index reconciliation for one document type.
"""

import asyncio
from datetime import datetime
from typing import Any, Generic, TypeVar

from bson import ObjectId
from pymongo import ASCENDING, InsertOne, ReplaceOne
from pymongo.results import BulkWriteResult

from ..config import RepositorySettings, get_settings
from ..constants import ID_FIELD
from ..exceptions import InvalidIdentifierError
from ..indexes.helpers import (
    IndexIntent,
    IndexRecord,
    declared_indexes,
    index_name,
    is_primary_key_index,
    to_index_record,
)
from ..indexes.reconciler import IndexReconciler, ReconcileResult
from ..observability.logging import collection_context, get_logger
from ..observability.metrics import timed_operation
from ..projection.mapper import ProjectionMapper, ProjectionSpec
from ..utils.mongo import object_id_from_natural_key, to_object_id, utcnow
from .base import Document, OrderBy, Repository
from .cursor import BatchCursor
from .transaction import TransactionBuffer

logger = get_logger(__name__)

T = TypeVar("T", bound=Document)
V = TypeVar("V")


class MongoRepository(Repository[T], Generic[T]):
    """
    MongoDB implementation of the Repository interface.

    Single-document writes are upserts by id (replace semantics). Driver
    errors propagate unchanged; nothing is retried here.

    Args:
        collection: AsyncIOMotorCollection holding the documents
        document_class: Document subclass stored in the collection
        settings: Repository settings (``get_settings()`` when omitted)
        index_intents: Explicit index table; defaults to the ``indexed()``
            fields declared on ``document_class``

    Example:
        products = MongoRepository(db.products, Product)

        product = Product(sku="A-1", name="Anvil")
        await products.insert_or_update(product)

        cheap = await products.filter_by({"price": {"$lt": 10}}, order_by=OrderBy.asc("price"))
    """

    def __init__(
        self,
        collection: Any,
        document_class: type[T],
        settings: RepositorySettings | None = None,
        index_intents: list[IndexIntent] | None = None,
    ):
        self._collection = collection
        self._document_class = document_class
        self._settings = settings or get_settings()
        self._index_intents = (
            list(index_intents) if index_intents is not None else declared_indexes(document_class)
        )
        self._mappers: dict[type, ProjectionMapper] = {}

    @property
    def collection(self) -> Any:
        return self._collection

    @property
    def collection_name(self) -> str:
        return self._collection.name

    @property
    def document_class(self) -> type[T]:
        return self._document_class

    @property
    def index_intents(self) -> list[IndexIntent]:
        return list(self._index_intents)

    def _to_document(self, raw: dict[str, Any] | None) -> T | None:
        """Convert a stored document to an instance and snapshot its content hash."""
        document = self._document_class.from_dict(raw)
        if document is not None:
            document.create_hash()
        return document

    def _log_context(self):
        """Scope log records to this repository's collection and document type."""
        return collection_context(
            self.collection_name, document_type=self._document_class.__name__
        )

    @staticmethod
    def _assign_identity(document: T, now: datetime) -> bool:
        """
        Stamp identity and timestamps before a write.

        Returns:
            True if the document was not persisted before
        """
        if document.id is None:
            natural_key = document.alternate_key()
            document.id = object_id_from_natural_key(natural_key) if natural_key else ObjectId()
            document.created_at = now
            document.updated_at = now
            return True

        document.updated_at = now
        return False

    # Reads

    @timed_operation("repository.find_by_id")
    async def find_by_id(self, id: ObjectId | str) -> T | None:
        doc = await self._collection.find_one({ID_FIELD: to_object_id(id)})
        return self._to_document(doc)

    async def exists(self, id: ObjectId | str) -> bool:
        doc = await self._collection.find_one(
            {ID_FIELD: to_object_id(id)}, projection={ID_FIELD: 1}
        )
        return doc is not None

    async def reload(self, document: T) -> T | None:
        """Fetch the stored version of a document."""
        if document.id is None:
            raise InvalidIdentifierError(
                "Cannot reload a document that was never persisted",
                context={"document_type": type(document).__name__},
            )
        return await self.find_by_id(document.id)

    @timed_operation("repository.find_one")
    async def find_one(self, filter: dict[str, Any]) -> T | None:
        doc = await self._collection.find_one(filter)
        return self._to_document(doc)

    @timed_operation("repository.filter_by")
    async def filter_by(
        self,
        filter: dict[str, Any],
        limit: int | None = None,
        skip: int | None = None,
        order_by: OrderBy | None = None,
    ) -> list[T]:
        cursor = self._collection.find(filter)

        if skip is not None:
            cursor = cursor.skip(skip)
        if limit is not None:
            cursor = cursor.limit(limit)
        if order_by is not None:
            cursor = cursor.sort(order_by.to_sort())

        docs = await cursor.to_list(length=None)
        return [self._to_document(doc) for doc in docs]

    async def get_all(self) -> list[T]:
        return await self.filter_by({})

    async def try_get_all(self) -> list[T]:
        """Like ``get_all`` but returns an empty list when the read fails."""
        try:
            return await self.get_all()
        except Exception as e:
            with self._log_context():
                logger.warning(
                    f"Suppressed error while reading all of '{self.collection_name}': {e}",
                    exc_info=True,
                )
            return []

    async def filter_property_by(self, filter: dict[str, Any], field: str) -> list[Any]:
        """Values of a single field for every matching document."""
        stored = ID_FIELD if field == "id" else field
        projection = {stored: 1} if stored == ID_FIELD else {stored: 1, ID_FIELD: 0}
        docs = await self._collection.find(filter, projection=projection).to_list(length=None)
        return [doc[stored] for doc in docs if stored in doc]

    @timed_operation("repository.count")
    async def count(self, filter: dict[str, Any] | None = None) -> int:
        return await self._collection.count_documents(filter or {})

    def filter_in_batch(
        self,
        filter: dict[str, Any],
        batch_size: int | None = None,
        order_by: OrderBy | None = None,
    ) -> BatchCursor[T]:
        """
        Stream matching documents batch by batch.

        Every call opens a new server cursor; a stream cannot be resumed
        after it ends.
        """
        batch_size = batch_size or self._settings.batch_size
        find_kwargs: dict[str, Any] = {"batch_size": batch_size}
        if order_by is not None:
            find_kwargs["sort"] = order_by.to_sort()

        cursor = self._collection.find(filter, **find_kwargs)
        return BatchCursor(
            cursor,
            self._to_document,
            batch_size=batch_size,
            max_batches=self._settings.max_cursor_batches,
        )

    # Projections

    def register_view(
        self,
        view_type: type[V],
        spec: ProjectionSpec | None = None,
        factory: Any = None,
    ) -> ProjectionMapper[V, T]:
        """Register how a view type is built from this repository's documents."""
        mapper = ProjectionMapper(view_type, self._document_class, spec=spec, factory=factory)
        self._mappers[view_type] = mapper.prepare()
        return mapper

    def projection_mapper(self, view_type: type[V]) -> ProjectionMapper[V, T]:
        """Registered mapper for ``view_type``, registering the default one on first use."""
        mapper = self._mappers.get(view_type)
        if mapper is None:
            mapper = self.register_view(view_type)
        return mapper

    async def project_all(self, view_type: type[V]) -> list[V]:
        return await self.project_filter_by({}, view_type)

    @timed_operation("repository.project_filter_by")
    async def project_filter_by(self, filter: dict[str, Any], view_type: type[V]) -> list[V]:
        mapper = self.projection_mapper(view_type)
        cursor = self._collection.find(filter, projection=mapper.projection())
        docs = await cursor.to_list(length=None)
        return [mapper.materialize(self._document_class.from_dict(doc)) for doc in docs]

    async def project_find_one(self, filter: dict[str, Any], view_type: type[V]) -> V | None:
        mapper = self.projection_mapper(view_type)
        doc = await self._collection.find_one(filter, projection=mapper.projection())
        if doc is None:
            return None
        return mapper.materialize(self._document_class.from_dict(doc))

    # Writes

    @timed_operation("repository.insert_or_update")
    async def insert_or_update(self, document: T) -> None:
        """
        Persist a document by id.

        First persist assigns the id (derived from ``alternate_key()`` when it
        returns a key) and both timestamps, then waits the configured settle
        delay before returning. Later persists refresh ``updated_at`` only.
        """
        is_new = self._assign_identity(document, utcnow())

        await self._collection.replace_one({ID_FIELD: document.id}, document.to_dict(), upsert=True)
        document.create_hash()

        if is_new and self._settings.settle_delay_ms:
            await asyncio.sleep(self._settings.settle_delay_seconds)

    async def try_insert_or_update(self, document: T) -> None:
        """Best-effort ``insert_or_update``: every error is logged and suppressed."""
        try:
            await self.insert_or_update(document)
        except Exception as e:
            with self._log_context():
                logger.warning(
                    f"Suppressed error while saving {type(document).__name__} "
                    f"to '{self.collection_name}': {e}",
                    exc_info=True,
                )

    @timed_operation("repository.bulk_write")
    async def insert_or_update_multiple(self, documents: list[T]) -> BulkWriteResult | None:
        """
        Write a mix of new and persisted documents in one unordered bulk round trip.

        Unordered execution means one failing item does not stop the others;
        partial application is possible and nothing is rolled back. Identities
        are assigned before the round trip, so replacements upsert: retrying a
        failed call writes documents that never reached the store.
        """
        if not documents:
            return None

        now = utcnow()
        operations: list[InsertOne | ReplaceOne] = []
        for document in documents:
            if self._assign_identity(document, now):
                operations.append(InsertOne(document.to_dict()))
            else:
                operations.append(
                    ReplaceOne({ID_FIELD: document.id}, document.to_dict(), upsert=True)
                )

        with self._log_context():
            result = await self._collection.bulk_write(operations, ordered=False)
            logger.debug(
                f"Bulk wrote {len(operations)} {self._document_class.__name__} document(s) "
                f"to '{self.collection_name}'",
                extra={"operation_count": len(operations)},
            )
        return result

    async def insert_or_update_multiple_in_batch(
        self,
        documents: list[T],
        batch_size: int | None = None,
        delay: float | None = None,
    ) -> None:
        """
        Bulk-write a large list in fixed-size groups.

        Args:
            documents: Documents to write
            batch_size: Group size (``settings.bulk_chunk_size`` when omitted)
            delay: Seconds to sleep between groups
        """
        batch_size = batch_size or self._settings.bulk_chunk_size
        for start in range(0, len(documents), batch_size):
            if start and delay:
                await asyncio.sleep(delay)
            await self.insert_or_update_multiple(documents[start : start + batch_size])

    def create_transaction_manager(self, threshold: int | None = None) -> TransactionBuffer[T]:
        """New write buffer bound to this repository."""
        return TransactionBuffer(
            self,
            threshold=threshold or self._settings.transaction_threshold,
            chunk_size=self._settings.flush_chunk_size,
        )

    # Deletes

    @timed_operation("repository.delete_one")
    async def delete_one(self, filter: dict[str, Any]) -> T | None:
        """Delete the first matching document and return it (None if nothing matched)."""
        doc = await self._collection.find_one_and_delete(filter)
        return self._document_class.from_dict(doc)

    async def delete_by_id(self, id: ObjectId | str) -> bool:
        return await self.delete_one({ID_FIELD: to_object_id(id)}) is not None

    async def delete(self, document: T) -> bool:
        if document.id is None:
            return False
        return await self.delete_by_id(document.id)

    @timed_operation("repository.delete_many")
    async def delete_many(self, filter: dict[str, Any]) -> int:
        result = await self._collection.delete_many(filter)
        return result.deleted_count

    async def delete_documents(self, documents: list[T]) -> int:
        ids = [document.id for document in documents if document.id is not None]
        if not ids:
            return 0
        return await self.delete_many({ID_FIELD: {"$in": ids}})

    async def delete_all(self) -> None:
        """Drop the whole collection, indexes included."""
        with self._log_context():
            await self._collection.drop()
            logger.info(f"Dropped collection '{self.collection_name}'")

    # Indexes

    async def list_indexes(self) -> list[IndexRecord]:
        """Live indexes, without the built-in ``_id_`` index."""
        separator = self._settings.index_name_separator
        raw_indexes = await self._collection.list_indexes().to_list(length=None)
        return [
            to_index_record(index, separator)
            for index in raw_indexes
            if not is_primary_key_index(index)
        ]

    @timed_operation("repository.create_index")
    async def create_index(
        self, field: str, unique: bool = False, direction: Any = ASCENDING
    ) -> str:
        """
        Create a single-field index.

        Args:
            field: Field to index
            unique: Enforce uniqueness
            direction: ``ASCENDING``, ``DESCENDING``, ``TEXT`` or ``HASHED``

        Returns:
            Name of the created index
        """
        options: dict[str, Any] = {
            "name": index_name(field, direction, self._settings.index_name_separator)
        }
        if unique:
            options["unique"] = True
        return await self._collection.create_index([(field, direction)], **options)

    @timed_operation("repository.drop_index")
    async def drop_index(self, name: str) -> None:
        await self._collection.drop_index(name)

    async def configure_indexes(self) -> ReconcileResult:
        """Converge live indexes to the intents declared for this document type."""
        with self._log_context():
            return await IndexReconciler(self, self._index_intents).reconcile()
