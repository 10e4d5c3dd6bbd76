"""
Index Reconciliation

Converges the live indexes of a collection to the intents declared on its
document type.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Protocol

from ..constants import PRIMARY_KEY_INDEX_NAME
from ..observability.logging import get_logger, log_operation
from .helpers import IndexIntent, IndexRecord

logger = get_logger(__name__)


class IndexOperations(Protocol):
    """Index primitives a reconciler needs from a repository."""

    collection_name: str

    async def list_indexes(self) -> list[IndexRecord]: ...

    async def create_index(self, field: str, unique: bool = False, **kwargs: Any) -> str: ...

    async def drop_index(self, name: str) -> None: ...


@dataclass
class ReconcileResult:
    """Index operations issued by one reconciliation run."""

    created: list[str] = field(default_factory=list)
    dropped: list[str] = field(default_factory=list)

    @property
    def operation_count(self) -> int:
        return len(self.created) + len(self.dropped)


class IndexReconciler:
    """
    Diffs declared index intents against live indexes and applies the difference.

    A live index matches an intent when its short name (full name up to the
    first separator) equals the intent's field and the uniqueness flags agree.
    Live indexes matching no intent are dropped, then intents matching no live
    index are created. Changing an intent's uniqueness therefore drops the old
    index and creates a new one. The ``_id_`` index is never touched.

    Several live indexes sharing a short name all count as matches; they are
    neither merged nor disambiguated.

    Example:
        reconciler = IndexReconciler(repository, [IndexIntent("email", unique=True)])
        result = await reconciler.reconcile()
        result.created  # ['email']
    """

    def __init__(self, operations: IndexOperations, intents: list[IndexIntent]) -> None:
        self._operations = operations
        self._intents = list(dict.fromkeys(intents))

    @property
    def intents(self) -> list[IndexIntent]:
        return list(self._intents)

    async def reconcile(self) -> ReconcileResult:
        live = [
            record
            for record in await self._operations.list_indexes()
            if record.name != PRIMARY_KEY_INDEX_NAME
        ]
        result = ReconcileResult()
        collection = self._operations.collection_name

        for record in live:
            if any(intent.matches(record) for intent in self._intents):
                continue
            await self._operations.drop_index(record.name)
            result.dropped.append(record.name)
            log_operation(logger, "index.drop", collection=collection, index=record.name)

        for intent in self._intents:
            if any(intent.matches(record) for record in live):
                continue
            await self._operations.create_index(intent.field, unique=intent.unique)
            result.created.append(intent.field)
            log_operation(
                logger,
                "index.create",
                collection=collection,
                field=intent.field,
                unique=intent.unique,
            )

        if not result.operation_count:
            logger.debug(f"Indexes on '{collection}' already match {len(self._intents)} intent(s)")
        else:
            log_operation(
                logger,
                "index.reconcile",
                level=logging.INFO,
                collection=collection,
                created_count=len(result.created),
                dropped_count=len(result.dropped),
            )
        return result
