"""
Write Buffering

Accumulates insert, update and delete intents for one repository and writes
them as bulk operations once enough work is pending. This batches writes for
throughput; it gives no multi-document atomicity.
"""

import logging
from typing import Generic, TypeVar

from bson import ObjectId

from ..constants import DEFAULT_FLUSH_CHUNK_SIZE, DEFAULT_TRANSACTION_THRESHOLD, UNLIMITED_THRESHOLD
from ..observability.logging import collection_context, get_logger, log_operation
from .base import Document, Repository

logger = get_logger(__name__)

T = TypeVar("T", bound=Document)


class TransactionBuffer(Generic[T]):
    """
    Buffered writer bound to a repository.

    Unsaved documents are queued as inserts (in order); saved documents are
    queued as updates keyed by id, so the last staged version of a document
    wins. Deletes are queued in order and force a flush attempt.

    A flush attempt does nothing while no inserts are pending. A non-forced
    attempt also waits until ``len(inserts) + len(deletes)`` reaches the
    threshold; staged updates do not count toward it. ``finish()`` drains
    everything that is pending.

    A flush takes the pending collections and replaces them with empty ones
    before its first round trip, so documents staged while it runs belong to
    the next flush. The insert, update and delete phases are separate round
    trips; a failure in one phase does not undo earlier phases, and failed
    items are not re-queued.

    Usage:
        buffer = repo.create_transaction_manager(threshold=100)
        for row in rows:
            await buffer.stage_insert_or_update(Order(**row))
        await buffer.finish()
    """

    def __init__(
        self,
        repository: Repository[T],
        threshold: int = DEFAULT_TRANSACTION_THRESHOLD,
        chunk_size: int = DEFAULT_FLUSH_CHUNK_SIZE,
    ) -> None:
        self._repository = repository
        self._threshold = threshold
        self._chunk_size = chunk_size
        self._inserts: list[T] = []
        self._updates: dict[ObjectId, T] = {}
        self._deletes: list[T] = []
        self._flush_count = 0

    @property
    def threshold(self) -> int:
        return self._threshold

    @property
    def pending_count(self) -> int:
        """Pending inserts + deletes, the count compared against the threshold."""
        return len(self._inserts) + len(self._deletes)

    @property
    def pending_inserts(self) -> list[T]:
        return list(self._inserts)

    @property
    def pending_updates(self) -> dict[ObjectId, T]:
        return dict(self._updates)

    @property
    def pending_deletes(self) -> list[T]:
        return list(self._deletes)

    @property
    def flush_count(self) -> int:
        """Number of flushes that reached the store."""
        return self._flush_count

    def set_threshold(self, threshold: int) -> None:
        if threshold < 1:
            raise ValueError(f"threshold must be >= 1, got {threshold}")
        self._threshold = threshold

    def disable_threshold(self) -> None:
        """Only forced flushes (deletes, ``finish()``) will write from now on."""
        self._threshold = UNLIMITED_THRESHOLD

    async def stage_insert_or_update(self, document: T) -> None:
        if document.id is None:
            if not any(staged is document for staged in self._inserts):
                self._inserts.append(document)
        else:
            self._updates[document.id] = document
        await self.flush(force=False)

    async def stage_delete(self, document: T) -> None:
        if document.id is None:
            return
        self._deletes.append(document)
        await self.flush(force=True)

    async def flush(self, force: bool = False) -> bool:
        """
        Attempt a flush.

        Returns:
            True if pending work was written
        """
        if not self._inserts:
            return False
        if not force and self.pending_count < self._threshold:
            return False
        await self._drain()
        return True

    async def finish(self) -> None:
        """Write everything that is pending, whatever the threshold."""
        if self._inserts or self._updates or self._deletes:
            await self._drain()

    async def _drain(self) -> None:
        inserts, self._inserts = self._inserts, []
        updates, self._updates = self._updates, {}
        deletes, self._deletes = self._deletes, []
        self._flush_count += 1

        with collection_context(self._repository.collection_name):
            logger.debug(
                f"Flushing {len(inserts)} insert(s), {len(updates)} update(s), "
                f"{len(deletes)} delete(s)"
            )

            if inserts:
                await self._repository.insert_or_update_multiple_in_batch(
                    inserts, batch_size=self._chunk_size
                )
            if updates:
                await self._repository.insert_or_update_multiple_in_batch(
                    list(updates.values()), batch_size=self._chunk_size
                )
            if deletes:
                await self._repository.delete_documents(deletes)

            log_operation(
                logger,
                "transaction.flush",
                level=logging.DEBUG,
                inserts=len(inserts),
                updates=len(updates),
                deletes=len(deletes),
            )
