"""
Batched Cursor Streaming

Streams large result sets batch by batch with one batch of lookahead: while
the caller drains batch N, the fetch of batch N+1 is already in flight.
"""

import asyncio
import logging
from collections import deque
from collections.abc import Callable
from typing import Any, Generic, TypeVar

from ..constants import DEFAULT_BATCH_SIZE, MAX_CURSOR_BATCHES

logger = logging.getLogger(__name__)

T = TypeVar("T")


class BatchCursor(Generic[T]):
    """
    Lazy, finite, non-restartable async iterator over a driver cursor.

    The fetch for the next batch is issued before the current batch is handed
    out, and a batch is never handed out before the previous one is drained.
    Iteration ends when a fetch returns no documents, when a fetch returns a
    short batch (the cursor is exhausted), or after ``max_batches`` batches.
    Hitting the cap ends the sequence early without raising. Use it as an
    async context manager when the loop may stop early, so the lookahead fetch
    is cancelled and the driver cursor closed; an abandoned cursor only cancels
    its lookahead when it is garbage collected.

    Args:
        cursor: Driver cursor exposing ``to_list(length)`` and ``close()``
        convert: Maps a raw document to the yielded value
        batch_size: Documents per fetch
        max_batches: Hard cap on the number of batches pulled

    Example:
        async with repo.filter_in_batch({"status": "open"}, batch_size=500) as orders:
            async for order in orders:
                if await process(order):
                    break
    """

    def __init__(
        self,
        cursor: Any,
        convert: Callable[[dict[str, Any]], T],
        batch_size: int = DEFAULT_BATCH_SIZE,
        max_batches: int = MAX_CURSOR_BATCHES,
    ) -> None:
        if batch_size < 1:
            raise ValueError(f"batch_size must be >= 1, got {batch_size}")
        if max_batches < 1:
            raise ValueError(f"max_batches must be >= 1, got {max_batches}")

        self._cursor = cursor
        self._convert = convert
        self._batch_size = batch_size
        self._max_batches = max_batches
        self._current: deque[dict[str, Any]] = deque()
        self._pending: asyncio.Future | None = None
        self._batches_pulled = 0
        self._exhausted = False
        self._closed = False

    @property
    def batches_pulled(self) -> int:
        return self._batches_pulled

    @property
    def exhausted(self) -> bool:
        return self._exhausted and not self._current

    def __aiter__(self) -> "BatchCursor[T]":
        return self

    async def __anext__(self) -> T:
        while not self._current:
            if self._exhausted:
                await self.close()
                raise StopAsyncIteration
            self._current.extend(await self._advance())
        return self._convert(self._current.popleft())

    async def _advance(self) -> list[dict[str, Any]]:
        if self._pending is None:
            self._pending = self._fetch()
        batch = await self._pending
        self._pending = None

        if not batch:
            self._exhausted = True
            return []

        self._batches_pulled += 1
        if len(batch) < self._batch_size:
            self._exhausted = True
        elif self._batches_pulled >= self._max_batches:
            logger.warning(
                f"Batch cursor stopped after {self._batches_pulled} batches "
                f"(cap {self._max_batches}); remaining documents are not streamed"
            )
            self._exhausted = True
        else:
            # Next round trip starts before this batch reaches the caller
            self._pending = self._fetch()
        return batch

    def _fetch(self) -> asyncio.Future:
        return asyncio.ensure_future(self._cursor.to_list(length=self._batch_size))

    async def close(self) -> None:
        """Cancel any in-flight fetch and close the driver cursor."""
        if self._closed:
            return
        self._closed = True
        self._exhausted = True
        self._current.clear()
        if self._pending is not None:
            self._pending.cancel()
            await asyncio.gather(self._pending, return_exceptions=True)
            self._pending = None
        await self._cursor.close()

    async def __aenter__(self) -> "BatchCursor[T]":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    def __del__(self) -> None:
        pending = getattr(self, "_pending", None)
        if pending is not None and not pending.done() and not pending.get_loop().is_closed():
            pending.cancel()
