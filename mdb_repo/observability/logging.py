"""
Structured logging helpers for MDB_REPO.

Repository operations run inside ``collection_context()``, so every record
logged while they run (bulk writes, buffer flushes, index reconciliation)
carries the collection and document type it concerns. Callers may add a
correlation id to tie those records to their own unit of work.
"""

import contextvars
import logging
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

_correlation_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "mdb_repo_correlation_id", default=None
)
_collection_fields: contextvars.ContextVar[dict[str, Any]] = contextvars.ContextVar(
    "mdb_repo_collection_fields", default={}
)


def get_correlation_id() -> str | None:
    return _correlation_id.get()


def set_correlation_id(correlation_id: str | None = None) -> str:
    """Tag records logged from the current task; a uuid4 is generated when omitted."""
    correlation_id = correlation_id or str(uuid.uuid4())
    _correlation_id.set(correlation_id)
    return correlation_id


def clear_correlation_id() -> None:
    _correlation_id.set(None)


@contextmanager
def collection_context(collection: str, **fields: Any) -> Iterator[None]:
    """
    Attach a collection (and extra fields) to records logged inside the block.

    Nested blocks add to the enclosing fields; the previous fields are
    restored on exit.

    Example:
        with collection_context("orders", document_type="Order"):
            log_operation(logger, "transaction.flush", inserts=3)
    """
    token = _collection_fields.set({**_collection_fields.get(), "collection": collection, **fields})
    try:
        yield
    finally:
        _collection_fields.reset(token)


def get_logging_context() -> dict[str, Any]:
    """Fields from the active collection context plus the correlation id, if set."""
    context = dict(_collection_fields.get())
    correlation_id = _correlation_id.get()
    if correlation_id:
        context["correlation_id"] = correlation_id
    return context


class ContextualLoggerAdapter(logging.LoggerAdapter):
    """Logger adapter that merges the active logging context into ``extra``."""

    def process(self, msg: str, kwargs: dict[str, Any]) -> tuple[str, dict[str, Any]]:
        kwargs["extra"] = {**get_logging_context(), **(kwargs.get("extra") or {})}
        return msg, kwargs


def get_logger(name: str) -> ContextualLoggerAdapter:
    return ContextualLoggerAdapter(logging.getLogger(name), {})


def log_operation(
    logger: logging.Logger | logging.LoggerAdapter,
    operation: str,
    level: int = logging.INFO,
    success: bool = True,
    duration_ms: float | None = None,
    **fields: Any,
) -> None:
    """
    Log one repository operation as a structured record.

    Args:
        logger: Logger or adapter to emit through
        operation: Operation name (e.g. "index.create")
        level: Log level
        success: Whether the operation succeeded
        duration_ms: Operation duration in milliseconds
        **fields: Operation-specific fields (counts, index names, ...)
    """
    extra: dict[str, Any] = {**get_logging_context(), "operation": operation, "success": success}
    message = f"Operation: {operation}" if success else f"Operation failed: {operation}"
    if duration_ms is not None:
        extra["duration_ms"] = round(duration_ms, 2)
        message += f" (duration: {duration_ms:.2f}ms)"
    extra.update(fields)

    logger.log(level, message, extra=extra)
