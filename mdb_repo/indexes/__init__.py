"""
Index Management Module

Declarative index intents on document fields and the reconciler that
converges live indexes to them.
"""

from .helpers import (
    IndexIntent,
    IndexRecord,
    declared_indexes,
    index_name,
    indexed,
    short_index_name,
    to_index_record,
)
from .reconciler import IndexOperations, IndexReconciler, ReconcileResult

__all__ = [
    "IndexIntent",
    "IndexRecord",
    "IndexOperations",
    "IndexReconciler",
    "ReconcileResult",
    "declared_indexes",
    "index_name",
    "indexed",
    "short_index_name",
    "to_index_record",
]
