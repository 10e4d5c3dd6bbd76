"""
Constants for MDB_REPO.

This module contains all shared constants used across the codebase to avoid
magic numbers and improve maintainability.
"""

import sys
from typing import Final

# ============================================================================
# IDENTIFIER CONSTANTS
# ============================================================================

OBJECT_ID_HEX_LENGTH: Final[int] = 24
"""Width of an ObjectId in hex characters (12 bytes)."""

ID_FIELD: Final[str] = "_id"
"""Primary key field name in stored documents."""

# ============================================================================
# WRITE CONSTANTS
# ============================================================================

DEFAULT_SETTLE_DELAY_MS: Final[int] = 150
"""Delay after the first insertion of a document before returning (milliseconds)."""

DEFAULT_BULK_CHUNK_SIZE: Final[int] = 50
"""Default group size for chunked bulk writes."""

DEFAULT_FLUSH_CHUNK_SIZE: Final[int] = 100
"""Group size used by a transaction buffer when it flushes staged writes."""

DEFAULT_TRANSACTION_THRESHOLD: Final[int] = 15
"""Default number of pending inserts + deletes before a buffer flushes."""

UNLIMITED_THRESHOLD: Final[int] = sys.maxsize
"""Threshold value that disables count-triggered flushes."""

# ============================================================================
# CURSOR CONSTANTS
# ============================================================================

DEFAULT_BATCH_SIZE: Final[int] = 100
"""Default number of documents fetched per cursor batch."""

MAX_CURSOR_BATCHES: Final[int] = 15000
"""Hard cap on the number of batches a single batch cursor will pull."""

# ============================================================================
# INDEX CONSTANTS
# ============================================================================

PRIMARY_KEY_INDEX_NAME: Final[str] = "_id_"
"""Name of the index MongoDB creates on every collection."""

INDEX_NAME_SEPARATOR: Final[str] = "."
"""Separator between the field part and the direction part of an index name.

A dot never occurs in a dataclass field name, so ``short_index_name(index_name(f, d)) == f``
holds for every field declared with ``indexed()``.
"""

INDEX_METADATA_KEY: Final[str] = "mdb_repo.index"
"""Dataclass field metadata key holding an IndexIntent."""

PROJECTION_METADATA_KEY: Final[str] = "mdb_repo.project_map"
"""Dataclass field metadata key holding a projection override."""

# ============================================================================
# DATABASE CONSTANTS
# ============================================================================

DEFAULT_MAX_POOL_SIZE: Final[int] = 50
"""Default maximum MongoDB connection pool size."""

DEFAULT_MIN_POOL_SIZE: Final[int] = 10
"""Default minimum MongoDB connection pool size."""

DEFAULT_SERVER_SELECTION_TIMEOUT_MS: Final[int] = 5000
"""Default server selection timeout in milliseconds."""

DEFAULT_MAX_IDLE_TIME_MS: Final[int] = 300000
"""Default maximum idle time before closing connections (milliseconds)."""
