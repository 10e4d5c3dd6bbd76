"""
MDB_REPO - Typed MongoDB Repositories

Generic data-access layer over MongoDB: one typed repository per document
type with CRUD, filtering, projections, streamed reads, buffered writes and
declarative index management.
"""

from .config import RepositorySettings, get_settings
from .exceptions import (
    ConfigurationError,
    InvalidIdentifierError,
    NaturalKeyTooLongError,
    RepositoryError,
)
from .indexes import IndexIntent, IndexReconciler, ReconcileResult, indexed
from .projection import ProjectionMapper, ProjectionSpec, project_map
from .repositories import (
    BatchCursor,
    Document,
    MongoRepository,
    OrderBy,
    Repository,
    RepositoryContext,
    TransactionBuffer,
)

__version__ = "0.1.0"

__all__ = [
    # Repositories
    "Document",
    "Repository",
    "MongoRepository",
    "RepositoryContext",
    "OrderBy",
    "BatchCursor",
    "TransactionBuffer",
    # Projections
    "ProjectionMapper",
    "ProjectionSpec",
    "project_map",
    # Indexes
    "IndexIntent",
    "IndexReconciler",
    "ReconcileResult",
    "indexed",
    # Configuration
    "RepositorySettings",
    "get_settings",
    # Errors
    "RepositoryError",
    "InvalidIdentifierError",
    "NaturalKeyTooLongError",
    "ConfigurationError",
]
