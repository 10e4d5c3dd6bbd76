"""
Repository Context

Creates and caches one repository per document type for a database, and runs
index reconciliation across all of them.
"""

import logging
from typing import Any, TypeVar

from ..config import RepositorySettings
from ..indexes.reconciler import ReconcileResult
from .base import Document
from .mongo import MongoRepository

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=Document)


class RepositoryContext:
    """
    Factory and cache for the repositories of one database.

    Repositories are created lazily, one per document type, against the
    collection named by ``DocumentClass.collection_name()``.

    Usage:
        ctx = RepositoryContext(get_database())
        products = ctx.repository(Product)
        await products.insert_or_update(Product(sku="A-1"))

        # At startup, after every document type has been registered
        await ctx.configure_indexes()
    """

    def __init__(self, db: Any, settings: RepositorySettings | None = None):
        """
        Args:
            db: AsyncIOMotorDatabase
            settings: Settings shared by every repository created here
        """
        self._db = db
        self._settings = settings
        self._repositories: dict[type[Document], MongoRepository] = {}

    @property
    def db(self) -> Any:
        """Direct access to the underlying database for operations not covered here."""
        return self._db

    def repository(self, document_class: type[T]) -> MongoRepository[T]:
        """Get or create the repository for a document type."""
        repo = self._repositories.get(document_class)
        if repo is not None:
            return repo

        collection_name = document_class.collection_name()
        repo = MongoRepository(
            self._db[collection_name], document_class, settings=self._settings
        )
        self._repositories[document_class] = repo

        logger.debug(
            f"Created repository for '{collection_name}' with document {document_class.__name__}"
        )
        return repo

    def register(self, *document_classes: type[Document]) -> None:
        """Create repositories up front so ``configure_indexes`` covers them."""
        for document_class in document_classes:
            self.repository(document_class)

    async def configure_indexes(self) -> dict[str, ReconcileResult]:
        """
        Reconcile indexes for every repository created so far.

        Returns:
            Collection name -> reconciliation result
        """
        results: dict[str, ReconcileResult] = {}
        for repo in self._repositories.values():
            results[repo.collection_name] = await repo.configure_indexes()
        return results

    def dispose(self) -> None:
        self._repositories.clear()
        logger.debug("RepositoryContext disposed")
