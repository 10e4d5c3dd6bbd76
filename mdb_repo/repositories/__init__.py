"""
MDB_REPO Repository Pattern

Typed repositories over MongoDB collections.

Usage:
    from mdb_repo.repositories import Document, MongoRepository, OrderBy

    @dataclass
    class Order(Document):
        status: str = indexed(default="open")
        total: float = 0.0

    orders = MongoRepository(db.orders, Order)
    await orders.insert_or_update(Order(total=9.5))

    oldest_first = OrderBy.asc("created_at")
    async with orders.filter_in_batch({}, batch_size=500, order_by=oldest_first) as stream:
        async for order in stream:
            ...
"""

from .base import Document, OrderBy, Repository
from .context import RepositoryContext
from .cursor import BatchCursor
from .mongo import MongoRepository
from .transaction import TransactionBuffer

__all__ = [
    "BatchCursor",
    "Document",
    "MongoRepository",
    "OrderBy",
    "Repository",
    "RepositoryContext",
    "TransactionBuffer",
]
