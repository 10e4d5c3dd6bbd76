"""
Database connection helpers.
"""

from .connection import close_mongo_client, get_database, get_mongo_client, verify_connection

__all__ = [
    "close_mongo_client",
    "get_database",
    "get_mongo_client",
    "verify_connection",
]
