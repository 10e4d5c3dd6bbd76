"""
Utility functions and helpers for MDB_REPO.
"""

from .mongo import (
    canonical_json,
    content_fingerprint,
    natural_key_to_hex,
    object_id_from_natural_key,
    to_object_id,
    utcnow,
)

__all__ = [
    "canonical_json",
    "content_fingerprint",
    "natural_key_to_hex",
    "object_id_from_natural_key",
    "to_object_id",
    "utcnow",
]
