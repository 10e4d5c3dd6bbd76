"""
MongoDB utility functions for MDB_REPO.

Identifier parsing and derivation, canonical serialization and content
fingerprints, and the repository clock.
"""

import base64
import hashlib
from datetime import datetime, timezone
from typing import Any

from bson import ObjectId, json_util
from bson.errors import InvalidId

from ..constants import OBJECT_ID_HEX_LENGTH
from ..exceptions import InvalidIdentifierError, NaturalKeyTooLongError


def natural_key_to_hex(natural_key: str, width: int = OBJECT_ID_HEX_LENGTH) -> str:
    """
    Encode a natural key into the fixed-width hex identifier space.

    Each character is written as its code point in (at least two) lowercase hex
    digits and the result is left-padded with zeros up to ``width``.

    Args:
        natural_key: Deterministic key supplied by a document
        width: Target width in hex characters

    Returns:
        Hex string of exactly ``width`` characters

    Raises:
        NaturalKeyTooLongError: If the encoding is longer than ``width``

    Example:
        ```python
        natural_key_to_hex("EUR")
        # '000000000000000000455552'
        ```
    """
    encoded = "".join(f"{ord(char):02x}" for char in natural_key)
    if len(encoded) > width:
        raise NaturalKeyTooLongError(natural_key, len(encoded), width)
    return encoded.rjust(width, "0")


def object_id_from_natural_key(natural_key: str) -> ObjectId:
    """Derive a deterministic ObjectId from a natural key."""
    return ObjectId(natural_key_to_hex(natural_key))


def to_object_id(value: Any) -> ObjectId:
    """
    Coerce a caller-supplied identifier into an ObjectId.

    Raises:
        InvalidIdentifierError: If the value is not a valid ObjectId or 24-char hex string
    """
    if isinstance(value, ObjectId):
        return value
    if value is None:
        # ObjectId(None) would generate a fresh id
        raise InvalidIdentifierError("Document identifier is required")
    try:
        return ObjectId(value)
    except (InvalidId, TypeError) as e:
        raise InvalidIdentifierError(f"Invalid document identifier: {e}", value=value) from e


def canonical_json(data: dict[str, Any]) -> str:
    """Serialize a document to Extended JSON with sorted keys."""
    return json_util.dumps(data, sort_keys=True, json_options=json_util.CANONICAL_JSON_OPTIONS)


def content_fingerprint(data: dict[str, Any]) -> str:
    """SHA-256 of the canonical form of ``data``, base64url-encoded without padding."""
    digest = hashlib.sha256(canonical_json(data).encode("utf-8")).digest()
    return base64.urlsafe_b64encode(digest).rstrip(b"=").decode("ascii")


def utcnow() -> datetime:
    """
    Current UTC time truncated to milliseconds.

    BSON dates carry millisecond precision, so truncating keeps in-memory
    timestamps equal to the ones read back from the store.
    """
    now = datetime.now(timezone.utc)
    return now.replace(microsecond=(now.microsecond // 1000) * 1000)
