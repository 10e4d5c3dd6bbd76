"""
Index declarations and helpers.

Document types declare index intents on their dataclass fields with
``indexed()``. The declarations are read once, when a repository is
constructed, by ``declared_indexes()``.
"""

import dataclasses
from dataclasses import dataclass
from typing import Any

from ..constants import INDEX_METADATA_KEY, INDEX_NAME_SEPARATOR, PRIMARY_KEY_INDEX_NAME


@dataclass(frozen=True)
class IndexIntent:
    """A declared wish for a field to be indexed (ascending) with a uniqueness flag."""

    field: str
    unique: bool = False

    def matches(self, record: "IndexRecord") -> bool:
        return record.short_name == self.field and record.unique == self.unique


@dataclass(frozen=True)
class IndexRecord:
    """An index observed on the live collection."""

    short_name: str
    name: str
    unique: bool = False
    keys: tuple[tuple[str, Any], ...] = ()


def indexed(*, unique: bool = False, **field_kwargs: Any) -> Any:
    """
    Declare a dataclass field of a Document as indexed.

    Accepts the usual ``dataclasses.field`` arguments (``default``,
    ``default_factory``, ...).

    Example:
        @dataclass
        class User(Document):
            email: str = indexed(default="", unique=True)
    """
    metadata = dict(field_kwargs.pop("metadata", None) or {})
    metadata[INDEX_METADATA_KEY] = unique
    return dataclasses.field(metadata=metadata, **field_kwargs)


def declared_indexes(document_type: type) -> list[IndexIntent]:
    """Collect the index intents declared on a Document dataclass."""
    return [
        IndexIntent(field=f.name, unique=bool(f.metadata[INDEX_METADATA_KEY]))
        for f in dataclasses.fields(document_type)
        if INDEX_METADATA_KEY in f.metadata
    ]


def short_index_name(name: str, separator: str = INDEX_NAME_SEPARATOR) -> str:
    """
    Leading segment of an index name, split on the first separator.

    Example:
        short_index_name("due_date.1")  # 'due_date'
    """
    return name.split(separator, 1)[0]


def index_name(field: str, direction: Any, separator: str = INDEX_NAME_SEPARATOR) -> str:
    """Name given to indexes created by the repository, e.g. ``email.1``."""
    return f"{field}{separator}{direction}"


def is_primary_key_index(index: dict[str, Any]) -> bool:
    """Check if a raw index document is the built-in ``_id`` index."""
    return index.get("name") == PRIMARY_KEY_INDEX_NAME


def to_index_record(index: dict[str, Any], separator: str = INDEX_NAME_SEPARATOR) -> IndexRecord:
    """Convert a raw ``listIndexes`` document into an IndexRecord."""
    name = index["name"]
    keys = index.get("key", {})
    return IndexRecord(
        short_name=short_index_name(name, separator),
        name=name,
        unique=bool(index.get("unique", False)),
        keys=tuple(keys.items()),
    )
