"""
Projection Mapping

Maps stored documents onto narrower view shapes without runtime reflection
on every call: the correspondence between view properties and document
fields is resolved once in ``prepare()`` and reused for every document.

View shapes are dataclasses. A view property maps to the document field of
the same name unless it is declared with ``project_map()``:

    @dataclass
    class ProductView:
        id: ObjectId | None = None
        title: str = project_map("name", default="")
        cached_total: float = project_map(ignore=True, default=0.0)
"""

import dataclasses
import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from ..constants import ID_FIELD, PROJECTION_METADATA_KEY

if TYPE_CHECKING:
    from ..repositories.base import Document

logger = logging.getLogger(__name__)

TView = TypeVar("TView")
TDocument = TypeVar("TDocument", bound="Document")


@dataclass(frozen=True)
class ProjectMap:
    """Per-property projection override."""

    source: str | None = None
    ignore: bool = False


def project_map(source: str | None = None, *, ignore: bool = False, **field_kwargs: Any) -> Any:
    """
    Declare a view property's source field, or exclude the property.

    Args:
        source: Document field to read instead of the property's own name
        ignore: Leave this property out of the projection entirely
        **field_kwargs: Regular ``dataclasses.field`` arguments (``default``, ...)
    """
    metadata = dict(field_kwargs.pop("metadata", None) or {})
    metadata[PROJECTION_METADATA_KEY] = ProjectMap(source=source, ignore=ignore)
    return dataclasses.field(metadata=metadata, **field_kwargs)


@dataclass(frozen=True)
class ProjectionSpec:
    """
    Resolved correspondence between view properties and document fields.

    Attributes:
        fields: view property name -> document field name
        ignored: view properties excluded from projection
    """

    fields: Mapping[str, str]
    ignored: frozenset[str] = frozenset()

    @classmethod
    def from_view(cls, view_type: type) -> "ProjectionSpec":
        """Build a spec from a view dataclass and its ``project_map()`` declarations."""
        if not dataclasses.is_dataclass(view_type):
            raise TypeError(
                f"{view_type.__name__} is not a dataclass; pass an explicit ProjectionSpec"
            )

        fields: dict[str, str] = {}
        ignored: set[str] = set()
        for f in dataclasses.fields(view_type):
            override = f.metadata.get(PROJECTION_METADATA_KEY)
            if override is not None and override.ignore:
                ignored.add(f.name)
                continue
            fields[f.name] = override.source if override and override.source else f.name
        return cls(fields=fields, ignored=frozenset(ignored))

    @classmethod
    def from_mapping(
        cls, mapping: Mapping[str, str | None], ignored: set[str] | None = None
    ) -> "ProjectionSpec":
        """
        Build a spec from an explicit table.

        A ``None`` source means "same name as the property".
        """
        ignored = set(ignored or ())
        fields = {
            prop: source or prop for prop, source in mapping.items() if prop not in ignored
        }
        return cls(fields=fields, ignored=frozenset(ignored))


class ProjectionMapper(Generic[TView, TDocument]):
    """
    Converts documents of one type into instances of a view type.

    Args:
        view_type: Target shape
        document_type: Source Document subclass
        spec: Explicit correspondence (derived from ``view_type`` when omitted)
        factory: Zero-argument constructor for the view (``view_type`` when omitted)

    Example:
        mapper = ProjectionMapper(ProductView, Product).prepare()
        cursor = collection.find({}, projection=mapper.projection())
        views = [mapper.materialize(Product.from_dict(doc)) async for doc in cursor]
    """

    def __init__(
        self,
        view_type: type[TView],
        document_type: type[TDocument],
        spec: ProjectionSpec | None = None,
        factory: Callable[[], TView] | None = None,
    ) -> None:
        self._view_type = view_type
        self._document_type = document_type
        self._spec = spec
        self._factory: Callable[[], TView] = factory or view_type
        self._document_fields: frozenset[str] = frozenset()
        self._resolved: dict[str, str] = {}
        self._prepared = False

    @property
    def view_type(self) -> type[TView]:
        return self._view_type

    @property
    def resolved_fields(self) -> dict[str, str]:
        """view property -> document field, for every non-ignored property."""
        return dict(self._resolved)

    def prepare(self) -> "ProjectionMapper[TView, TDocument]":
        """Resolve the correspondence once. Safe to call repeatedly."""
        if self._prepared:
            return self
        spec = self._spec or ProjectionSpec.from_view(self._view_type)
        self._resolved = {
            prop: source for prop, source in spec.fields.items() if prop not in spec.ignored
        }
        self._document_fields = self._document_type.field_names()

        unresolved = sorted(
            source for source in self._resolved.values() if source not in self._document_fields
        )
        if unresolved:
            logger.debug(
                f"{self._view_type.__name__} maps fields missing on "
                f"{self._document_type.__name__}: {unresolved}"
            )
        self._prepared = True
        return self

    def projection(self) -> dict[str, int]:
        """Server-side field selection: the identifier plus every resolved source field."""
        self.prepare()
        projection = {ID_FIELD: 1}
        for source in self._resolved.values():
            projection[ID_FIELD if source == "id" else source] = 1
        return projection

    def materialize(self, document: TDocument) -> TView:
        """
        Build a view instance from a document.

        Properties whose source field does not exist on the document type keep
        the value the factory gave them.
        """
        self.prepare()
        view = self._factory()
        for prop, source in self._resolved.items():
            if source not in self._document_fields:
                continue
            setattr(view, prop, getattr(document, source))
        return view
