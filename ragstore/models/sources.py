"""Kind-tagged containers used to pass rows of one entity kind through generic operations.

SourceData carries decoded entities, SourceInputData carries backend row batches
that have not been decoded yet. Both share the SourceType tag set, and every
lookup keyed on the tag covers all kinds.
"""

from enum import Enum
from typing import Any, Generic, TypeVar
from uuid import UUID

from ragstore.errors import ContractViolationError
from ragstore.models.Document import Document
from ragstore.models.IndexMetadata import IndexMetadata
from ragstore.models.ModelMetadata import EmbeddingModelMetadata
from ragstore.models.Node import Node
from ragstore.models.Section import Section
from ragstore.models.StoreMetadata import StoreMetadata
from ragstore.models.TextEmbedded import TextEmbedded


class SourceType(str, Enum):
    STORE_METADATA = "StoreMetadata"
    MODEL_METADATA = "ModelMetadata"
    INDEX_METADATA = "IndexMetadata"
    TEXT_EMBEDDED = "TextEmbedded"
    DOCUMENT = "Document"
    SECTION = "Section"
    NODE = "Node"

    def table_name(self) -> str:
        return TABLE_NAMES[self]

    def entity_class(self) -> type:
        return ENTITY_CLASSES[self]

    def is_index_scoped(self) -> bool:
        """Whether rows of this kind carry an index_id column."""
        return self in INDEX_SCOPED_KINDS


TABLE_NAMES: dict[SourceType, str] = {
    SourceType.STORE_METADATA: "store_metadata",
    SourceType.MODEL_METADATA: "model_metadata",
    SourceType.INDEX_METADATA: "index_metadata",
    SourceType.TEXT_EMBEDDED: "text_embedded",
    SourceType.DOCUMENT: "documents",
    SourceType.SECTION: "sections",
    SourceType.NODE: "nodes",
}

ENTITY_CLASSES: dict[SourceType, type] = {
    SourceType.STORE_METADATA: StoreMetadata,
    SourceType.MODEL_METADATA: EmbeddingModelMetadata,
    SourceType.INDEX_METADATA: IndexMetadata,
    SourceType.TEXT_EMBEDDED: TextEmbedded,
    SourceType.DOCUMENT: Document,
    SourceType.SECTION: Section,
    SourceType.NODE: Node,
}

INDEX_SCOPED_KINDS = frozenset({
    SourceType.TEXT_EMBEDDED,
    SourceType.DOCUMENT,
    SourceType.SECTION,
    SourceType.NODE,
})


class SourceData:
    """N decoded rows of exactly one entity kind.

    Build it with the per-kind constructors (SourceData.nodes([...])) or with
    SourceData(kind, items); mixing kinds raises ContractViolationError.
    The narrowing accessors (get_nodes(), ...) return None when the kind differs.
    """

    def __init__(self, kind: SourceType, items: list | None = None):
        self._kind = SourceType(kind)
        self._items = list(items or [])
        expected = self._kind.entity_class()
        for item in self._items:
            if not isinstance(item, expected):
                raise ContractViolationError(
                    f"SourceData of kind {self._kind.value} cannot hold {type(item).__name__}"
                )

    ################ CONSTRUCTORS ##################
    @classmethod
    def store_metadata(cls, items: list[StoreMetadata]) -> "SourceData":
        return cls(SourceType.STORE_METADATA, items)

    @classmethod
    def model_metadata(cls, items: list[EmbeddingModelMetadata]) -> "SourceData":
        return cls(SourceType.MODEL_METADATA, items)

    @classmethod
    def index_metadata(cls, items: list[IndexMetadata]) -> "SourceData":
        return cls(SourceType.INDEX_METADATA, items)

    @classmethod
    def text_embedded(cls, items: list[TextEmbedded]) -> "SourceData":
        return cls(SourceType.TEXT_EMBEDDED, items)

    @classmethod
    def documents(cls, items: list[Document]) -> "SourceData":
        return cls(SourceType.DOCUMENT, items)

    @classmethod
    def sections(cls, items: list[Section]) -> "SourceData":
        return cls(SourceType.SECTION, items)

    @classmethod
    def nodes(cls, items: list[Node]) -> "SourceData":
        return cls(SourceType.NODE, items)

    ################ GENERAL ##################
    def kind(self) -> SourceType:
        return self._kind

    def table_name(self) -> str:
        return self._kind.table_name()

    def ids(self) -> list[UUID]:
        return [item.id for item in self._items]

    def items(self) -> list:
        return list(self._items)

    def extend(self, other: "SourceData") -> None:
        if other.kind() != self._kind:
            raise ContractViolationError(
                f"Cannot extend {self._kind.value} data with {other.kind().value} data"
            )
        self._items.extend(other.items())

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self):
        return iter(self._items)

    def __repr__(self) -> str:
        return f"SourceData({self._kind.value}, {len(self._items)} rows)"

    ################ ACCESSORS ##################
    def _narrow(self, kind: SourceType) -> list | None:
        return list(self._items) if self._kind == kind else None

    def get_store_metadata(self) -> list[StoreMetadata] | None:
        return self._narrow(SourceType.STORE_METADATA)

    def get_model_metadata(self) -> list[EmbeddingModelMetadata] | None:
        return self._narrow(SourceType.MODEL_METADATA)

    def get_index_metadata(self) -> list[IndexMetadata] | None:
        return self._narrow(SourceType.INDEX_METADATA)

    def get_text_embedded(self) -> list[TextEmbedded] | None:
        return self._narrow(SourceType.TEXT_EMBEDDED)

    def get_documents(self) -> list[Document] | None:
        return self._narrow(SourceType.DOCUMENT)

    def get_sections(self) -> list[Section] | None:
        return self._narrow(SourceType.SECTION)

    def get_nodes(self) -> list[Node] | None:
        return self._narrow(SourceType.NODE)


B = TypeVar("B")


class SourceInputData(Generic[B]):
    """Backend row batches of one entity kind, before decoding.

    For lancedb the batches are pyarrow RecordBatches.
    """

    def __init__(self, kind: SourceType, batches: list[B] | None = None):
        self._kind = SourceType(kind)
        self._batches = list(batches or [])

    @classmethod
    def from_data(cls, batches: list[B], kind: SourceType) -> "SourceInputData[B]":
        return cls(kind, batches)

    def kind(self) -> SourceType:
        return self._kind

    def table_name(self) -> str:
        return self._kind.table_name()

    def batches(self) -> list[B]:
        return list(self._batches)

    def get_batches(self, kind: SourceType) -> list[B] | None:
        """The batches if they hold rows of `kind`, otherwise None."""
        return list(self._batches) if self._kind == kind else None

    def __repr__(self) -> str:
        return f"SourceInputData({self._kind.value}, {len(self._batches)} batches)"
