"""Section: an ordered grouping of nodes inside a document (page, header section, table row)."""

from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class Section(BaseModel):
    """
    Attributes:
        id:               Row identity.
        index_id:         Owning index.
        document_id:      Owning document.
        name:             Display name, e.g. a header or "page 3".
        section_order:    Zero-based order within the document.
        section_level:    Zero-based nesting level.
        content:          Raw content; may be cleared once nodes were produced from it.
        start_char_index: Optional start offset in the document.
        end_char_index:   Optional end offset in the document.
        summary_text_id:  Optional TextEmbedded row holding a summary.
    """

    id: UUID = Field(default_factory=uuid4)
    index_id: UUID
    document_id: UUID
    name: str
    section_order: int = 0
    section_level: int = 0
    content: str | None = None
    start_char_index: int | None = None
    end_char_index: int | None = None
    summary_text_id: UUID | None = None
