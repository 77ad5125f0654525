"""Node: the smallest embeddable unit of content."""

from datetime import datetime
from enum import Enum
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from ragstore.models.TextEmbedded import TextEmbedded


class ContentType(str, Enum):
    TEXT = "Text"
    IMAGE = "Image"
    VIDEO = "Video"
    AUDIO = "Audio"
    FILE = "File"
    TABLE = "Table"


class Node(BaseModel):
    """
    A paragraph, a table row, an image: anything embedded as one vector.

    Attributes:
        id:                    Row identity.
        index_id:              Owning index.
        document_id:           Owning document.
        section_id:            Owning section.
        content:               The content as text.
        content_type:          What the content is.
        content_embeddings_id: Id of the TextEmbedded row holding the vector; None until backfilled.
        content_embeddings:    The resolved TextEmbedded row. Transient, never persisted as a column.
        content_embedded_at:   When the vector was produced.
        tokens:                Token count of the content.
        index:                 Zero-based position of the node within its source.
        start_char_index:      Character offset where the node starts in the source.
        end_char_index:        Character offset where the node ends in the source.
    """

    id: UUID = Field(default_factory=uuid4)
    index_id: UUID
    document_id: UUID
    section_id: UUID
    content: str
    content_type: ContentType = ContentType.TEXT
    content_embeddings_id: UUID | None = None
    content_embeddings: TextEmbedded | None = None
    content_embedded_at: datetime | None = None
    tokens: int = 0
    index: int = 0
    start_char_index: int = 0
    end_char_index: int = 0

    def merge_embedded_text(self, text_embedded: TextEmbedded) -> None:
        """Attach an embedded text row to this node, setting the whole reference triple."""
        self.content_embeddings_id = text_embedded.id
        self.content_embedded_at = text_embedded.embedded_at
        self.content_embeddings = text_embedded

    def is_embedded(self) -> bool:
        return self.content_embeddings_id is not None
