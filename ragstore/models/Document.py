"""Document: a single ingested source (file or URL)."""

from enum import Enum
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class DocumentType(str, Enum):
    """Nature of the source. Book and Article are tree-like, Tabular and Sql are tables."""

    BOOK = "Book"
    ARTICLE = "Article"
    TABULAR = "Tabular"
    SQL = "Sql"

    @property
    def is_tree(self) -> bool:
        return self in (DocumentType.BOOK, DocumentType.ARTICLE)

    @property
    def is_table(self) -> bool:
        return not self.is_tree


class DocumentSourceType(str, Enum):
    FILE = "File"
    URL = "Url"


class Document(BaseModel):
    """
    Attributes:
        id:              Row identity.
        name:            Display name, usually the file name.
        index_id:        Owning index.
        document_type:   Tree-like or tabular nature of the source.
        raw_content:     Optional full raw content.
        source_type:     Whether the source is a file or a URL.
        source_uri:      Path or URL of the source.
        summary_text_id: Optional TextEmbedded row holding a summary.
    """

    id: UUID = Field(default_factory=uuid4)
    name: str
    index_id: UUID
    document_type: DocumentType = DocumentType.ARTICLE
    raw_content: str | None = None
    source_type: DocumentSourceType = DocumentSourceType.FILE
    source_uri: str
    summary_text_id: UUID | None = None
