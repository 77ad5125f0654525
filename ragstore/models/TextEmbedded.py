"""Embedded text: a persisted vector plus the provenance of the text it was made from."""

import hashlib
from datetime import datetime
from enum import Enum
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from ragstore.helper.timestamp import now


class TextSourceType(str, Enum):
    """How the embedded text is used by its source."""

    USER_QUERY = "UserQuery"
    SUMMARY_DOCUMENT = "SummaryDocument"
    SUMMARY_SECTION = "SummarySection"
    SUMMARY_NODE = "SummaryNode"
    NODE_CONTENT = "NodeContent"


def hash_text(text: str) -> str:
    """SHA-256 hex digest of the text, stored for later deduplication."""
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


class Embeddings(BaseModel):
    """A raw vector as returned by an embedder. Never persisted on its own."""

    vector: list[float]
    model: str
    embedded_at: datetime = Field(default_factory=now)


class TextEmbeddingOptions(BaseModel):
    """
    Attributes:
        save_text (bool): Keep the original text in the embedded row. Off by default to save space.
    """

    save_text: bool = False


class TextEmbedded(BaseModel):
    """
    A stored embedding vector.

    Attributes:
        id:              Row identity.
        text:            The embedded text, only kept when TextEmbeddingOptions.save_text is set.
        hash:            SHA-256 of the text.
        embedding_model: Name of the model that produced the vector.
        created_at:      When the row was built.
        embeddings:      The vector; its length equals the store dimension.
        embedded_at:     When the embedder produced the vector.
        used_at:         Last time the row was used.
        source_type:     What kind of text this is (query, summary, node content).
        source_id:       Id of the entity the text came from, None for user queries.
        index_id:        Index the row belongs to, stamped by the index on insert.
    """

    id: UUID = Field(default_factory=uuid4)
    text: str | None = None
    hash: str
    embedding_model: str
    created_at: datetime = Field(default_factory=now)
    embeddings: list[float]
    embedded_at: datetime = Field(default_factory=now)
    used_at: datetime = Field(default_factory=now)
    source_type: TextSourceType = TextSourceType.USER_QUERY
    source_id: UUID | None = None
    index_id: UUID | None = None

    @classmethod
    def new(
        cls,
        text: str,
        embeddings: Embeddings,
        source_type: TextSourceType,
        source_id: UUID | None = None,
        options: TextEmbeddingOptions | None = None,
    ) -> "TextEmbedded":
        options = options or TextEmbeddingOptions()
        return cls(
            text=text if options.save_text else None,
            hash=hash_text(text),
            embedding_model=embeddings.model,
            embeddings=embeddings.vector,
            embedded_at=embeddings.embedded_at,
            source_type=source_type,
            source_id=source_id,
        )

    @classmethod
    def new_query_text(cls, text: str, embeddings: Embeddings) -> "TextEmbedded":
        return cls.new(text, embeddings, TextSourceType.USER_QUERY, None, TextEmbeddingOptions(save_text=True))


class TextInput(BaseModel):
    """Text about to be embedded, with the provenance it will carry once embedded."""

    text: str
    source_type: TextSourceType = TextSourceType.USER_QUERY
    source_id: UUID | None = None

    @classmethod
    def from_user_str(cls, text: str) -> "TextInput":
        return cls(text=text, source_type=TextSourceType.USER_QUERY)

    @classmethod
    def from_node_text(cls, text: str, node_id: UUID) -> "TextInput":
        return cls(text=text, source_type=TextSourceType.NODE_CONTENT, source_id=node_id)

    def to_embedded(self, embeddings: Embeddings, options: TextEmbeddingOptions | None = None) -> TextEmbedded:
        return TextEmbedded.new(self.text, embeddings, self.source_type, self.source_id, options)
