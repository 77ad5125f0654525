from datetime import datetime
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from ragstore.helper.timestamp import now


class EmbeddingModelMetadata(BaseModel):
    """
    Description of the embedding model a store is bound to.

    Attributes:
        id:                    Row identity, referenced by StoreMetadata.model_id.
        name:                  Model name as sent to the provider.
        author:                Model author.
        description:           Optional free text.
        url:                   Model homepage.
        accessed_at:           When this description was produced.
        dimensions:            Length of every vector the model produces.
        max_input:             Maximum input length in tokens.
        pricing_per_1k_tokens: USD per 1k input tokens, 0 for local models.
        pricing_update_at:     When the pricing was last checked.
    """

    id: UUID = Field(default_factory=uuid4)
    name: str
    author: str = ""
    description: str | None = None
    url: str = ""
    accessed_at: datetime = Field(default_factory=now)
    dimensions: int
    max_input: int = 0
    pricing_per_1k_tokens: float = 0.0
    pricing_update_at: datetime = Field(default_factory=now)
