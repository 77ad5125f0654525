from datetime import datetime
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from ragstore.helper.timestamp import now
from ragstore.models.ModelMetadata import EmbeddingModelMetadata


class StoreMetadata(BaseModel):
    """
    The first row of a store: where it lives and which embedding model it is bound to.

    Attributes:
        id:         Store identity.
        name:       Store name, also the last path component of uri.
        uri:        Physical location of the store.
        created_at: Creation time.
        model:      Denormalized copy of the bound model; resolved from the model_metadata table.
        model_id:   Id of the bound model row.
    """

    id: UUID = Field(default_factory=uuid4)
    name: str
    uri: str
    created_at: datetime = Field(default_factory=now)
    model: EmbeddingModelMetadata | None = None
    model_id: UUID | None = None

    def get_dimension(self) -> int | None:
        return self.model.dimensions if self.model else None
