import re
from datetime import datetime
from uuid import UUID, uuid4

from pydantic import BaseModel, Field, field_validator

from ragstore.helper.timestamp import now

# letters, digits, underscore, hyphen and dot; must start with a letter or digit
_INDEX_NAME_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_.\-]*$")


class IndexMetadata(BaseModel):
    """
    The persisted description of an index. The index itself is logical: its rows
    live in the document, section, node and text_embedded tables, tagged with `id`.

    Attributes:
        id:             Index identity, stored as index_id on every child row.
        name:           Unique name within the store.
        description:    Optional free text.
        document_count: Denormalized number of documents in the index, refreshed by add_document.
        created_at:     Creation time.
        updated_at:     Last time documents were added.
    """

    id: UUID = Field(default_factory=uuid4)
    name: str
    description: str | None = None
    document_count: int = 0
    created_at: datetime = Field(default_factory=now)
    updated_at: datetime = Field(default_factory=now)

    @field_validator("name")
    @classmethod
    def _check_name(cls, value: str) -> str:
        if not _INDEX_NAME_PATTERN.match(value):
            raise ValueError(f"Index name '{value}' may only contain letters, digits, '_', '-' and '.'")
        return value
