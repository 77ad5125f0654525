from typing import Generic, TypeVar
from uuid import UUID

from pydantic import BaseModel, Field

T = TypeVar("T")


class SearchOptions(BaseModel):
    """
    Attributes:
        top_k: Maximum number of hits returned by a similarity search.
    """

    top_k: int = Field(default=10, gt=0)


class SimilarResult(BaseModel, Generic[T]):
    """
    One similarity hit.

    Attributes:
        distance: Absolute cosine distance to the query, lower is closer. 0 when the backend reported none.
        data:     The hit.
        data_id:  Id of the hit.
    """

    distance: float
    data: T
    data_id: UUID
