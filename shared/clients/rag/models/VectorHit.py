from pydantic import BaseModel


class VectorHit(BaseModel):
    """A single vector search match: the document ID and its similarity score."""

    id: str
    score: float
