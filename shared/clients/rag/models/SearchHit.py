from pydantic import BaseModel

from shared.clients.rag.models.VectorPoint import VectorPoint


class SearchHit(BaseModel):
    """One similarity search match.

    Attributes:
        id:      Point ID in the backend.
        score:   Similarity score (higher is closer).
        payload: The metadata stored with the vector.
    """

    id: str
    score: float
    payload: VectorPoint
