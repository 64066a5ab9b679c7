from pydantic import BaseModel, Field


class QueryRequest(BaseModel):
    query: str = Field(min_length=1)
    owner_id: str = Field(min_length=1)
    max_tokens: int | None = Field(default=None, gt=0)
