from fastapi import APIRouter, Depends, Header, Request

from server.dependencies.auth import verify_api_key
from server.models.requests import QueryRequest
from server.models.responses import QueryResponse

router = APIRouter(prefix="/query", tags=["query"])


@router.post("")
async def query_knowledge_base(
    request: Request,
    body: QueryRequest,
    x_embedding_key: str | None = Header(default=None),
    _: None = Depends(verify_api_key),
) -> QueryResponse:
    """Retrieve context for a question from the owner's knowledge base.

    Args:
        request (Request): FastAPI request (provides app.state.query_service).
        body (QueryRequest): JSON body with query, owner_id and optional max_tokens.
        x_embedding_key (str | None): The owner's embedding API key, if any.
        _ (None): Auth dependency result (unused).

    Returns:
        QueryResponse: Passages, serving strategy and assembled prompt.
    """
    query_service = request.app.state.query_service
    return await query_service.do_query(body, embedding_key=x_embedding_key)
