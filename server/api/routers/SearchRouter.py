"""Search router: owner-scoped semantic, hybrid and similar-document search.

The owner is never taken from the body. It comes from the X-Owner-Id header
set by the authenticating gateway; without it every route answers with an
empty result.
"""

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from shared.dependencies.auth import get_owner_id, verify_api_key
from shared.models.search import (
    HybridSearchResponse,
    SearchRequest,
    SearchResponse,
    SimilarRequest,
    SimilarResponse,
)

search_router = APIRouter()


@search_router.post(
    "/search",
    dependencies=[Depends(verify_api_key)],
    tags=["Search"],
)
async def handle_search(request: Request, body: SearchRequest, owner_id: str | None = Depends(get_owner_id)) -> JSONResponse:
    """Semantic search over the caller's plans or notes.

    Args:
        request (Request): The incoming FastAPI request (carries app state).
        body (SearchRequest): Query text, content type, optional scope and limit.
        owner_id (str | None): Caller identity from the gateway header.

    Returns:
        JSONResponse: Ranked results above the similarity threshold.
    """
    request.app.state.logging.info("Search received, owner_id=%s content_type=%s query=%r", owner_id, body.content_type, body.query[:80])

    results = await request.app.state.search_service.search(
        body.query,
        body.content_type,
        body.get_scope(owner_id),
        limit=body.limit,
        timeout=body.timeout_seconds,
    )
    response = SearchResponse(query=body.query, content_type=body.content_type, results=results, total=len(results))
    return JSONResponse(content=response.model_dump(mode="json"))


@search_router.post(
    "/search/hybrid",
    dependencies=[Depends(verify_api_key)],
    tags=["Search"],
)
async def handle_hybrid_search(request: Request, body: SearchRequest, owner_id: str | None = Depends(get_owner_id)) -> JSONResponse:
    """Title matches first, then semantic matches not already listed."""
    results = await request.app.state.search_service.search_with_title_matches(
        body.query,
        body.content_type,
        body.get_scope(owner_id),
        limit=body.limit,
        timeout=body.timeout_seconds,
    )
    response = HybridSearchResponse(query=body.query, content_type=body.content_type, results=results, total=len(results))
    return JSONResponse(content=response.model_dump(mode="json"))


@search_router.post(
    "/search/similar",
    dependencies=[Depends(verify_api_key)],
    tags=["Search"],
)
async def handle_similar(request: Request, body: SimilarRequest, owner_id: str | None = Depends(get_owner_id)) -> JSONResponse:
    """Reference documents for content generation, stricter threshold, small limit."""
    results = await request.app.state.search_service.find_similar(
        body.query,
        body.content_type,
        body.get_scope(owner_id),
        limit=body.limit,
        exclude_id=body.exclude_id,
        timeout=body.timeout_seconds,
    )
    response = SimilarResponse(query=body.query, content_type=body.content_type, results=results, total=len(results))
    return JSONResponse(content=response.model_dump(mode="json"))
