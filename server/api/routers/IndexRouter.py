"""Index router: trigger a full reindex without waiting for it."""

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from shared.dependencies.auth import verify_api_key
from shared.models.indexing import ReindexRequest

index_router = APIRouter()


@index_router.post(
    "/index/rebuild",
    dependencies=[Depends(verify_api_key)],
    tags=["Index"],
)
async def handle_rebuild(request: Request, body: ReindexRequest | None = None) -> JSONResponse:
    """Schedule a full reindex of the given content kinds (all when omitted).

    Progress and the per-kind report are written to the log.
    """
    content_types = body.content_types if body else None
    indexer_service = request.app.state.indexer_service
    request.app.state.task_queue.enqueue(
        lambda: indexer_service.do_full_reindex(content_types),
        name="full_reindex",
    )
    return JSONResponse(
        status_code=202,
        content={"status": "accepted", "content_types": content_types or ["plans", "notes"]},
    )
