"""Webhook router for document mutation events.

The lesson application's write path calls POST /webhook/mutation after a
title or content change (or a deletion) commits. The handler only enqueues
the embedding work, so the write path never waits on the embedding provider.
"""

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from shared.dependencies.auth import verify_api_key
from shared.models.indexing import MutationEvent

webhook_router = APIRouter()


@webhook_router.post(
    "/webhook/mutation",
    dependencies=[Depends(verify_api_key)],
    tags=["Webhook"],
)
async def handle_mutation_webhook(request: Request, body: MutationEvent) -> JSONResponse:
    """Handle a document created, updated or deleted event.

    Args:
        request (Request): The incoming FastAPI request (carries app state).
        body (MutationEvent): The mutated document and the kind of mutation.

    Returns:
        JSONResponse: Acknowledgement with the received document_id.
    """
    request.app.state.logging.info("Webhook received, %s %s/%s", body.event, body.content_type, body.document_id)
    request.app.state.indexer_service.handle_event(body)
    return JSONResponse(
        status_code=202,
        content={"status": "accepted", "document_id": body.document_id, "event": body.event},
    )
