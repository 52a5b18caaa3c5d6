"""FastAPI application entry point for the lesson search API."""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import os
from server.api.routers.IndexRouter import index_router
from server.api.routers.SearchRouter import search_router
from server.api.routers.WebhookRouter import webhook_router
from server.api.services.SearchService import SearchService
from services.embedding_indexer.IndexerService import IndexerService
from shared.clients.embed.EmbedClientManager import EmbedClientManager
from shared.clients.rag.RAGClientManager import RAGClientManager
from shared.clients.store.StoreClientManager import StoreClientManager
from shared.helper.HelperConfig import HelperConfig
from shared.kinds.ContentKindManager import ContentKindManager
from shared.logging.logging_setup import setup_logging
from shared.tasks.DeferredTaskQueue import DeferredTaskQueue

logging = setup_logging()
config = HelperConfig(logger=logging)
app_version = os.getenv("APP_VERSION", "unknown")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Manage application startup and shutdown."""
    app.state.logging = setup_logging()
    app.state.config = HelperConfig(logger=app.state.logging)

    # Initialise clients
    embed_client = EmbedClientManager(helper_config=app.state.config).get_client()
    rag_client = RAGClientManager(helper_config=app.state.config).get_client()
    store_client = StoreClientManager(helper_config=app.state.config).get_client()
    await embed_client.boot()
    await rag_client.boot()
    await store_client.boot()

    # Health checks
    await rag_client.do_healthcheck()
    await embed_client.do_healthcheck()

    # Wire up services
    kind_manager = ContentKindManager(helper_config=app.state.config, store_client=store_client)
    app.state.task_queue = DeferredTaskQueue(helper_config=app.state.config)
    app.state.indexer_service = IndexerService(
        helper_config=app.state.config,
        embed_client=embed_client,
        rag_client=rag_client,
        kind_manager=kind_manager,
        task_queue=app.state.task_queue,
    )
    app.state.search_service = SearchService(
        helper_config=app.state.config,
        embed_client=embed_client,
        rag_client=rag_client,
        kind_manager=kind_manager,
    )

    # Ensure one collection per content kind exists
    await app.state.indexer_service.do_ensure_collections()

    app.state.logging.info("Lesson search API ready.")
    yield

    # Shutdown, let queued embedding jobs finish first
    await app.state.task_queue.close(timeout=30)
    await embed_client.close()
    await rag_client.close()
    await store_client.close()
    app.state.logging.info("Lesson search API shut down.")


app = FastAPI(
    title="Lesson Search Bridge",
    description="Owner-scoped semantic search and embedding indexing for lesson plans and notes.",
    version=app_version,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.get_list_val("APP_CORS_ORIGINS", default=["*"]),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(search_router)
app.include_router(webhook_router)
app.include_router(index_router)


# Server Start
if __name__ == "__main__":
    # start server
    import uvicorn
    logging.info(f"Starting lesson search API v{app_version} from root dir: {os.getenv('ROOT_DIR', os.getcwd())} on port 8000...")
    uvicorn.run(app, host="0.0.0.0", port=8000)
