"""Indexer runner entry point.

Runs a one-shot full reindex of lesson plans and notes: creates missing
collections, re-embeds stale or unindexed documents and removes orphaned
points.

Usage:
    python -m services.embedding_indexer.indexer_runner [plans] [notes]
"""

import asyncio
import sys

from services.embedding_indexer.IndexerService import IndexerService
from shared.clients.embed.EmbedClientManager import EmbedClientManager
from shared.clients.rag.RAGClientManager import RAGClientManager
from shared.clients.store.StoreClientManager import StoreClientManager
from shared.helper.HelperConfig import HelperConfig
from shared.kinds.ContentKindManager import ContentKindManager
from shared.logging.logging_setup import setup_logging
from shared.tasks.DeferredTaskQueue import DeferredTaskQueue


async def main(content_types: list[str] | None = None) -> int:
    """Run the full reindex. Returns the process exit code."""
    logger = setup_logging()
    config = HelperConfig(logger=logger)

    embed_client = EmbedClientManager(helper_config=config).get_client()
    rag_client = RAGClientManager(helper_config=config).get_client()
    store_client = StoreClientManager(helper_config=config).get_client()
    task_queue = DeferredTaskQueue(helper_config=config)

    try:
        # every client is required, nothing can be indexed without one of them
        for client in (embed_client, rag_client, store_client):
            try:
                await client.boot()
                await client.do_healthcheck()
            except Exception as e:
                logger.error(f"Error booting {client.get_client_type().upper()} client {client.get_engine_name()}: {e}. Aborting.")
                return 1

        indexer = IndexerService(
            helper_config=config,
            embed_client=embed_client,
            rag_client=rag_client,
            kind_manager=ContentKindManager(helper_config=config, store_client=store_client),
            task_queue=task_queue,
        )
        await indexer.do_ensure_collections()
        reports = await indexer.do_full_reindex(content_types)
        return 1 if any(report.failed for report in reports) else 0
    finally:
        await task_queue.close()
        await embed_client.close()
        await rag_client.close()
        await store_client.close()


if __name__ == "__main__":
    sys.exit(asyncio.run(main(sys.argv[1:] or None)))
