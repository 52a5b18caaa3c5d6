"""Embedding indexer.

Keeps each document's embedding, and its point in the vector index, in line
with the document's title and content. Mutation events are turned into
deferred jobs; a job re-reads the document, embeds its bounded text, patches
the stored embedding and upserts the index point. A failed job changes
nothing, the next mutation or the full reindex retries.
"""

import asyncio

from shared.clients.embed.EmbedClientInterface import EmbedClientInterface
from shared.clients.rag.RAGClientInterface import RAGClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.helper.text_helper import hash_text
from shared.kinds.ContentKindInterface import ContentKindInterface
from shared.kinds.ContentKindManager import ContentKindManager
from shared.models.document import SearchableDocument
from shared.models.indexing import MutationEvent, ReindexReport
from shared.tasks.DeferredTaskQueue import DeferredTaskQueue

INDEXED = "indexed"
SKIPPED = "skipped"


class IndexerService:
    """Event-driven and full reindexing of document embeddings."""

    def __init__(
        self,
        helper_config: HelperConfig,
        embed_client: EmbedClientInterface,
        rag_client: RAGClientInterface,
        kind_manager: ContentKindManager,
        task_queue: DeferredTaskQueue,
    ) -> None:
        self.logging = helper_config.get_logger()
        self._embed = embed_client
        self._rag = rag_client
        self._kinds = kind_manager
        self._queue = task_queue
        self._concurrency = int(helper_config.get_number_val("INDEXER_CONCURRENCY", default=5))

    ##########################################
    ################ EVENTS ##################
    ##########################################

    def on_mutate(self, document_id: str, content_type: str, delay: float = 0.0) -> None:
        """Schedule an embedding recompute and return immediately.

        Args:
            document_id (str): The mutated document.
            content_type (str): "plans" or "notes".
            delay (float): Seconds before the job starts.
        """
        self._kinds.get_kind(content_type)
        self._queue.enqueue(
            lambda: self.do_recompute(document_id, content_type),
            delay=delay,
            name=f"recompute:{content_type}:{document_id}",
        )

    def on_delete(self, document_id: str, content_type: str) -> None:
        """Schedule removal of a deleted document's point from the vector index."""
        self._kinds.get_kind(content_type)
        self._queue.enqueue(
            lambda: self.do_remove(document_id, content_type),
            name=f"remove:{content_type}:{document_id}",
        )

    def handle_event(self, event: MutationEvent) -> None:
        if event.event == "deleted":
            self.on_delete(event.document_id, event.content_type)
        else:
            self.on_mutate(event.document_id, event.content_type)

    ##########################################
    ################ JOBS ####################
    ##########################################

    async def do_recompute(self, document_id: str, content_type: str) -> bool:
        """Recompute and store the embedding of one document.

        Returns:
            bool: True if a new embedding was stored, False otherwise. Never raises.
        """
        try:
            kind = self._kinds.get_kind(content_type)
            document = await kind.fetch(document_id)
        except Exception as e:
            self.logging.error("Recompute %s/%s: could not load document: %s", content_type, document_id, e)
            return False

        if document is None:
            self.logging.info("Recompute %s/%s: document no longer exists, removing its point.", content_type, document_id)
            await self.do_remove(document_id, content_type)
            return False

        try:
            return await self._index_document(kind, document) == INDEXED
        except Exception as e:
            self.logging.error("Recompute %s/%s failed, stored embedding left untouched: %s", content_type, document_id, e)
            return False

    async def do_remove(self, document_id: str, content_type: str) -> bool:
        """Delete a document's point from the vector index. Never raises."""
        try:
            kind = self._kinds.get_kind(content_type)
            await self._rag.do_delete_documents(kind.collection_name, [document_id])
        except Exception as e:
            self.logging.error("Removing point of %s/%s failed: %s", content_type, document_id, e)
            return False
        self.logging.info("Removed point of %s/%s from the vector index.", content_type, document_id)
        return True

    async def _index_document(self, kind: ContentKindInterface, document: SearchableDocument, existing_hash: str | None = None) -> str:
        """Embed one document, patch the store and upsert its point.

        Args:
            existing_hash (str | None): text_hash currently stored in the index; a match
                with a stored embedding skips the document.

        Returns:
            str: INDEXED or SKIPPED.

        Raises:
            Exception: If embedding, patching or upserting fails.
        """
        text = await kind.build_embedding_text(document)
        if not text.strip():
            self.logging.info("Skipping %s/%s: no text to embed.", kind.get_content_type(), document.id)
            return SKIPPED

        if existing_hash is not None and existing_hash == hash_text(text) and document.has_embedding():
            return SKIPPED

        vector = await self._embed.do_embed_text(text)
        # store first, it is the source of truth for the embedding
        await kind.patch_embedding(document.id, vector)
        await self._rag.do_upsert_point(kind.collection_name, kind.vector_field, vector, kind.build_vector_point(document, text))

        self.logging.info("Indexed %s/%s ('%s').", kind.get_content_type(), document.id, document.title)
        return INDEXED

    ##########################################
    ############# FULL REINDEX ###############
    ##########################################

    async def do_ensure_collections(self) -> None:
        """Create the collection of every content kind if it is missing."""
        vector_size, distance = await self._embed.do_fetch_embedding_vector_size()
        for kind in self._kinds.get_kinds():
            await self._rag.do_ensure_collection(
                kind.collection_name,
                kind.vector_field,
                vector_size,
                distance,
                indexed_fields=kind.get_indexed_fields(),
            )

    async def do_full_reindex(self, content_types: list[str] | None = None) -> list[ReindexReport]:
        """Bring the vector index in line with the document store.

        Documents whose embedding text hash matches the index and that carry a
        stored embedding are skipped. Points of documents that no longer exist
        are deleted.

        Args:
            content_types (list[str] | None): Kinds to reindex, None for all.

        Returns:
            list[ReindexReport]: One report per content kind.
        """
        kinds = self._kinds.get_kinds() if not content_types else [self._kinds.get_kind(ct) for ct in content_types]
        reports = []
        for kind in kinds:
            reports.append(await self._reindex_kind(kind))
        return reports

    async def _reindex_kind(self, kind: ContentKindInterface) -> ReindexReport:
        content_type = kind.get_content_type()
        report = ReindexReport(content_type=content_type)
        self.logging.info("Starting full reindex of '%s' into collection '%s'...", content_type, kind.collection_name)

        documents = await kind.list_all()
        report.total = len(documents)

        indexed_hashes: dict[str, str | None] = {}
        scroll_result = await self._rag.do_scroll_all(kind.collection_name, with_payload=["doc_id", "text_hash"])
        for point in scroll_result.result:
            payload = point.get("payload") or {}
            if payload.get("doc_id") is not None:
                indexed_hashes[str(payload["doc_id"])] = payload.get("text_hash")

        sem = asyncio.Semaphore(self._concurrency)

        async def _run(document: SearchableDocument) -> str:
            async with sem:
                return await self._index_document(kind, document, existing_hash=indexed_hashes.get(document.id))

        results = await asyncio.gather(*[_run(document) for document in documents], return_exceptions=True)
        for document, result in zip(documents, results):
            if isinstance(result, Exception):
                report.failed += 1
                self.logging.error("Reindex of %s/%s failed: %s", content_type, document.id, result)
            elif result == INDEXED:
                report.indexed += 1
            else:
                report.skipped += 1

        report.orphans_removed = await self._cleanup_orphans(kind, set(indexed_hashes), {document.id for document in documents})

        self.logging.info(
            "Reindex of '%s' complete: %d total, %d indexed, %d skipped, %d failed, %d orphans removed.",
            content_type, report.total, report.indexed, report.skipped, report.failed, report.orphans_removed,
        )
        return report

    async def _cleanup_orphans(self, kind: ContentKindInterface, indexed_ids: set[str], store_ids: set[str]) -> int:
        """Delete index points whose document is gone from the store."""
        orphan_ids = sorted(indexed_ids - store_ids)
        if not orphan_ids:
            self.logging.info("Orphan cleanup: no stale points in '%s'.", kind.collection_name)
            return 0
        try:
            await self._rag.do_delete_documents(kind.collection_name, orphan_ids)
        except Exception as e:
            self.logging.error("Orphan cleanup in '%s' failed: %s", kind.collection_name, e)
            return 0
        self.logging.info("Orphan cleanup: removed %d stale point(s) from '%s'.", len(orphan_ids), kind.collection_name)
        return len(orphan_ids)
