"""Search service: owner-scoped semantic search over lesson plans and notes.

Flow: embed query -> vector search with owner/scope filter -> hydrate through
the document store -> threshold -> stable sort by score.

Every step returns a Result internally. Public entry points turn a failed
Result into an empty list, so a broken provider looks like "no matches" to
the caller while the log names the failing step.
"""

import asyncio

import httpx

from shared.clients.embed.EmbedClientInterface import EmbedClientInterface
from shared.clients.rag.RAGClientInterface import RAGClientInterface
from shared.clients.rag.models.VectorHit import VectorHit
from shared.helper.HelperConfig import HelperConfig
from shared.kinds.ContentKindInterface import ContentKindInterface
from shared.kinds.ContentKindManager import ContentKindManager
from shared.models.document import SearchableDocument
from shared.models.result import Result, SearchError
from shared.models.search import HybridSearchItem, ScoredDocument, SearchScope, SimilarDocument

_TIMEOUT_ERRORS = (asyncio.TimeoutError, httpx.TimeoutException)


class SearchService:
    """Hybrid search engine shared by both content kinds."""

    def __init__(
        self,
        helper_config: HelperConfig,
        embed_client: EmbedClientInterface,
        rag_client: RAGClientInterface,
        kind_manager: ContentKindManager,
    ) -> None:
        self.logging = helper_config.get_logger()
        self._embed = embed_client
        self._rag = rag_client
        self._kinds = kind_manager

        self.search_threshold = float(helper_config.get_number_val("SEARCH_SIMILARITY_THRESHOLD", default=0.5))
        self.similar_threshold = float(helper_config.get_number_val("SIMILAR_SIMILARITY_THRESHOLD", default=0.7))
        self.search_default_limit = int(helper_config.get_number_val("SEARCH_DEFAULT_LIMIT", default=10))
        self.search_max_limit = int(helper_config.get_number_val("SEARCH_MAX_LIMIT", default=20))
        self.similar_default_limit = int(helper_config.get_number_val("SIMILAR_DEFAULT_LIMIT", default=5))
        self.similar_max_limit = int(helper_config.get_number_val("SIMILAR_MAX_LIMIT", default=10))
        self.default_timeout = float(helper_config.get_number_val("SEARCH_TIMEOUT", default=10))

    ##########################################
    ################ PUBLIC ##################
    ##########################################

    async def search(
        self,
        query: str,
        content_type: str,
        scope: SearchScope | None,
        limit: int | None = None,
        timeout: float | None = None,
    ) -> list[ScoredDocument]:
        """Semantic search within the caller's documents.

        Args:
            query (str): Free text. Empty or whitespace-only yields [] without embedding.
            content_type (str): "plans" or "notes".
            scope (SearchScope | None): Caller scope. None (unauthenticated) yields [].
            limit (int | None): Requested result count, defaults to 10, capped at 20.
            timeout (float | None): Bound for each embed and index call in seconds.

        Returns:
            list[ScoredDocument]: Results with score above the threshold, best first.
        """
        result = await self._search(
            query,
            content_type,
            scope,
            limit=self._clamp_limit(limit, self.search_default_limit, self.search_max_limit),
            threshold=self.search_threshold,
            timeout=timeout,
        )
        return self._unwrap(result, "search")

    async def search_with_title_matches(
        self,
        query: str,
        content_type: str,
        scope: SearchScope | None,
        limit: int | None = None,
        timeout: float | None = None,
    ) -> list[HybridSearchItem]:
        """Title matches from the scoped listing first, then semantic results not already listed."""
        if scope is None:
            return []
        kind = self._get_kind(content_type)
        if kind is None:
            return []

        listing: list[SearchableDocument] = []
        try:
            listing = await asyncio.wait_for(kind.list_scoped(scope), timeout=self._timeout(timeout))
        except Exception as e:
            self.logging.warning("Scoped listing failed (%s) for content_type=%s: %s", SearchError.STORE_FAILED.value, content_type, e)

        semantic = await self.search(query, content_type, scope, limit=limit, timeout=timeout)
        return self.merge_title_and_semantic_matches(query, listing, semantic)

    async def find_similar(
        self,
        query: str,
        content_type: str,
        scope: SearchScope | None,
        limit: int | None = None,
        exclude_id: str | None = None,
        timeout: float | None = None,
    ) -> list[SimilarDocument]:
        """Same-corpus recommender used as context for content generation.

        Uses the stricter similarity threshold and a small limit. Any failure
        yields [] so the generation that asked for examples proceeds without them.

        Args:
            exclude_id (str | None): Document to leave out, usually the one the query was built from.
        """
        limit = self._clamp_limit(limit, self.similar_default_limit, self.similar_max_limit)
        kind = self._get_kind(content_type)
        if kind is None or limit == 0:
            return []

        # one extra candidate so the excluded document does not cost a slot
        candidate_limit = limit + 1 if exclude_id else limit
        result = await self._search(query, content_type, scope, limit=candidate_limit, threshold=self.similar_threshold, timeout=timeout)
        scored = [item for item in self._unwrap(result, "find_similar") if item.document.id != exclude_id]
        return [kind.build_similar_document(item.document, item.similarity_score) for item in scored[:limit]]

    ##########################################
    ################ MERGE ###################
    ##########################################

    @staticmethod
    def merge_title_and_semantic_matches(
        query: str,
        listing: list[SearchableDocument],
        semantic: list[ScoredDocument],
    ) -> list[HybridSearchItem]:
        """Merge exact title matches with semantic results.

        Title matches (case-insensitive substring, listing order) come first, then
        semantic results whose ID is not among them, in semantic order. Every ID
        appears once. An empty query matches every title.

        Args:
            query (str): The raw search text.
            listing (list[SearchableDocument]): Full scoped listing from the store.
            semantic (list[ScoredDocument]): Output of search().

        Returns:
            list[HybridSearchItem]: The merged list.
        """
        needle = (query or "").strip().lower()
        merged: list[HybridSearchItem] = []
        seen: set[str] = set()

        for document in listing:
            if document.id in seen:
                continue
            if needle in (document.title or "").lower():
                seen.add(document.id)
                merged.append(HybridSearchItem(match_type="title", document=document))

        for item in semantic:
            if item.document.id in seen:
                continue
            seen.add(item.document.id)
            merged.append(HybridSearchItem(match_type="semantic", similarity_score=item.similarity_score, document=item.document))

        return merged

    ##########################################
    ################ CORE ####################
    ##########################################

    async def _search(
        self,
        query: str,
        content_type: str,
        scope: SearchScope | None,
        limit: int,
        threshold: float,
        timeout: float | None = None,
    ) -> Result[list[ScoredDocument]]:
        if not query or not query.strip():
            return Result.success([])
        if scope is None or not scope.owner_id:
            self.logging.debug("Search without owner identity, returning no results.")
            return Result.success([])
        if limit <= 0:
            return Result.success([])
        kind = self._get_kind(content_type)
        if kind is None:
            return Result.success([])

        timeout = self._timeout(timeout)

        embedded = await self._embed_query(query.strip(), timeout)
        if not embedded.ok:
            return Result.failure(embedded.error, embedded.detail)

        hits = await self._vector_search(kind, embedded.value, kind.get_filters(scope), limit, timeout)
        if not hits.ok:
            return Result.failure(hits.error, hits.detail)
        if not hits.value:
            return Result.success([])

        hydrated = await self._hydrate(kind, hits.value, scope.owner_id, timeout)
        if not hydrated.ok:
            return Result.failure(hydrated.error, hydrated.detail)

        results = [item for item in hydrated.value if item.similarity_score > threshold]
        # sorted() is stable, ties keep index order
        results = sorted(results, key=lambda item: item.similarity_score, reverse=True)[:limit]

        self.logging.info(
            "Search complete, content_type=%s owner_id=%s candidates=%d results=%d",
            content_type, scope.owner_id, len(hits.value), len(results),
        )
        return Result.success(results)

    async def _embed_query(self, query: str, timeout: float) -> Result[list[float]]:
        try:
            vector = await asyncio.wait_for(self._embed.do_embed_text(query, timeout=timeout), timeout=timeout)
        except _TIMEOUT_ERRORS as e:
            return Result.failure(SearchError.EMBED_TIMEOUT, f"embedding timed out after {timeout}s: {e}")
        except Exception as e:
            return Result.failure(SearchError.EMBED_FAILED, str(e))
        return Result.success(vector)

    async def _vector_search(
        self,
        kind: ContentKindInterface,
        vector: list[float],
        filters: dict[str, str],
        limit: int,
        timeout: float,
    ) -> Result[list[VectorHit]]:
        try:
            hits = await asyncio.wait_for(
                self._rag.do_vector_search(kind.collection_name, kind.vector_field, vector, filters, limit, timeout=timeout),
                timeout=timeout,
            )
        except _TIMEOUT_ERRORS as e:
            return Result.failure(SearchError.INDEX_TIMEOUT, f"vector search timed out after {timeout}s: {e}")
        except Exception as e:
            return Result.failure(SearchError.INDEX_FAILED, str(e))
        return Result.success(hits)

    async def _hydrate(
        self,
        kind: ContentKindInterface,
        hits: list[VectorHit],
        owner_id: str,
        timeout: float,
    ) -> Result[list[ScoredDocument]]:
        """Load the hit documents, keeping index order and the index score.

        IDs that do not resolve are dropped. So is any document of another owner.
        """
        try:
            documents = await asyncio.wait_for(kind.hydrate([hit.id for hit in hits], timeout=timeout), timeout=timeout)
        except Exception as e:
            return Result.failure(SearchError.STORE_FAILED, str(e))

        by_id = {document.id: document for document in documents}
        scored: list[ScoredDocument] = []
        for hit in hits:
            document = by_id.get(hit.id)
            if document is None:
                continue
            if document.owner_id != owner_id:
                self.logging.warning("Dropping document %s: owner does not match the search scope.", document.id)
                continue
            scored.append(ScoredDocument(content_type=kind.get_content_type(), similarity_score=hit.score, document=document))
        return Result.success(scored)

    ##########################################
    ############### HELPERS ##################
    ##########################################

    def _unwrap(self, result: Result[list], operation: str) -> list:
        if not result.ok:
            self.logging.warning("%s degraded to empty result (%s): %s", operation, result.error.value, result.detail)
        return result.unwrap_or([])

    def _get_kind(self, content_type: str) -> ContentKindInterface | None:
        try:
            return self._kinds.get_kind(content_type)
        except ValueError as e:
            self.logging.warning("%s", e)
            return None

    def _timeout(self, timeout: float | None) -> float:
        return timeout if timeout and timeout > 0 else self.default_timeout

    @staticmethod
    def _clamp_limit(limit: int | None, default: int, ceiling: int) -> int:
        if limit is None:
            return default
        return max(0, min(int(limit), ceiling))
