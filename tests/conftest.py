"""Shared fixtures: in-memory fakes of the embedding provider, vector index and document store."""

import asyncio
import logging
import math

import pytest

from server.api.services.SearchService import SearchService
from services.embedding_indexer.IndexerService import IndexerService
from shared.clients.rag.models.Scroll import ScrollResult
from shared.clients.rag.models.VectorHit import VectorHit
from shared.clients.rag.models.VectorPoint import VectorPoint
from shared.helper.HelperConfig import HelperConfig
from shared.kinds.ContentKindManager import ContentKindManager
from shared.models.document import LessonNote, LessonPlan, SearchableDocument
from shared.tasks.DeferredTaskQueue import DeferredTaskQueue

DIMENSION = 2


def cosine(a: list[float], b: list[float]) -> float:
    dot = sum(x * y for x, y in zip(a, b))
    norm = math.sqrt(sum(x * x for x in a)) * math.sqrt(sum(y * y for y in b))
    return dot / norm if norm else 0.0


def unit_vector(similarity: float) -> list[float]:
    """A 2-d unit vector whose cosine to [1, 0] is exactly `similarity`."""
    return [similarity, math.sqrt(max(0.0, 1.0 - similarity * similarity))]


class FakeEmbedClient:
    def __init__(self, vectors: dict[str, list[float]] | None = None):
        self.vectors = vectors or {}
        self.default_vector = [1.0, 0.0]
        self.calls: list[str] = []
        self.error: Exception | None = None
        self.delay = 0.0

    async def do_embed_text(self, text: str, timeout: float | None = None) -> list[float]:
        self.calls.append(text)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return list(self.vectors.get(text, self.default_vector))

    async def do_fetch_embedding_vector_size(self):
        return DIMENSION, "Cosine"


class FakeRAGClient:
    """Vector index with real cosine similarity over payload-filtered points."""

    def __init__(self):
        self.collections: dict[str, dict[str, tuple[list[float], dict]]] = {}
        self.search_calls: list[dict] = []
        self.ensured: list[tuple] = []
        self.error: Exception | None = None
        self.delay = 0.0

    def add_point(self, collection: str, vector: list[float], point: VectorPoint) -> None:
        self.collections.setdefault(collection, {})[point.doc_id] = (list(vector), point.model_dump())

    async def do_vector_search(self, collection, vector_field, query_vector, filters, limit, timeout=None):
        if not filters.get("owner_id"):
            raise ValueError("Vector search requires an owner_id filter.")
        self.search_calls.append({"collection": collection, "filters": dict(filters), "limit": limit})
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        hits = []
        for doc_id, (vector, payload) in self.collections.get(collection, {}).items():
            if all(payload.get(key) == value for key, value in filters.items()):
                hits.append(VectorHit(id=doc_id, score=cosine(query_vector, vector)))
        hits.sort(key=lambda hit: hit.score, reverse=True)
        return hits[:limit]

    async def do_upsert_point(self, collection, vector_field, vector, point: VectorPoint) -> None:
        if self.error is not None:
            raise self.error
        self.add_point(collection, vector, point)

    async def do_delete_documents(self, collection, doc_ids) -> None:
        for doc_id in doc_ids:
            self.collections.get(collection, {}).pop(doc_id, None)

    async def do_scroll_all(self, collection, filters=None, with_payload=True, page_size=1000) -> ScrollResult:
        return ScrollResult(
            result=[{"id": doc_id, "payload": payload} for doc_id, (_, payload) in self.collections.get(collection, {}).items()]
        )

    async def do_ensure_collection(self, collection, vector_field, vector_size, distance="Cosine", indexed_fields=None) -> bool:
        self.ensured.append((collection, vector_field, vector_size, distance, tuple(indexed_fields or [])))
        self.collections.setdefault(collection, {})
        return True


class FakeStoreClient:
    def __init__(self):
        self.documents: dict[tuple[str, str], SearchableDocument] = {}
        self.patches: list[tuple[str, str, list[float]]] = []
        self.error: Exception | None = None
        self.patch_error: Exception | None = None

    def add(self, content_type: str, document: SearchableDocument) -> SearchableDocument:
        self.documents[(content_type, document.id)] = document
        return document

    def get(self, content_type: str, document_id: str) -> SearchableDocument | None:
        return self.documents.get((content_type, document_id))

    async def do_fetch_documents_by_ids(self, content_type, document_ids, timeout=None):
        if self.error is not None:
            raise self.error
        return [self.documents[(content_type, i)] for i in document_ids if (content_type, i) in self.documents]

    async def do_fetch_document(self, content_type, document_id, timeout=None):
        if self.error is not None:
            raise self.error
        return self.documents.get((content_type, document_id))

    async def do_list_scoped(self, content_type, filters, timeout=None):
        if self.error is not None:
            raise self.error
        return [
            doc for (ct, _), doc in self.documents.items()
            if ct == content_type and all(getattr(doc, key, None) == value for key, value in filters.items())
        ]

    async def do_fetch_all_documents(self, content_type, page_size=200):
        return [doc for (ct, _), doc in self.documents.items() if ct == content_type]

    async def do_patch_embedding(self, content_type, document_id, embedding) -> None:
        if self.patch_error is not None:
            raise self.patch_error
        self.patches.append((content_type, document_id, list(embedding)))
        document = self.documents[(content_type, document_id)]
        document.embedding = list(embedding)


def make_plan(doc_id: str, owner_id: str = "u1", title: str = "Plan", content=None, class_id: str = "c1", subject_id: str = "s1", **kwargs) -> LessonPlan:
    return LessonPlan(id=doc_id, owner_id=owner_id, title=title, content=content, class_id=class_id, subject_id=subject_id, **kwargs)


def make_note(doc_id: str, owner_id: str = "u1", title: str = "Note", content=None, lesson_plan_id: str = "p1", **kwargs) -> LessonNote:
    return LessonNote(id=doc_id, owner_id=owner_id, title=title, content=content, lesson_plan_id=lesson_plan_id, **kwargs)


@pytest.fixture
def helper_config(monkeypatch) -> HelperConfig:
    for key in ("SEARCH_SIMILARITY_THRESHOLD", "SIMILAR_SIMILARITY_THRESHOLD", "SEARCH_MAX_LIMIT", "SEARCH_DEFAULT_LIMIT",
                "SIMILAR_DEFAULT_LIMIT", "SIMILAR_MAX_LIMIT", "RAG_COLLECTION_PLANS", "RAG_COLLECTION_NOTES", "RAG_VECTOR_FIELD"):
        monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("APP_API_KEY", "test-key")
    monkeypatch.setenv("SEARCH_TIMEOUT", "0.5")
    return HelperConfig(logger=logging.getLogger("lesson_search.tests"))


@pytest.fixture
def embed_client() -> FakeEmbedClient:
    return FakeEmbedClient()


@pytest.fixture
def rag_client() -> FakeRAGClient:
    return FakeRAGClient()


@pytest.fixture
def store_client() -> FakeStoreClient:
    return FakeStoreClient()


@pytest.fixture
def kind_manager(helper_config, store_client) -> ContentKindManager:
    return ContentKindManager(helper_config=helper_config, store_client=store_client)


@pytest.fixture
def search_service(helper_config, embed_client, rag_client, kind_manager) -> SearchService:
    return SearchService(helper_config=helper_config, embed_client=embed_client, rag_client=rag_client, kind_manager=kind_manager)


@pytest.fixture
def task_queue(helper_config) -> DeferredTaskQueue:
    return DeferredTaskQueue(helper_config=helper_config)


@pytest.fixture
def indexer_service(helper_config, embed_client, rag_client, kind_manager, task_queue) -> IndexerService:
    return IndexerService(
        helper_config=helper_config,
        embed_client=embed_client,
        rag_client=rag_client,
        kind_manager=kind_manager,
        task_queue=task_queue,
    )


@pytest.fixture
def seed(store_client, rag_client, kind_manager):
    """Add a document to the store and its point to the index.

    Usage: seed("plans", make_plan("p1", title="..."), similarity=0.82)
    The point vector has the given cosine similarity to the query vector [1, 0].
    """

    def _seed(content_type: str, document: SearchableDocument, similarity: float | None = None, vector: list[float] | None = None):
        kind = kind_manager.get_kind(content_type)
        store_client.add(content_type, document)
        if vector is None and similarity is not None:
            vector = unit_vector(similarity)
        if vector is not None:
            document.embedding = list(vector)
            rag_client.add_point(kind.collection_name, vector, kind.build_vector_point(document, document.title))
        return document

    return _seed
