"""Tests for RAGClientQdrant against a mocked Qdrant REST API."""

import json
import uuid

import httpx
import pytest

from shared.clients.ClientInterface import ClientRequestError
from shared.clients.rag.models.VectorPoint import VectorPoint
from shared.clients.rag.qdrant.RAGClientQdrant import RAGClientQdrant


@pytest.fixture
def qdrant_env(monkeypatch, helper_config):
    monkeypatch.setenv("RAG_QDRANT_BASE_URL", "http://qdrant.test:6333")
    monkeypatch.setenv("RAG_QDRANT_API_KEY", "secret")
    return helper_config


async def _booted(helper_config, handler) -> RAGClientQdrant:
    client = RAGClientQdrant(helper_config=helper_config)
    await client.boot(transport=httpx.MockTransport(handler))
    return client


def test_missing_base_url_fails_at_construction(monkeypatch, helper_config) -> None:
    monkeypatch.delenv("RAG_QDRANT_BASE_URL", raising=False)

    with pytest.raises(ValueError, match="RAG_QDRANT_BASE_URL"):
        RAGClientQdrant(helper_config=helper_config)


@pytest.mark.asyncio
async def test_vector_search_sends_owner_filter_and_parses_hits(qdrant_env) -> None:
    requests = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(200, json={
            "status": "ok",
            "result": [
                {"id": "a", "score": 0.91, "payload": {"doc_id": "plan-1"}},
                {"id": "b", "score": 0.42, "payload": {}},
                {"id": "c", "score": 0.40, "payload": {"doc_id": "plan-2"}},
            ],
        })

    client = await _booted(qdrant_env, handler)
    hits = await client.do_vector_search("lesson_plans", "embedding", [0.1, 0.2], {"owner_id": "u1", "class_id": "c1"}, 5)
    await client.close()

    assert [(hit.id, hit.score) for hit in hits] == [("plan-1", 0.91), ("plan-2", 0.40)]
    request = requests[0]
    assert request.method == "POST"
    assert request.url.path == "/collections/lesson_plans/points/search"
    assert request.headers["api-key"] == "secret"
    body = json.loads(request.content)
    assert body["vector"] == {"name": "embedding", "vector": [0.1, 0.2]}
    assert body["limit"] == 5
    assert body["filter"]["must"] == [
        {"key": "owner_id", "match": {"value": "u1"}},
        {"key": "class_id", "match": {"value": "c1"}},
    ]


@pytest.mark.asyncio
async def test_vector_search_without_owner_is_refused(qdrant_env) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError("no request expected")

    client = await _booted(qdrant_env, handler)
    with pytest.raises(ValueError, match="owner_id"):
        await client.do_vector_search("lesson_plans", "embedding", [0.1], {"class_id": "c1"}, 5)
    await client.close()


@pytest.mark.asyncio
async def test_upsert_uses_deterministic_point_id_and_named_vector(qdrant_env) -> None:
    bodies = []

    def handler(request: httpx.Request) -> httpx.Response:
        bodies.append(json.loads(request.content))
        assert request.method == "PUT"
        assert request.url.path == "/collections/lesson_notes/points"
        assert request.url.params["wait"] == "true"
        return httpx.Response(200, json={"status": "ok", "result": {"status": "completed"}})

    client = await _booted(qdrant_env, handler)
    point = VectorPoint(doc_id="note-1", content_type="notes", owner_id="u1", lesson_plan_id="plan-1", text_hash="h")
    await client.do_upsert_point("lesson_notes", "embedding", [0.5, 0.5], point)
    await client.do_upsert_point("lesson_notes", "embedding", [0.5, 0.5], point)
    await client.close()

    [first] = bodies[0]["points"]
    assert first["id"] == bodies[1]["points"][0]["id"]
    assert str(uuid.UUID(first["id"])) == first["id"]
    assert first["vector"] == {"embedding": [0.5, 0.5]}
    assert first["payload"]["doc_id"] == "note-1"
    assert first["payload"]["owner_id"] == "u1"
    assert first["payload"]["lesson_plan_id"] == "plan-1"


@pytest.mark.asyncio
async def test_upsert_without_owner_is_refused(qdrant_env) -> None:
    client = await _booted(qdrant_env, lambda request: httpx.Response(200, json={}))
    with pytest.raises(ValueError):
        await client.do_upsert_point("lesson_plans", "embedding", [0.1], VectorPoint(doc_id="x", content_type="plans", owner_id=""))
    await client.close()


@pytest.mark.asyncio
async def test_delete_documents_posts_point_ids(qdrant_env) -> None:
    bodies = []

    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/collections/lesson_plans/points/delete"
        bodies.append(json.loads(request.content))
        return httpx.Response(200, json={"status": "ok"})

    client = await _booted(qdrant_env, handler)
    await client.do_delete_documents("lesson_plans", ["plan-1", "plan-2"])
    await client.do_delete_documents("lesson_plans", [])
    await client.close()

    assert bodies == [{"points": [client.make_point_id("plan-1"), client.make_point_id("plan-2")]}]


@pytest.mark.asyncio
async def test_ensure_collection_creates_collection_and_payload_indexes(qdrant_env) -> None:
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append((request.method, request.url.path, json.loads(request.content) if request.content else None))
        if request.url.path.endswith("/exists"):
            return httpx.Response(200, json={"result": {"exists": False}, "status": "ok"})
        return httpx.Response(200, json={"result": True, "status": "ok"})

    client = await _booted(qdrant_env, handler)
    created = await client.do_ensure_collection("lesson_plans", "embedding", 768, "Cosine", indexed_fields=["owner_id", "class_id"])
    await client.close()

    assert created is True
    assert calls[0][:2] == ("GET", "/collections/lesson_plans/exists")
    assert calls[1] == ("PUT", "/collections/lesson_plans", {"vectors": {"embedding": {"size": 768, "distance": "Cosine"}}})
    assert calls[2] == ("PUT", "/collections/lesson_plans/index", {"field_name": "owner_id", "field_schema": "keyword"})
    assert calls[3][2]["field_name"] == "class_id"


@pytest.mark.asyncio
async def test_ensure_collection_keeps_existing_collection(qdrant_env) -> None:
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request.url.path)
        return httpx.Response(200, json={"result": {"exists": True}, "status": "ok"})

    client = await _booted(qdrant_env, handler)
    assert await client.do_ensure_collection("lesson_plans", "embedding", 768) is False
    await client.close()

    assert calls == ["/collections/lesson_plans/exists"]


@pytest.mark.asyncio
async def test_scroll_all_follows_next_page_offset(qdrant_env) -> None:
    offsets = []

    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        offsets.append(body.get("offset"))
        if body.get("offset") is None:
            return httpx.Response(200, json={"result": {"points": [{"id": "1", "payload": {"doc_id": "a"}}], "next_page_offset": "p2"}})
        return httpx.Response(200, json={"result": {"points": [{"id": "2", "payload": {"doc_id": "b"}}], "next_page_offset": None}})

    client = await _booted(qdrant_env, handler)
    result = await client.do_scroll_all("lesson_plans", with_payload=["doc_id", "text_hash"], page_size=1)
    await client.close()

    assert offsets == [None, "p2"]
    assert [point["payload"]["doc_id"] for point in result.result] == ["a", "b"]
    assert result.next_page_offset is None


@pytest.mark.asyncio
async def test_error_status_raises_client_request_error(qdrant_env) -> None:
    client = await _booted(qdrant_env, lambda request: httpx.Response(500, text="boom"))
    with pytest.raises(ClientRequestError) as exc_info:
        await client.do_vector_search("lesson_plans", "embedding", [0.1], {"owner_id": "u1"}, 5)
    await client.close()

    assert exc_info.value.status_code == 500


@pytest.mark.asyncio
async def test_request_before_boot_fails(qdrant_env) -> None:
    client = RAGClientQdrant(helper_config=qdrant_env)

    with pytest.raises(Exception, match="boot"):
        await client.do_existence_check("lesson_plans")
