"""Tests for IndexerService: deferred recompute, failure isolation, deletion and full reindex."""

import asyncio

import pytest

from shared.helper.text_helper import hash_text
from shared.models.indexing import MutationEvent
from tests.conftest import cosine, make_note, make_plan

CONTENT = [{"type": "paragraph", "content": [{"type": "text", "text": "Halves and quarters"}]}]


@pytest.mark.asyncio
async def test_recompute_patches_store_and_upserts_point(indexer_service, store_client, rag_client, embed_client) -> None:
    store_client.add("plans", make_plan("p1", title="Fractions Intro", content=CONTENT, class_id="c7"))

    assert await indexer_service.do_recompute("p1", "plans") is True

    assert embed_client.calls == ["Fractions Intro Halves and quarters"]
    assert store_client.patches == [("plans", "p1", [1.0, 0.0])]
    assert store_client.get("plans", "p1").embedding == [1.0, 0.0]
    vector, payload = rag_client.collections["lesson_plans"]["p1"]
    assert vector == [1.0, 0.0]
    assert payload["owner_id"] == "u1"
    assert payload["class_id"] == "c7"
    assert payload["text_hash"] == hash_text("Fractions Intro Halves and quarters")


@pytest.mark.asyncio
async def test_embedding_text_is_bounded(indexer_service, store_client, embed_client) -> None:
    long_content = [{"type": "paragraph", "content": [{"type": "text", "text": "y" * 5000}]}]
    store_client.add("plans", make_plan("p1", title="Long", content=long_content))

    await indexer_service.do_recompute("p1", "plans")

    assert len(embed_client.calls[0]) == 1000
    assert embed_client.calls[0].startswith("Long yyy")


@pytest.mark.asyncio
async def test_note_text_is_prefixed_with_parent_plan_title(indexer_service, store_client, embed_client) -> None:
    store_client.add("plans", make_plan("p1", title="Fractions Unit"))
    store_client.add("notes", make_note("n1", title="Day 1", content="Pizza slices", lesson_plan_id="p1"))

    await indexer_service.do_recompute("n1", "notes")

    assert embed_client.calls == ["Fractions Unit Day 1 Pizza slices"]


@pytest.mark.asyncio
async def test_note_without_readable_parent_gets_no_prefix(indexer_service, store_client, embed_client) -> None:
    store_client.add("notes", make_note("n1", title="Day 1", content="Pizza slices", lesson_plan_id="missing"))

    await indexer_service.do_recompute("n1", "notes")

    assert embed_client.calls == ["Day 1 Pizza slices"]


@pytest.mark.asyncio
async def test_provider_failure_leaves_embedding_untouched(indexer_service, store_client, rag_client, embed_client) -> None:
    store_client.add("plans", make_plan("p1", title="Fractions", embedding=[0.1, 0.2]))
    embed_client.error = RuntimeError("provider down")

    assert await indexer_service.do_recompute("p1", "plans") is False

    assert store_client.get("plans", "p1").embedding == [0.1, 0.2]
    assert store_client.patches == []
    assert "p1" not in rag_client.collections.get("lesson_plans", {})


@pytest.mark.asyncio
async def test_store_patch_failure_skips_index_upsert(indexer_service, store_client, rag_client) -> None:
    store_client.add("plans", make_plan("p1", title="Fractions", embedding=[0.1, 0.2]))
    store_client.patch_error = RuntimeError("write conflict")

    assert await indexer_service.do_recompute("p1", "plans") is False

    assert store_client.get("plans", "p1").embedding == [0.1, 0.2]
    assert "p1" not in rag_client.collections.get("lesson_plans", {})


@pytest.mark.asyncio
async def test_on_mutate_does_not_wait_for_the_job(indexer_service, task_queue, store_client, embed_client) -> None:
    store_client.add("plans", make_plan("p1", title="Fractions"))
    embed_client.delay = 0.05

    indexer_service.on_mutate("p1", "plans")

    assert task_queue.pending_count() == 1
    assert store_client.patches == []

    await task_queue.drain()

    assert len(store_client.patches) == 1


@pytest.mark.asyncio
async def test_on_mutate_twice_is_idempotent(indexer_service, task_queue, store_client, rag_client) -> None:
    store_client.add("plans", make_plan("p1", title="Fractions", content=CONTENT))

    indexer_service.on_mutate("p1", "plans")
    indexer_service.on_mutate("p1", "plans")
    await task_queue.drain()

    assert len(store_client.patches) == 2
    first, second = store_client.patches[0][2], store_client.patches[1][2]
    assert cosine(first, second) == pytest.approx(1.0)
    assert list(rag_client.collections["lesson_plans"]) == ["p1"]


@pytest.mark.asyncio
async def test_on_mutate_rejects_unknown_content_type(indexer_service) -> None:
    with pytest.raises(ValueError):
        indexer_service.on_mutate("x1", "videos")


@pytest.mark.asyncio
async def test_recompute_of_deleted_document_removes_point(indexer_service, seed, store_client, rag_client) -> None:
    seed("plans", make_plan("p1"), similarity=0.9)
    del store_client.documents[("plans", "p1")]

    assert await indexer_service.do_recompute("p1", "plans") is False
    assert "p1" not in rag_client.collections["lesson_plans"]


@pytest.mark.asyncio
async def test_delete_event_removes_point(indexer_service, task_queue, seed, rag_client) -> None:
    seed("notes", make_note("n1"), similarity=0.9)

    indexer_service.handle_event(MutationEvent(document_id="n1", content_type="notes", event="deleted"))
    await task_queue.drain()

    assert "n1" not in rag_client.collections["lesson_notes"]


@pytest.mark.asyncio
async def test_full_reindex_skips_fresh_indexes_stale_and_removes_orphans(indexer_service, seed, store_client, rag_client, embed_client) -> None:
    # seeded points are hashed over the title, which is the whole embedding text of a plan without content
    seed("plans", make_plan("fresh", title="Fresh"), similarity=0.9)
    seed("plans", make_plan("stale", title="Old title"), similarity=0.9)
    store_client.get("plans", "stale").title = "New title"
    store_client.add("plans", make_plan("missing", title="Never indexed"))
    seed("plans", make_plan("orphan", title="Gone"), similarity=0.9)
    del store_client.documents[("plans", "orphan")]

    [report] = await indexer_service.do_full_reindex(["plans"])

    assert report.content_type == "plans"
    assert report.total == 3
    assert report.indexed == 2
    assert report.skipped == 1
    assert report.failed == 0
    assert report.orphans_removed == 1
    assert sorted(embed_client.calls) == ["Never indexed", "New title"]
    assert set(rag_client.collections["lesson_plans"]) == {"fresh", "stale", "missing"}


@pytest.mark.asyncio
async def test_full_reindex_counts_failures(indexer_service, store_client, embed_client) -> None:
    store_client.add("notes", make_note("n1", title="A"))
    store_client.add("notes", make_note("n2", title="B"))
    embed_client.error = RuntimeError("provider down")

    reports = await indexer_service.do_full_reindex()

    by_type = {report.content_type: report for report in reports}
    assert set(by_type) == {"plans", "notes"}
    assert by_type["notes"].failed == 2
    assert by_type["notes"].indexed == 0


@pytest.mark.asyncio
async def test_ensure_collections_creates_one_per_kind(indexer_service, rag_client) -> None:
    await indexer_service.do_ensure_collections()

    assert rag_client.ensured == [
        ("lesson_plans", "embedding", 2, "Cosine", ("owner_id", "class_id", "subject_id")),
        ("lesson_notes", "embedding", 2, "Cosine", ("owner_id", "lesson_plan_id")),
    ]


@pytest.mark.asyncio
async def test_full_reindex_respects_concurrency(monkeypatch, helper_config, embed_client, rag_client, kind_manager, task_queue, store_client) -> None:
    from services.embedding_indexer.IndexerService import IndexerService

    monkeypatch.setenv("INDEXER_CONCURRENCY", "2")
    service = IndexerService(helper_config=helper_config, embed_client=embed_client, rag_client=rag_client, kind_manager=kind_manager, task_queue=task_queue)
    for i in range(6):
        store_client.add("plans", make_plan(f"p{i}", title=f"Plan {i}"))

    running = 0
    peak = 0
    original = embed_client.do_embed_text

    async def tracking_embed(text, timeout=None):
        nonlocal running, peak
        running += 1
        peak = max(peak, running)
        await asyncio.sleep(0.01)
        running -= 1
        return await original(text, timeout)

    embed_client.do_embed_text = tracking_embed
    [report] = await service.do_full_reindex(["plans"])

    assert report.indexed == 6
    assert peak <= 2
