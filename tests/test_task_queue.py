"""Tests for the in-process DeferredTaskQueue."""

import asyncio

import pytest

from shared.tasks.DeferredTaskQueue import DeferredTaskQueue


@pytest.mark.asyncio
async def test_enqueued_job_runs_after_return(task_queue) -> None:
    ran = []

    async def job():
        ran.append("done")

    task_queue.enqueue(job)
    assert ran == []

    await task_queue.drain()
    assert ran == ["done"]
    assert task_queue.pending_count() == 0


@pytest.mark.asyncio
async def test_delay_postpones_the_job(task_queue) -> None:
    ran = []

    async def job():
        ran.append(True)

    task_queue.enqueue(job, delay=0.05)
    await asyncio.sleep(0.01)
    assert ran == []

    await task_queue.drain()
    assert ran == [True]


@pytest.mark.asyncio
async def test_failing_job_is_logged_not_raised(task_queue, caplog) -> None:
    async def job():
        raise RuntimeError("boom")

    task = task_queue.enqueue(job, name="exploding")
    await task_queue.drain()

    assert task.result() is None
    assert "exploding" in caplog.text


@pytest.mark.asyncio
async def test_concurrency_is_bounded(monkeypatch, helper_config) -> None:
    monkeypatch.setenv("TASK_QUEUE_CONCURRENCY", "2")
    queue = DeferredTaskQueue(helper_config=helper_config)
    running = 0
    peak = 0

    async def job():
        nonlocal running, peak
        running += 1
        peak = max(peak, running)
        await asyncio.sleep(0.01)
        running -= 1

    for _ in range(6):
        queue.enqueue(job)
    await queue.drain()

    assert peak == 2


@pytest.mark.asyncio
async def test_drain_timeout_cancels_slow_jobs(task_queue) -> None:
    async def slow():
        await asyncio.sleep(10)

    task = task_queue.enqueue(slow)
    await task_queue.drain(timeout=0.01)

    assert task.cancelled()


@pytest.mark.asyncio
async def test_closed_queue_rejects_jobs(task_queue) -> None:
    await task_queue.close()

    async def job():
        return None

    with pytest.raises(RuntimeError):
        task_queue.enqueue(job)
