"""In-process deferred task queue.

Mutation handlers enqueue work here and return immediately. Jobs run as
asyncio tasks with bounded concurrency; drain() waits for everything still
pending, which the API lifespan calls on shutdown.

Jobs survive only as long as the process. A crash between enqueue and
completion loses the job; the full reindex repairs that.
"""

import asyncio
from typing import Awaitable, Callable

from shared.helper.HelperConfig import HelperConfig

Job = Callable[[], Awaitable[object]]


class DeferredTaskQueue:
    def __init__(self, helper_config: HelperConfig):
        self.logging = helper_config.get_logger()
        self._concurrency = int(helper_config.get_number_val("TASK_QUEUE_CONCURRENCY", default=4))
        self._semaphore = asyncio.Semaphore(self._concurrency)
        self._tasks: set[asyncio.Task] = set()
        self._closed = False

    def pending_count(self) -> int:
        return len(self._tasks)

    def enqueue(self, job: Job, delay: float = 0.0, name: str | None = None) -> asyncio.Task:
        """Schedule a job and return without waiting for it.

        Args:
            job (Job): Zero-argument coroutine function.
            delay (float): Seconds to wait before the job starts.
            name (str | None): Label used in log messages.

        Returns:
            asyncio.Task: The scheduled task.

        Raises:
            RuntimeError: If the queue was closed.
        """
        if self._closed:
            raise RuntimeError("DeferredTaskQueue is closed and accepts no new jobs.")
        task = asyncio.create_task(self._run(job, delay, name or getattr(job, "__name__", "job")))
        # keep a strong reference until the task is done
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _run(self, job: Job, delay: float, name: str) -> object:
        if delay > 0:
            await asyncio.sleep(delay)
        async with self._semaphore:
            try:
                return await job()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                # nobody awaits a deferred job, so its failure ends here
                self.logging.error("Deferred job '%s' failed: %s", name, e, exc_info=True)
                return None

    async def drain(self, timeout: float | None = None) -> None:
        """Wait until every pending job finished. Jobs left after timeout are cancelled."""
        if not self._tasks:
            return
        pending = list(self._tasks)
        self.logging.info("Draining %d deferred job(s)...", len(pending))
        done, not_done = await asyncio.wait(pending, timeout=timeout)
        for task in not_done:
            task.cancel()
        if not_done:
            self.logging.warning("Cancelled %d deferred job(s) that did not finish in time.", len(not_done))
            await asyncio.gather(*not_done, return_exceptions=True)

    async def close(self, timeout: float | None = None) -> None:
        self._closed = True
        await self.drain(timeout=timeout)
