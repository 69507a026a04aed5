"""Fixed-size pool of asyncio workers draining the task queue."""

import asyncio
import logging

from push_dispatcher.builder import build_message
from push_dispatcher.executor import RetryExecutor
from push_dispatcher.task_queue import TaskQueue

logger = logging.getLogger(__name__)


class WorkerPool:
    """Spawns symmetric workers that pop, build and deliver forever."""

    def __init__(self, queue: TaskQueue, executor: RetryExecutor) -> None:
        self._queue = queue
        self._executor = executor
        self._workers: list[asyncio.Task[None]] = []

    @property
    def size(self) -> int:
        return len(self._workers)

    def start(self, n: int) -> None:
        """Spawn *n* workers on the running event loop and return immediately."""
        if n < 1:
            raise ValueError(f"Worker count must be at least 1, got {n}")
        if self._workers:
            raise RuntimeError("Worker pool already started")

        for index in range(n):
            worker = asyncio.create_task(self._run(index), name=f"push-worker-{index}")
            worker.add_done_callback(self._on_worker_done)
            self._workers.append(worker)
            logger.info("Spawned push notification worker", extra={"worker": index})

    async def _run(self, index: int) -> None:
        while True:
            task = await self._queue.pop()
            message = build_message(task)
            outcome = await self._executor.execute(message)
            logger.debug(
                "Task finished",
                extra={"worker": index, "outcome": outcome},
            )

    @staticmethod
    def _on_worker_done(worker: asyncio.Task[None]) -> None:
        if worker.cancelled():
            return
        exc = worker.exception()
        if exc is not None:
            logger.critical(
                "Worker stopped on fatal error",
                exc_info=exc,
                extra={"worker": worker.get_name()},
            )

    async def wait(self) -> None:
        """Block until the workers exit; re-raises the first fatal error."""
        await asyncio.gather(*self._workers)

    async def stop(self) -> None:
        """Cancel every worker and wait for them to unwind."""
        for worker in self._workers:
            worker.cancel()
        await asyncio.gather(*self._workers, return_exceptions=True)
        self._workers.clear()
        logger.info("Worker pool stopped")
