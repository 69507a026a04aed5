"""Tests for the worker pool."""

import asyncio
import logging
from unittest.mock import AsyncMock, MagicMock

import pytest

from shared.enums import DeliveryOutcome

from push_dispatcher.errors import CredentialsError
from push_dispatcher.executor import RetryExecutor
from push_dispatcher.models import Message, NotificationPayload, NotificationTask, Token, Topic
from push_dispatcher.task_queue import UnboundedTaskQueue
from push_dispatcher.workers import WorkerPool


class RecordingExecutor:
    """Executor double that records messages and signals after *expected*."""

    def __init__(self, expected: int) -> None:
        self.messages: list[Message] = []
        self.expected = expected
        self.done = asyncio.Event()

    async def execute(self, message: Message) -> DeliveryOutcome:
        self.messages.append(message)
        await asyncio.sleep(0)
        if len(self.messages) >= self.expected:
            self.done.set()
        return DeliveryOutcome.DELIVERED


def _task(recipient) -> NotificationTask:
    return NotificationTask(recipient, NotificationPayload(title="t"))


class TestWorkerPool:
    async def test_drains_queue(self) -> None:
        queue = UnboundedTaskQueue()
        executor = RecordingExecutor(expected=3)
        pool = WorkerPool(queue, executor)  # type: ignore[arg-type]
        for recipient in (Token("a"), Topic("b"), Token("c")):
            queue.push(_task(recipient))

        pool.start(2)
        await asyncio.wait_for(executor.done.wait(), timeout=1)
        await pool.stop()

        assert sorted((m.token or m.topic) for m in executor.messages) == ["a", "b", "c"]
        assert queue.qsize() == 0

    async def test_single_worker_preserves_push_order(self) -> None:
        queue = UnboundedTaskQueue()
        executor = RecordingExecutor(expected=5)
        pool = WorkerPool(queue, executor)  # type: ignore[arg-type]
        for i in range(5):
            queue.push(_task(Token(str(i))))

        pool.start(1)
        await asyncio.wait_for(executor.done.wait(), timeout=1)
        await pool.stop()

        assert [m.token for m in executor.messages] == ["0", "1", "2", "3", "4"]

    async def test_spawns_exactly_n_workers(self) -> None:
        pool = WorkerPool(UnboundedTaskQueue(), RecordingExecutor(expected=1))  # type: ignore[arg-type]

        pool.start(3)

        assert pool.size == 3
        await pool.stop()
        assert pool.size == 0

    async def test_rejects_non_positive_count(self) -> None:
        pool = WorkerPool(UnboundedTaskQueue(), MagicMock(spec=RetryExecutor))

        with pytest.raises(ValueError):
            pool.start(0)

    async def test_cannot_start_twice(self) -> None:
        pool = WorkerPool(UnboundedTaskQueue(), MagicMock(spec=RetryExecutor))
        pool.start(1)

        with pytest.raises(RuntimeError, match="already started"):
            pool.start(1)
        await pool.stop()

    async def test_fatal_error_surfaces_from_wait(
        self, caplog: pytest.LogCaptureFixture
    ) -> None:
        queue = UnboundedTaskQueue()
        executor = MagicMock(spec=RetryExecutor)
        executor.execute = AsyncMock(side_effect=CredentialsError("no credentials"))
        pool = WorkerPool(queue, executor)
        queue.push(_task(Token("a")))

        with caplog.at_level(logging.CRITICAL, logger="push_dispatcher.workers"):
            pool.start(1)
            with pytest.raises(CredentialsError):
                await asyncio.wait_for(pool.wait(), timeout=1)
            await asyncio.sleep(0)

        assert "Worker stopped on fatal error" in caplog.text
