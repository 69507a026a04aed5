"""In-memory task queue feeding the worker pool."""

import asyncio
from abc import ABC, abstractmethod

from push_dispatcher.models import NotificationTask


class TaskQueue(ABC):
    """Multi-producer / multi-consumer FIFO of notification tasks."""

    @abstractmethod
    def push(self, task: NotificationTask) -> None:
        """Enqueue *task* at the tail. Must never block."""

    @abstractmethod
    async def pop(self) -> NotificationTask:
        """Remove and return the head task, suspending while empty."""

    @abstractmethod
    def qsize(self) -> int:
        """Number of tasks currently waiting."""


class UnboundedTaskQueue(TaskQueue):
    """Unbounded queue backed by :class:`asyncio.Queue`.

    Producers are never refused and never wait; memory is the only limit.
    Waiting consumers are woken in arrival order, but there is no ordering
    guarantee between tasks handed to different workers.
    """

    def __init__(self) -> None:
        self._queue: asyncio.Queue[NotificationTask] = asyncio.Queue()

    def push(self, task: NotificationTask) -> None:
        self._queue.put_nowait(task)

    async def pop(self) -> NotificationTask:
        return await self._queue.get()

    def qsize(self) -> int:
        return self._queue.qsize()
