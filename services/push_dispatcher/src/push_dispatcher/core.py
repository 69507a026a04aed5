"""Dispatch context wiring the queue, client, executor and workers together."""

import asyncio
import functools
import logging
from collections.abc import Awaitable, Callable

from shared.config import KafkaConfig

from push_dispatcher.config import DispatchConfig, FcmConfig, InvalidationConfig
from push_dispatcher.executor import RetryExecutor
from push_dispatcher.invalidation import (
    InvalidationSink,
    LoggingInvalidationSink,
    create_invalidation_sink,
)
from push_dispatcher.log import setup_logging
from push_dispatcher.models import NotificationPayload, NotificationTask, Recipient
from push_dispatcher.providers import DeliveryClientProvider
from push_dispatcher.providers.fcm import connect_fcm_client
from push_dispatcher.task_queue import TaskQueue, UnboundedTaskQueue
from push_dispatcher.workers import WorkerPool

logger = logging.getLogger(__name__)


class DispatchCore:
    """Owns the process-wide dispatch state.

    Producers call :meth:`push_to` from anywhere on the event loop's
    thread; it never blocks and never reports the delivery outcome.

    Without an explicit ``invalidation_sink`` stale recipients are only
    logged. Production hosts must supply a sink that acts on them, such as
    :class:`~push_dispatcher.invalidation.KafkaInvalidationSink`.
    """

    def __init__(
        self,
        clients: DeliveryClientProvider,
        invalidation_sink: InvalidationSink | None = None,
        queue: TaskQueue | None = None,
        config: DispatchConfig | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._config = config or DispatchConfig()
        self.queue = queue or UnboundedTaskQueue()
        self.clients = clients
        self.invalidation_sink = invalidation_sink or LoggingInvalidationSink()
        self.executor = RetryExecutor(
            clients,
            self.invalidation_sink,
            max_attempts=self._config.max_attempts,
            backoff_step=self._config.backoff_step_seconds,
            sleep=sleep,
        )
        self.pool = WorkerPool(self.queue, self.executor)

    def push_to(self, recipient: Recipient, notification: NotificationPayload) -> None:
        """Enqueue a notification for background delivery."""
        self.queue.push(NotificationTask(recipient=recipient, payload=notification))
        logger.debug(
            "Notification queued",
            extra={"recipient_type": recipient.kind, "queued": self.queue.qsize()},
        )

    def start_workers(self, n: int | None = None) -> None:
        """Spawn the worker pool; defaults to ``PUSH_WORKERS``."""
        self.pool.start(n if n is not None else self._config.workers)

    async def wait(self) -> None:
        await self.pool.wait()

    async def aclose(self) -> None:
        await self.pool.stop()
        await self.clients.aclose()
        self.invalidation_sink.close()


def create_dispatch_core(
    config: DispatchConfig | None = None,
    fcm_config: FcmConfig | None = None,
    invalidation_config: InvalidationConfig | None = None,
    kafka_config: KafkaConfig | None = None,
) -> DispatchCore:
    """Build a core that talks to FCM using settings from the environment.

    Configures logging from ``PUSH_LOG_LEVEL``. Nothing touches the
    network or the credentials file until the first worker attempts a
    delivery.
    """
    config = config or DispatchConfig()
    setup_logging(config.log_level)

    fcm_config = fcm_config or FcmConfig()
    clients = DeliveryClientProvider(functools.partial(connect_fcm_client, fcm_config))
    return DispatchCore(
        clients,
        invalidation_sink=create_invalidation_sink(invalidation_config, kafka_config),
        config=config,
    )
