"""Per-message delivery loop with bounded retries."""

import asyncio
import logging
from collections.abc import Awaitable, Callable

from shared.enums import DeliveryOutcome

from push_dispatcher.errors import DeliveryTimeout, ProviderError
from push_dispatcher.invalidation import InvalidationSink
from push_dispatcher.models import Message
from push_dispatcher.providers import DeliveryClientProvider

logger = logging.getLogger(__name__)

STALE_RECIPIENT_STATUSES = frozenset({400, 404})
TRANSIENT_STATUSES = frozenset({500, 503})

DEFAULT_MAX_ATTEMPTS = 6
DEFAULT_BACKOFF_STEP_SECONDS = 1.5


class RetryExecutor:
    """Drives one message to a terminal :class:`DeliveryOutcome`.

    Attempt 0 is sent immediately; attempt ``n`` waits ``n * backoff_step``
    seconds first (linear, not exponential). Timeouts and 500/503 are
    retried, 400/404 hand the recipient to the invalidation sink, any other
    failure ends the task. Per-task errors never escape ``execute``; only a
    fatal client initialization error does.
    """

    def __init__(
        self,
        clients: DeliveryClientProvider,
        invalidation_sink: InvalidationSink,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        backoff_step: float = DEFAULT_BACKOFF_STEP_SECONDS,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        if max_attempts < 1:
            raise ValueError(f"max_attempts must be at least 1, got {max_attempts}")
        self._clients = clients
        self._invalidation_sink = invalidation_sink
        self._max_attempts = max_attempts
        self._backoff_step = backoff_step
        self._sleep = sleep

    @property
    def max_attempts(self) -> int:
        return self._max_attempts

    def backoff_for(self, attempt: int) -> float:
        """Seconds to wait before *attempt* (0-based)."""
        return attempt * self._backoff_step

    async def execute(self, message: Message) -> DeliveryOutcome:
        recipient = message.recipient
        log_ctx: dict[str, object] = {
            "recipient_type": recipient.kind if recipient else None,
            "recipient": recipient.value if recipient else None,
        }

        for attempt in range(self._max_attempts):
            if attempt > 0:
                await self._sleep(self.backoff_for(attempt))
            log_ctx["attempt"] = attempt

            client = await self._clients.get()
            try:
                await client.send(message)
            except ProviderError as exc:
                if exc.status_code in STALE_RECIPIENT_STATUSES:
                    logger.warning(
                        "Recipient rejected as stale",
                        extra={**log_ctx, "status_code": exc.status_code},
                    )
                    if recipient is not None:
                        self._invalidation_sink.invalidate(recipient, exc.status_code)
                    return DeliveryOutcome.INVALIDATED
                if exc.status_code in TRANSIENT_STATUSES:
                    logger.warning(
                        "Provider unavailable, will retry",
                        extra={**log_ctx, "status_code": exc.status_code},
                    )
                    continue
                logger.error(
                    "Provider rejected notification",
                    extra={**log_ctx, "status_code": exc.status_code, "body": exc.body},
                )
                return DeliveryOutcome.FAILED
            except DeliveryTimeout:
                logger.warning("Delivery timed out, will retry", extra=log_ctx)
                continue
            except Exception:
                logger.exception("Error when pushing notification", extra=log_ctx)
                return DeliveryOutcome.FAILED

            logger.info("Notification delivered", extra=log_ctx)
            return DeliveryOutcome.DELIVERED

        logger.warning(
            "Delivery attempts exhausted, dropping notification",
            extra={**log_ctx, "max_attempts": self._max_attempts},
        )
        return DeliveryOutcome.EXHAUSTED
