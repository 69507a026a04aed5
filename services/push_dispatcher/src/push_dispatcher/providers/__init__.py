"""Delivery clients and the shared, lazily-built client provider."""

import asyncio
import logging
from collections.abc import Awaitable, Callable

from push_dispatcher.errors import CredentialsError
from push_dispatcher.providers.base import DeliveryClient

logger = logging.getLogger(__name__)

ClientFactory = Callable[[], Awaitable[DeliveryClient]]


class DeliveryClientProvider:
    """Builds the delivery client on first use and shares it afterwards.

    Concurrent first callers wait on one construction. A credentials
    failure is fatal: the error is kept and re-raised to every later
    caller instead of attempting another handshake.
    """

    def __init__(self, factory: ClientFactory) -> None:
        self._factory = factory
        self._lock = asyncio.Lock()
        self._client: DeliveryClient | None = None
        self._error: CredentialsError | None = None

    @property
    def initialized(self) -> bool:
        return self._client is not None

    async def get(self) -> DeliveryClient:
        if self._client is not None:
            return self._client

        async with self._lock:
            if self._client is None and self._error is None:
                try:
                    self._client = await self._factory()
                except CredentialsError as exc:
                    self._error = exc
                else:
                    logger.info("Delivery client initialized")

        if self._error is not None:
            raise self._error
        return self._client  # type: ignore[return-value]

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None


__all__ = ["ClientFactory", "DeliveryClient", "DeliveryClientProvider"]
