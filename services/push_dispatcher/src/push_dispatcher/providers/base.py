"""Abstract delivery client interface."""

from abc import ABC, abstractmethod

from push_dispatcher.models import Message


class DeliveryClient(ABC):
    """Authenticated connection to a push provider."""

    @abstractmethod
    async def send(self, message: Message) -> str:
        """Deliver *message* and return the provider's message id.

        Raises ProviderError for a non-success status, DeliveryTimeout
        when the call times out, and DeliveryError for anything else.
        """

    async def aclose(self) -> None:
        """Release network resources held by the client."""
