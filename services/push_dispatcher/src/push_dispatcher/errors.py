"""Exception hierarchy for the push dispatcher."""


class PushDispatchError(Exception):
    """Base class for all dispatcher errors."""


class CredentialsError(PushDispatchError):
    """Service account credentials are missing, unreadable or rejected.

    Fatal: no delivery is possible without an authenticated client.
    """


class DeliveryError(PushDispatchError):
    """A single send attempt failed for a reason we cannot classify."""


class ProviderError(DeliveryError):
    """The provider answered with a non-success HTTP status."""

    def __init__(self, status_code: int, body: str) -> None:
        super().__init__(f"Provider returned {status_code}: {body}")
        self.status_code = status_code
        self.body = body


class DeliveryTimeout(DeliveryError):
    """The send call did not complete within the configured timeout."""
