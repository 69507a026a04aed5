"""Test fixtures for push_dispatcher tests."""

import json
from collections.abc import Iterable
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from push_dispatcher.executor import RetryExecutor
from push_dispatcher.invalidation import InvalidationSink
from push_dispatcher.models import Message
from push_dispatcher.providers import DeliveryClientProvider
from push_dispatcher.providers.base import DeliveryClient


class FakeDeliveryClient(DeliveryClient):
    """Records every message and replays scripted failures.

    Each entry in ``outcomes`` is consumed by one send: an exception is
    raised, anything else counts as success. Once exhausted every send
    succeeds.
    """

    def __init__(self, outcomes: Iterable[BaseException | None] = ()) -> None:
        self.outcomes = list(outcomes)
        self.sent: list[Message] = []
        self.closed = False

    async def send(self, message: Message) -> str:
        self.sent.append(message)
        if self.outcomes:
            outcome = self.outcomes.pop(0)
            if outcome is not None:
                raise outcome
        return f"projects/test/messages/{len(self.sent)}"

    async def aclose(self) -> None:
        self.closed = True


@pytest.fixture()
def fake_client() -> FakeDeliveryClient:
    return FakeDeliveryClient()


@pytest.fixture()
def client_factory(fake_client: FakeDeliveryClient) -> AsyncMock:
    return AsyncMock(return_value=fake_client)


@pytest.fixture()
def client_provider(client_factory: AsyncMock) -> DeliveryClientProvider:
    return DeliveryClientProvider(client_factory)


@pytest.fixture()
def mock_sleep() -> AsyncMock:
    """Stand-in for asyncio.sleep that records the requested delays."""
    return AsyncMock(return_value=None)


@pytest.fixture()
def mock_invalidation_sink() -> MagicMock:
    return MagicMock(spec=InvalidationSink)


@pytest.fixture()
def executor(
    client_provider: DeliveryClientProvider,
    mock_invalidation_sink: MagicMock,
    mock_sleep: AsyncMock,
) -> RetryExecutor:
    return RetryExecutor(client_provider, mock_invalidation_sink, sleep=mock_sleep)


@pytest.fixture(scope="session")
def rsa_private_key() -> rsa.RSAPrivateKey:
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture()
def service_account_file(tmp_path: Path, rsa_private_key: rsa.RSAPrivateKey) -> Path:
    """Write a syntactically valid service account key to disk."""
    pem = rsa_private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode("ascii")
    path = tmp_path / "service-account.json"
    path.write_text(json.dumps({
        "type": "service_account",
        "project_id": "demo-project",
        "private_key_id": "key-1",
        "private_key": pem,
        "client_email": "pusher@demo-project.iam.gserviceaccount.com",
        "token_uri": "https://oauth2.test/token",
    }))
    return path


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep settings deterministic regardless of the developer's shell."""
    for name in (
        "GOOGLE_APPLICATION_CREDENTIALS",
        "FCM_CREDENTIALS_FILE",
        "FCM_PROJECT_ID",
        "PUSH_WORKERS",
        "PUSH_MAX_ATTEMPTS",
        "PUSH_BACKOFF_STEP_SECONDS",
        "INVALIDATION_BACKEND",
    ):
        monkeypatch.delenv(name, raising=False)
