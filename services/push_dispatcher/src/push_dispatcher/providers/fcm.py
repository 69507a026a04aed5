"""Firebase Cloud Messaging HTTP v1 client."""

import logging

import httpx

from push_dispatcher.auth import ServiceAccountAuthenticator, load_service_account
from push_dispatcher.config import FcmConfig
from push_dispatcher.errors import (
    CredentialsError,
    DeliveryError,
    DeliveryTimeout,
    ProviderError,
)
from push_dispatcher.models import Message
from push_dispatcher.providers.base import DeliveryClient

logger = logging.getLogger(__name__)


class FcmClient(DeliveryClient):
    """Sends messages through ``projects.messages.send``."""

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        authenticator: ServiceAccountAuthenticator,
        project_id: str,
        validate_only: bool = False,
    ) -> None:
        self._http = http_client
        self._auth = authenticator
        self._project_id = project_id
        self._validate_only = validate_only

    @property
    def send_path(self) -> str:
        return f"/v1/projects/{self._project_id}/messages:send"

    async def send(self, message: Message) -> str:
        token = await self._auth.access_token()
        try:
            response = await self._http.post(
                self.send_path,
                json=message.to_request_body(self._validate_only),
                headers={"Authorization": f"Bearer {token}"},
            )
        except httpx.TimeoutException as exc:
            raise DeliveryTimeout(f"FCM request timed out: {exc}") from exc
        except httpx.HTTPError as exc:
            raise DeliveryError(f"FCM request failed: {exc}") from exc

        if not response.is_success:
            raise ProviderError(response.status_code, response.text)

        # The message was accepted; a body we cannot parse only loses its id.
        try:
            return str(response.json().get("name", ""))
        except (ValueError, AttributeError):
            return ""

    async def aclose(self) -> None:
        await self._http.aclose()


async def connect_fcm_client(
    config: FcmConfig,
    transport: httpx.AsyncBaseTransport | None = None,
) -> FcmClient:
    """Load credentials, authenticate and return a ready client.

    Raises CredentialsError when the credentials cannot be loaded or the
    initial token exchange fails.
    """
    if config.credentials_file is None:
        raise CredentialsError("GOOGLE_APPLICATION_CREDENTIALS is not set")

    credentials = load_service_account(config.credentials_file)
    http_client = httpx.AsyncClient(
        base_url=config.base_url,
        timeout=config.timeout_seconds,
        transport=transport,
    )
    authenticator = ServiceAccountAuthenticator(credentials, http_client)

    try:
        await authenticator.access_token()
    except CredentialsError:
        await http_client.aclose()
        raise
    except DeliveryError as exc:
        await http_client.aclose()
        raise CredentialsError(f"Failed to authenticate: {exc}") from exc
    except BaseException:
        await http_client.aclose()
        raise

    project_id = config.project_id or credentials.project_id
    logger.info(
        "FCM client ready",
        extra={"project_id": project_id, "validate_only": config.validate_only},
    )
    return FcmClient(http_client, authenticator, project_id, config.validate_only)
