"""OAuth2 service account flow for the FCM HTTP v1 API."""

import asyncio
import json
import logging
import time
from collections.abc import Callable
from pathlib import Path

import httpx
import jwt
from pydantic import BaseModel, ValidationError

from push_dispatcher.errors import CredentialsError, DeliveryError

logger = logging.getLogger(__name__)

FCM_SCOPE = "https://www.googleapis.com/auth/firebase.messaging"

_JWT_BEARER_GRANT = "urn:ietf:params:oauth:grant-type:jwt-bearer"
_ASSERTION_LIFETIME_SECONDS = 3600
# Refresh this long before the provider-reported expiry.
_REFRESH_MARGIN_SECONDS = 60


class ServiceAccountCredentials(BaseModel):
    """The subset of a Google service account key file we rely on."""

    type: str = "service_account"
    project_id: str
    private_key_id: str | None = None
    private_key: str
    client_email: str
    token_uri: str = "https://oauth2.googleapis.com/token"


def load_service_account(path: Path) -> ServiceAccountCredentials:
    """Read and validate a service account key file.

    Raises CredentialsError if the file is missing, unreadable or does not
    look like a service account key.
    """
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise CredentialsError(f"Cannot read credentials file {path}: {exc}") from exc

    try:
        credentials = ServiceAccountCredentials.model_validate(raw)
    except ValidationError as exc:
        raise CredentialsError(f"Invalid credentials file {path}: {exc}") from exc

    if credentials.type != "service_account":
        raise CredentialsError(
            f"Unsupported credentials type {credentials.type!r} in {path}"
        )
    return credentials


class ServiceAccountAuthenticator:
    """Exchanges a signed JWT assertion for a short-lived access token.

    The token is cached and refreshed shortly before it expires. Concurrent
    callers share a single in-flight refresh.
    """

    def __init__(
        self,
        credentials: ServiceAccountCredentials,
        http_client: httpx.AsyncClient,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._credentials = credentials
        self._http = http_client
        self._clock = clock
        self._lock = asyncio.Lock()
        self._token: str | None = None
        self._expires_at = 0.0

    @property
    def credentials(self) -> ServiceAccountCredentials:
        return self._credentials

    def _is_fresh(self) -> bool:
        return (
            self._token is not None
            and self._clock() < self._expires_at - _REFRESH_MARGIN_SECONDS
        )

    async def access_token(self) -> str:
        if self._is_fresh():
            return self._token  # type: ignore[return-value]

        async with self._lock:
            if not self._is_fresh():
                await self._refresh()
            return self._token  # type: ignore[return-value]

    def _build_assertion(self, issued_at: int) -> str:
        claims = {
            "iss": self._credentials.client_email,
            "scope": FCM_SCOPE,
            "aud": self._credentials.token_uri,
            "iat": issued_at,
            "exp": issued_at + _ASSERTION_LIFETIME_SECONDS,
        }
        headers = {}
        if self._credentials.private_key_id:
            headers["kid"] = self._credentials.private_key_id
        try:
            return jwt.encode(
                claims,
                self._credentials.private_key,
                algorithm="RS256",
                headers=headers,
            )
        except (jwt.PyJWTError, ValueError, TypeError) as exc:
            raise CredentialsError(f"Cannot sign token assertion: {exc}") from exc

    async def _refresh(self) -> None:
        issued_at = int(self._clock())
        assertion = self._build_assertion(issued_at)

        try:
            response = await self._http.post(
                self._credentials.token_uri,
                data={"grant_type": _JWT_BEARER_GRANT, "assertion": assertion},
            )
        except httpx.HTTPError as exc:
            raise DeliveryError(f"Token exchange failed: {exc}") from exc

        if response.status_code != 200:
            raise CredentialsError(
                f"Token exchange rejected with {response.status_code}: {response.text}"
            )

        try:
            payload = response.json()
            token = payload["access_token"]
            expires_in = int(payload.get("expires_in", _ASSERTION_LIFETIME_SECONDS))
        except (ValueError, KeyError, TypeError, AttributeError) as exc:
            raise CredentialsError(
                f"Token exchange returned an unusable response: {response.text}"
            ) from exc

        self._token = token
        self._expires_at = issued_at + expires_in
        logger.info(
            "Obtained FCM access token",
            extra={
                "client_email": self._credentials.client_email,
                "expires_in": self._expires_at - issued_at,
            },
        )
