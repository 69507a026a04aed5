"""Recipients, tasks and the FCM v1 message model."""

from dataclasses import dataclass
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, model_validator

from shared.enums import RecipientType


@dataclass(frozen=True, slots=True)
class Token:
    """A single device registration token."""

    value: str

    @property
    def kind(self) -> RecipientType:
        return RecipientType.TOKEN


@dataclass(frozen=True, slots=True)
class Topic:
    """A topic fan-out group."""

    value: str

    @property
    def kind(self) -> RecipientType:
        return RecipientType.TOPIC


Recipient = Token | Topic


class NotificationPayload(BaseModel):
    """FCM ``notification`` section, passed through to the provider as-is."""

    model_config = ConfigDict(frozen=True)

    title: str | None = None
    body: str | None = None
    image: str | None = None


@dataclass(frozen=True, slots=True)
class NotificationTask:
    """Unit of work held by the queue until a worker pops it."""

    recipient: Recipient
    payload: NotificationPayload


class AndroidMessagePriority(StrEnum):
    NORMAL = "NORMAL"
    HIGH = "HIGH"


class AndroidConfig(BaseModel):
    priority: AndroidMessagePriority | None = None


class Message(BaseModel):
    """FCM HTTP v1 message. At most one addressing field may be set."""

    notification: NotificationPayload | None = None
    android: AndroidConfig | None = None
    token: str | None = None
    topic: str | None = None

    @model_validator(mode="after")
    def _single_target(self) -> "Message":
        if self.token is not None and self.topic is not None:
            raise ValueError("Message may address either a token or a topic, not both")
        return self

    @property
    def recipient(self) -> Recipient | None:
        if self.token is not None:
            return Token(self.token)
        if self.topic is not None:
            return Topic(self.topic)
        return None

    def to_request_body(self, validate_only: bool = False) -> dict[str, Any]:
        """Return the JSON body for ``projects.messages.send``."""
        body: dict[str, Any] = {
            "message": self.model_dump(mode="json", exclude_none=True),
        }
        if validate_only:
            body["validate_only"] = True
        return body
