"""Translate queued tasks into FCM messages."""

from push_dispatcher.models import (
    AndroidConfig,
    AndroidMessagePriority,
    Message,
    NotificationTask,
    Token,
    Topic,
)


def build_message(task: NotificationTask) -> Message:
    """Build the provider message for *task*.

    Android priority is always HIGH so the notification wakes a device
    sitting in Doze. Exactly one of ``token`` / ``topic`` is populated.
    """
    message = Message(
        notification=task.payload,
        android=AndroidConfig(priority=AndroidMessagePriority.HIGH),
    )

    match task.recipient:
        case Token(value=token):
            message.token = token
        case Topic(value=topic):
            message.topic = topic

    return message
