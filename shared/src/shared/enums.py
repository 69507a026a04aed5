from enum import StrEnum


class RecipientType(StrEnum):
    TOKEN = "token"
    TOPIC = "topic"


class DeliveryOutcome(StrEnum):
    """Terminal state reached by a single notification task."""

    DELIVERED = "delivered"
    INVALIDATED = "invalidated"
    FAILED = "failed"
    EXHAUSTED = "exhausted"


class InvalidationBackend(StrEnum):
    LOG = "log"
    KAFKA = "kafka"
