"""Sinks for recipients the provider has rejected as stale."""

import json
import logging
from abc import ABC, abstractmethod

from confluent_kafka import KafkaError, KafkaException, Message, Producer

from shared.config import KafkaConfig
from shared.enums import InvalidationBackend

from push_dispatcher.config import InvalidationConfig
from push_dispatcher.models import Recipient

logger = logging.getLogger(__name__)


class InvalidationSink(ABC):
    """Receives recipients that must stop receiving notifications."""

    @abstractmethod
    def invalidate(self, recipient: Recipient, status_code: int) -> None:
        """Record *recipient* as invalid. Must not raise."""

    def close(self) -> None:
        """Flush anything still buffered."""


class LoggingInvalidationSink(InvalidationSink):
    """Only logs the stale recipient; useful when nothing consumes invalidations."""

    def invalidate(self, recipient: Recipient, status_code: int) -> None:
        logger.warning(
            "Recipient marked for invalidation",
            extra={
                "recipient_type": recipient.kind,
                "recipient": recipient.value,
                "status_code": status_code,
            },
        )


class KafkaInvalidationSink(InvalidationSink):
    """Publishes stale recipients to the token invalidation topic.

    Downstream owners of the device registry consume the topic and delete
    the tokens. Publishing is fire-and-forget, like the dispatch itself.
    """

    def __init__(self, config: KafkaConfig) -> None:
        self._topic = config.token_invalidation_topic
        self._producer = Producer({
            "bootstrap.servers": config.bootstrap_servers,
            "acks": "all",
            "enable.idempotence": True,
            "linger.ms": 5,
        })

    def invalidate(self, recipient: Recipient, status_code: int) -> None:
        value = json.dumps({
            "recipient_type": recipient.kind,
            "recipient": recipient.value,
            "status_code": status_code,
        }).encode("utf-8")

        try:
            self._producer.produce(
                topic=self._topic,
                key=recipient.value.encode("utf-8"),
                value=value,
                on_delivery=self._on_delivery,
            )
            self._producer.poll(0)
        except (BufferError, KafkaException):
            logger.exception(
                "Failed to publish invalidation",
                extra={"recipient_type": recipient.kind, "status_code": status_code},
            )

    def close(self) -> None:
        remaining = self._producer.flush(timeout=10.0)
        if remaining > 0:
            logger.warning(
                "Invalidation producer closed with unflushed messages",
                extra={"remaining": remaining},
            )

    @staticmethod
    def _on_delivery(err: KafkaError | None, msg: Message) -> None:
        if err is not None:
            logger.error("Kafka delivery failed: %s", err)


def create_invalidation_sink(
    config: InvalidationConfig | None = None,
    kafka_config: KafkaConfig | None = None,
) -> InvalidationSink:
    """Create the sink selected by ``INVALIDATION_BACKEND``."""
    config = config or InvalidationConfig()
    if config.backend == InvalidationBackend.KAFKA:
        return KafkaInvalidationSink(kafka_config or KafkaConfig())
    return LoggingInvalidationSink()
