"""Kafka sink for publishing bill events."""

import json
import logging
import time
from dataclasses import dataclass
from typing import Any

from confluent_kafka import KafkaException, Producer

from plaza_billing.config import KafkaConfig
from plaza_billing.exceptions import SinkError
from plaza_billing.sinks.serialization import to_dict

logger = logging.getLogger(__name__)


@dataclass
class ProducerStats:
    """Track producer delivery statistics."""

    sent: int = 0
    delivered: int = 0
    failed: int = 0
    start_time: float | None = None
    end_time: float | None = None

    @property
    def success_rate(self) -> float:
        """Calculate success rate."""
        total = self.delivered + self.failed
        return self.delivered / total if total > 0 else 0.0


class KafkaSink:
    """Publish records to a Kafka topic as JSON.

    Records are keyed by business id when one is present, so every event for
    a tenant lands on the same partition in order.
    """

    KEY_FIELDS = ("business_id", "subject")

    def __init__(self, config: KafkaConfig | str, producer: Producer | None = None) -> None:
        """Initialize Kafka sink.

        Parameters
        ----------
        config : KafkaConfig | str
            Producer configuration or bootstrap servers string.
        producer : Producer | None
            Pre-built producer (mainly for tests).
        """
        if isinstance(config, str):
            config = KafkaConfig(bootstrap_servers=config)

        self.config = config
        self.producer = producer or Producer(config.to_dict())
        self.stats = ProducerStats()

    def _delivery_callback(self, err: Any, msg: Any) -> None:
        """Handle delivery reports."""
        if err:
            self.stats.failed += 1
            logger.error("Delivery failed: %s", err)
        else:
            self.stats.delivered += 1
            logger.debug("Delivered to %s[%d]@%d", msg.topic(), msg.partition(), msg.offset())

    def _get_key(self, data: dict[str, Any]) -> str | None:
        """Extract message key from a serialized record."""
        metadata = data.get("metadata") or {}
        for key_field in self.KEY_FIELDS:
            value = metadata.get(key_field) or data.get(key_field)
            if value:
                return str(value)
        return None

    def write_batch(self, entity_type: str, records: list[Any]) -> None:
        """Produce a batch of records and wait for delivery."""
        if self.stats.start_time is None:
            self.stats.start_time = time.time()

        topic = self.config.topic
        try:
            for record in records:
                data = to_dict(record)
                key = self._get_key(data)
                self.producer.produce(
                    topic,
                    key=key.encode("utf-8") if key else None,
                    value=json.dumps(data, ensure_ascii=False).encode("utf-8"),
                    headers={"entity_type": entity_type},
                    on_delivery=self._delivery_callback,
                )
                self.stats.sent += 1
                self.producer.poll(0)
            self.producer.flush()
        except (KafkaException, BufferError) as exc:
            raise SinkError(f"Failed to publish {entity_type} to {topic}: {exc}") from exc

        self.stats.end_time = time.time()
        logger.info("Published %d %s records to %s", len(records), entity_type, topic)

    def close(self) -> None:
        """Flush pending messages and log delivery stats."""
        remaining = self.producer.flush(10)
        if remaining:
            logger.warning("%d messages still undelivered at close", remaining)
        logger.info(
            "Kafka sink closed: sent=%d delivered=%d failed=%d",
            self.stats.sent,
            self.stats.delivered,
            self.stats.failed,
        )
