"""
Kafka producer service for period events.
"""

import json
from typing import Optional

from kafka import KafkaProducer
from kafka.errors import KafkaError
from loguru import logger

from core.config import config
from core.events.period_events import PeriodEvent


class PeriodKafkaProducer:
    """Kafka producer for period events."""

    def __init__(
        self, bootstrap_servers: Optional[str] = None, topic: Optional[str] = None
    ):
        self.bootstrap_servers = bootstrap_servers or config.messaging.bootstrap_servers
        self.topic = topic or config.messaging.topic
        self._producer: Optional[KafkaProducer] = None

    def _get_producer(self) -> KafkaProducer:
        """Get or create Kafka producer instance."""
        if self._producer is None:
            try:
                self._producer = KafkaProducer(
                    bootstrap_servers=self.bootstrap_servers,
                    value_serializer=lambda v: json.dumps(v).encode("utf-8"),
                    key_serializer=lambda k: k.encode("utf-8") if k else None,
                    retries=3,
                    retry_backoff_ms=100,
                )
                logger.info(f"Kafka producer connected to {self.bootstrap_servers}")
            except Exception as e:
                logger.error(f"Failed to create Kafka producer: {e}")
                raise
        return self._producer

    def publish(self, event: PeriodEvent) -> bool:
        """Publish a period event to Kafka."""
        try:
            producer = self._get_producer()

            # Use period_id as message key so one period's events stay ordered
            future = producer.send(self.topic, key=event.period_id, value=event.to_dict())

            # Wait for acknowledgment
            record_metadata = future.get(timeout=10)

            logger.info(
                f"{event.event_type} published: period_id={event.period_id}, "
                f"topic={record_metadata.topic}, partition={record_metadata.partition}, "
                f"offset={record_metadata.offset}"
            )
            return True

        except KafkaError as e:
            logger.error(f"Kafka error publishing {event.event_type}: {e}")
            return False
        except Exception as e:
            logger.error(f"Error publishing {event.event_type}: {e}")
            return False

    def __call__(self, event: PeriodEvent) -> None:
        """Event bus subscriber entry point."""
        self.publish(event)

    def close(self):
        """Close the Kafka producer."""
        if self._producer:
            try:
                self._producer.close()
                logger.info("Kafka producer closed")
            except Exception as e:
                logger.error(f"Error closing Kafka producer: {e}")
            finally:
                self._producer = None


# Global producer instance
_kafka_producer: Optional[PeriodKafkaProducer] = None


def get_kafka_producer() -> PeriodKafkaProducer:
    """Get the global Kafka producer instance."""
    global _kafka_producer
    if _kafka_producer is None:
        _kafka_producer = PeriodKafkaProducer()
    return _kafka_producer


def publish_period_event(event: PeriodEvent) -> bool:
    """Convenience function to publish a period event."""
    try:
        producer = get_kafka_producer()
        return producer.publish(event)
    except Exception as e:
        logger.error(f"Failed to publish period event: {e}")
        return False
