"""
Messaging module for Kafka integration.
"""

from core.messaging.kafka_producer import (
    PeriodKafkaProducer,
    get_kafka_producer,
    publish_period_event,
)

__all__ = [
    "PeriodKafkaProducer",
    "get_kafka_producer",
    "publish_period_event",
]
