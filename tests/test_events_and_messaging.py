"""
Tests for the period event bus and the Kafka producer.
"""

from datetime import date
from decimal import Decimal
from unittest.mock import Mock, patch

from kafka.errors import KafkaError

from core.events import PeriodClosed, PeriodEventBus, PeriodRecalculated
from core.messaging import PeriodKafkaProducer


def _recalculated(**overrides):
    fields = dict(
        period_id="period-1",
        tenant_id="tenant-1",
        legal_entity_id="le-1",
        start_date=date(2025, 1, 1),
        end_date=date(2025, 1, 31),
        exchange_id="ex-1",
        output_vat=Decimal("2000.00"),
        vat_liability=Decimal("2000.00"),
    )
    fields.update(overrides)
    return PeriodRecalculated(**fields)


class TestPeriodEvent:
    def test_to_dict(self):
        data = _recalculated().to_dict()
        assert data["event_type"] == "PeriodRecalculated"
        assert data["start_date"] == "2025-01-01"
        assert data["vat_liability"] == "2000.00"
        assert data["credit_carried_forward"] == "0"
        assert isinstance(data["timestamp"], str)


class TestPeriodEventBus:
    def test_typed_and_catch_all_subscribers(self):
        bus = PeriodEventBus()
        typed, everything = Mock(), Mock()
        bus.subscribe(typed, PeriodRecalculated)
        bus.subscribe(everything)

        event = _recalculated()
        assert bus.publish(event) == 2
        typed.assert_called_once_with(event)

        closed = PeriodClosed(
            period_id="period-1",
            tenant_id="tenant-1",
            legal_entity_id="le-1",
            start_date=date(2025, 1, 1),
            end_date=date(2025, 1, 31),
        )
        assert bus.publish(closed) == 1
        assert typed.call_count == 1
        assert everything.call_count == 2

    def test_failing_subscriber_is_isolated(self):
        bus = PeriodEventBus()
        healthy = Mock()
        bus.subscribe(Mock(side_effect=RuntimeError("cache down")))
        bus.subscribe(healthy)

        assert bus.publish(_recalculated()) == 1
        healthy.assert_called_once()

    def test_unsubscribe(self):
        bus = PeriodEventBus()
        handler = Mock()
        bus.subscribe(handler)
        bus.unsubscribe(handler)
        assert bus.publish(_recalculated()) == 0
        handler.assert_not_called()


class TestPeriodKafkaProducer:
    @patch("core.messaging.kafka_producer.KafkaProducer")
    def test_publish_keys_by_period(self, mock_producer_cls):
        producer = mock_producer_cls.return_value
        producer.send.return_value.get.return_value = Mock(
            topic="pdv-period-events", partition=0, offset=7
        )

        kafka = PeriodKafkaProducer(bootstrap_servers="kafka:9092", topic="pdv-period-events")
        assert kafka.publish(_recalculated()) is True

        args, kwargs = producer.send.call_args
        assert args == ("pdv-period-events",)
        assert kwargs["key"] == "period-1"
        assert kwargs["value"]["event_type"] == "PeriodRecalculated"
        assert mock_producer_cls.call_args.kwargs["bootstrap_servers"] == "kafka:9092"

    @patch("core.messaging.kafka_producer.KafkaProducer")
    def test_kafka_error_is_reported_not_raised(self, mock_producer_cls):
        mock_producer_cls.return_value.send.side_effect = KafkaError("broker gone")
        kafka = PeriodKafkaProducer(bootstrap_servers="kafka:9092", topic="t")
        assert kafka.publish(_recalculated()) is False

    @patch("core.messaging.kafka_producer.KafkaProducer")
    def test_subscribes_to_bus(self, mock_producer_cls):
        bus = PeriodEventBus()
        kafka = PeriodKafkaProducer(bootstrap_servers="kafka:9092", topic="t")
        bus.subscribe(kafka)

        bus.publish(_recalculated())

        mock_producer_cls.return_value.send.assert_called_once()

    @patch("core.messaging.kafka_producer.KafkaProducer")
    def test_close(self, mock_producer_cls):
        kafka = PeriodKafkaProducer(bootstrap_servers="kafka:9092", topic="t")
        kafka.publish(_recalculated())
        kafka.close()
        mock_producer_cls.return_value.close.assert_called_once()
