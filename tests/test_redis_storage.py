"""
Tests for the Redis-backed period repository and snapshot store.
"""

from datetime import date, datetime, timezone
from decimal import Decimal
from unittest.mock import MagicMock, Mock

import pytest
import redis

from core.exceptions import (
    ConcurrentCalculationError,
    PeriodNotFoundError,
    StorageError,
    ValidationError,
)
from core.infrastructure import (
    RedisClient,
    RedisPeriodRepository,
    RedisSnapshotStore,
)
from core.models import (
    AggregatedLine,
    AggregationResult,
    Direction,
    PeriodSnapshot,
    PeriodStatus,
    PpPdvForm,
    TaxPeriod,
)
from core.services.popdv import PopdvFormBuilder


@pytest.fixture
def client():
    return MagicMock()


@pytest.fixture
def pipe(client):
    return client.pipeline.return_value.__enter__.return_value


@pytest.fixture
def redis_client(client):
    wrapper = Mock(spec=RedisClient)
    wrapper.get_client.return_value = client
    return wrapper


@pytest.fixture
def period():
    return TaxPeriod(
        id="period-1",
        tenant_id="tenant-1",
        legal_entity_id="le-1",
        start_date=date(2025, 1, 1),
        end_date=date(2025, 1, 31),
        version=3,
    )


class TestRedisPeriodRepository:
    def test_add_registers_period_with_tenant(self, redis_client, client, pipe, period):
        client.set.return_value = True
        RedisPeriodRepository(redis_client).add(period)

        key, payload = client.set.call_args.args
        assert key == "pdv:period:period-1"
        assert TaxPeriod.model_validate_json(payload) == period
        assert client.set.call_args.kwargs == {"nx": True}
        pipe.sadd.assert_called_once_with("pdv:tenant:tenant-1:periods", "period-1")

    def test_add_duplicate(self, redis_client, client, period):
        client.set.return_value = None
        with pytest.raises(ValidationError):
            RedisPeriodRepository(redis_client).add(period)

    def test_get_missing(self, redis_client, client):
        client.get.return_value = None
        with pytest.raises(PeriodNotFoundError):
            RedisPeriodRepository(redis_client).get("nope")

    def test_get_connection_failure(self, redis_client, client):
        client.get.side_effect = redis.ConnectionError("refused")
        with pytest.raises(StorageError) as exc_info:
            RedisPeriodRepository(redis_client).get("period-1")
        assert exc_info.value.code == "INFRA_1011"

    def test_list_filters_by_entity(self, redis_client, client, period):
        other = period.model_copy(update={"id": "period-2", "legal_entity_id": "le-2"})
        client.smembers.return_value = {"period-1", "period-2"}
        client.mget.return_value = [period.model_dump_json(), other.model_dump_json()]

        periods = RedisPeriodRepository(redis_client).list("tenant-1", "le-1")

        assert [p.id for p in periods] == ["period-1"]
        client.mget.assert_called_once_with(
            ["pdv:period:period-1", "pdv:period:period-2"]
        )

    def test_replace_calculation_writes_in_one_transaction(
        self, redis_client, pipe, period
    ):
        pipe.get.return_value = period.model_dump_json()
        line = AggregatedLine(
            popdv_field="3.2",
            direction=Direction.OUTPUT,
            base_os=Decimal("10000"),
            vat_os=Decimal("2000"),
            total_base=Decimal("10000"),
            total_vat=Decimal("2000"),
            entry_count=1,
        )
        updated = period.model_copy(update={"status": PeriodStatus.CALCULATED})

        saved = RedisPeriodRepository(redis_client).replace_calculation(
            updated, [line], expected_version=3
        )

        assert saved.version == 4
        assert saved.status == PeriodStatus.CALCULATED
        pipe.watch.assert_called_once_with("pdv:period:period-1")
        pipe.multi.assert_called_once()
        written = {call.args[0] for call in pipe.set.call_args_list}
        assert written == {"pdv:period:period-1", "pdv:period:period-1:lines"}
        pipe.execute.assert_called_once()

    def test_stale_version_is_rejected(self, redis_client, pipe, period):
        pipe.get.return_value = period.model_dump_json()
        with pytest.raises(ConcurrentCalculationError) as exc_info:
            RedisPeriodRepository(redis_client).save(period, expected_version=2)
        assert exc_info.value.details["stored_version"] == 3
        pipe.execute.assert_not_called()

    def test_watch_error_is_a_concurrent_write(self, redis_client, pipe, period):
        pipe.get.return_value = period.model_dump_json()
        pipe.execute.side_effect = redis.WatchError()
        with pytest.raises(ConcurrentCalculationError):
            RedisPeriodRepository(redis_client).save(period, expected_version=3)

    def test_lock_not_acquired(self, redis_client, client):
        client.lock.return_value.acquire.return_value = False
        repository = RedisPeriodRepository(redis_client, lock_timeout=5)
        with pytest.raises(ConcurrentCalculationError):
            with repository.lock("period:period-1"):
                pass
        assert client.lock.call_args.args == ("pdv:lock:period:period-1",)
        assert client.lock.call_args.kwargs["blocking_timeout"] == 5

    def test_lock_is_released(self, redis_client, client):
        redis_lock = client.lock.return_value
        redis_lock.acquire.return_value = True
        with RedisPeriodRepository(redis_client).lock("tenant:tenant-1"):
            redis_lock.release.assert_not_called()
        redis_lock.release.assert_called_once()


class TestRedisSnapshotStore:
    @pytest.fixture
    def snapshot(self):
        popdv = PopdvFormBuilder().build(AggregationResult())
        return PeriodSnapshot(
            tenant_id="tenant-1",
            period_id="period-1",
            period_start=date(2025, 1, 1),
            period_end=date(2025, 1, 31),
            legal_entity_id="le-1",
            popdv_data=popdv,
            pppdv_data=PpPdvForm(),
            output_vat=Decimal("0.00"),
            input_vat=Decimal("0.00"),
            net_vat=Decimal("0.00"),
            calculated_at=datetime(2025, 2, 1, tzinfo=timezone.utc),
        )

    def test_entities_of_one_tenant_get_separate_keys(self, snapshot):
        other = snapshot.model_copy(update={"legal_entity_id": "le-2"})
        assert snapshot.key != other.key
        assert other.key == "tenant-1:le-2:2025-01-01:2025-01-31"

    def test_upsert_and_get(self, redis_client, client, snapshot):
        store = RedisSnapshotStore(redis_client)
        store.upsert(snapshot)

        key, payload = client.set.call_args.args
        assert key == "pdv:snapshot:tenant-1:le-1:2025-01-01:2025-01-31"

        client.get.return_value = payload
        assert store.get(snapshot.key) == snapshot

    def test_get_missing(self, redis_client, client):
        client.get.return_value = None
        assert RedisSnapshotStore(redis_client).get("tenant-1:x:y") is None

    def test_delete_failure(self, redis_client, client):
        client.delete.side_effect = redis.ConnectionError("refused")
        with pytest.raises(StorageError):
            RedisSnapshotStore(redis_client).delete("tenant-1:x:y")
