"""
Tax period persistence: period rows, their aggregated lines and the advisory
locks that serialize writers of one period.
"""

import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Dict, Iterator, List, Optional

import redis
from loguru import logger
from pydantic import TypeAdapter

from core.exceptions import (
    ConcurrentCalculationError,
    PeriodNotFoundError,
    StorageError,
    ValidationError,
)
from core.infrastructure.redis_client import RedisClient
from core.models.period import TaxPeriod, utc_now
from core.models.popdv import AggregatedLine

_LINES_ADAPTER = TypeAdapter(List[AggregatedLine])


class PeriodRepository(ABC):
    """Storage of tax periods and the aggregated lines of their latest calculation."""

    @abstractmethod
    def add(self, period: TaxPeriod) -> TaxPeriod:
        pass

    @abstractmethod
    def get(self, period_id: str) -> TaxPeriod:
        """Return a copy of the stored period or raise PeriodNotFoundError."""

    @abstractmethod
    def list(
        self, tenant_id: str, legal_entity_id: Optional[str] = None
    ) -> List[TaxPeriod]:
        pass

    @abstractmethod
    def lines(self, period_id: str) -> List[AggregatedLine]:
        pass

    @abstractmethod
    def save(self, period: TaxPeriod, expected_version: int) -> TaxPeriod:
        """
        Store the period if the stored version still equals expected_version.

        Raises:
            ConcurrentCalculationError: If another writer saved first
        """

    @abstractmethod
    def replace_calculation(
        self, period: TaxPeriod, lines: List[AggregatedLine], expected_version: int
    ) -> TaxPeriod:
        """
        Atomically replace the period's aggregated lines and store its totals.

        Either both the new line set and the period row are visible afterwards
        or neither is.
        """

    @abstractmethod
    def lock(self, name: str, timeout: Optional[float] = None):
        """Context manager holding an exclusive advisory lock."""


class InMemoryPeriodRepository(PeriodRepository):
    """Thread-safe in-process repository."""

    def __init__(self, lock_timeout: float = 60):
        self.lock_timeout = lock_timeout
        self._state_lock = threading.Lock()
        self._periods: Dict[str, TaxPeriod] = {}
        self._lines: Dict[str, List[AggregatedLine]] = {}
        self._named_locks: Dict[str, threading.Lock] = {}

    def add(self, period: TaxPeriod) -> TaxPeriod:
        with self._state_lock:
            if period.id in self._periods:
                raise ValidationError(
                    f"Tax period {period.id} already exists", {"period_id": period.id}
                )
            self._periods[period.id] = period.model_copy(deep=True)
            self._lines[period.id] = []
        return period.model_copy(deep=True)

    def get(self, period_id: str) -> TaxPeriod:
        with self._state_lock:
            period = self._periods.get(period_id)
            if period is None:
                raise PeriodNotFoundError(period_id)
            return period.model_copy(deep=True)

    def list(
        self, tenant_id: str, legal_entity_id: Optional[str] = None
    ) -> List[TaxPeriod]:
        with self._state_lock:
            periods = [
                period.model_copy(deep=True)
                for period in self._periods.values()
                if period.tenant_id == tenant_id
                and (legal_entity_id is None or period.legal_entity_id == legal_entity_id)
            ]
        return sorted(periods, key=lambda period: period.start_date)

    def lines(self, period_id: str) -> List[AggregatedLine]:
        with self._state_lock:
            if period_id not in self._periods:
                raise PeriodNotFoundError(period_id)
            return list(self._lines[period_id])

    def save(self, period: TaxPeriod, expected_version: int) -> TaxPeriod:
        with self._state_lock:
            stored = self._staged_version_check(period.id, expected_version)
            updated = self._bump(period, stored.version)
            self._periods[period.id] = updated
            return updated.model_copy(deep=True)

    def replace_calculation(
        self, period: TaxPeriod, lines: List[AggregatedLine], expected_version: int
    ) -> TaxPeriod:
        with self._state_lock:
            stored = self._staged_version_check(period.id, expected_version)
            staged_period = self._bump(period, stored.version)
            staged_lines = list(lines)
            # Swap both references while holding the state lock
            self._periods[period.id] = staged_period
            self._lines[period.id] = staged_lines
            return staged_period.model_copy(deep=True)

    @contextmanager
    def lock(self, name: str, timeout: Optional[float] = None) -> Iterator[None]:
        with self._state_lock:
            named_lock = self._named_locks.setdefault(name, threading.Lock())
        wait = self.lock_timeout if timeout is None else timeout
        if not named_lock.acquire(timeout=wait):
            raise ConcurrentCalculationError(name, {"lock": name, "waited": wait})
        try:
            yield
        finally:
            named_lock.release()

    def _staged_version_check(self, period_id: str, expected_version: int) -> TaxPeriod:
        stored = self._periods.get(period_id)
        if stored is None:
            raise PeriodNotFoundError(period_id)
        if stored.version != expected_version:
            raise ConcurrentCalculationError(
                period_id,
                {"expected_version": expected_version, "stored_version": stored.version},
            )
        return stored

    @staticmethod
    def _bump(period: TaxPeriod, stored_version: int) -> TaxPeriod:
        return period.model_copy(
            update={"version": stored_version + 1, "updated_at": utc_now()}, deep=True
        )


class RedisPeriodRepository(PeriodRepository):
    """
    Redis-backed repository.

    Layout:
        pdv:period:{id}             period JSON
        pdv:period:{id}:lines       aggregated lines JSON
        pdv:tenant:{tenant}:periods set of period ids
        pdv:lock:{name}             advisory locks
    """

    KEY_PREFIX = "pdv"

    def __init__(self, redis_client: RedisClient, lock_timeout: float = 60):
        self._redis = redis_client
        self.lock_timeout = lock_timeout

    def _period_key(self, period_id: str) -> str:
        return f"{self.KEY_PREFIX}:period:{period_id}"

    def _lines_key(self, period_id: str) -> str:
        return f"{self.KEY_PREFIX}:period:{period_id}:lines"

    def _tenant_key(self, tenant_id: str) -> str:
        return f"{self.KEY_PREFIX}:tenant:{tenant_id}:periods"

    def add(self, period: TaxPeriod) -> TaxPeriod:
        client = self._redis.get_client()
        try:
            created = client.set(
                self._period_key(period.id), period.model_dump_json(), nx=True
            )
            if not created:
                raise ValidationError(
                    f"Tax period {period.id} already exists", {"period_id": period.id}
                )
            with client.pipeline() as pipe:
                pipe.set(self._lines_key(period.id), "[]")
                pipe.sadd(self._tenant_key(period.tenant_id), period.id)
                pipe.execute()
        except redis.RedisError as e:
            raise StorageError(
                "Failed to store tax period", {"period_id": period.id}, e
            )
        return period

    def get(self, period_id: str) -> TaxPeriod:
        try:
            raw = self._redis.get_client().get(self._period_key(period_id))
        except redis.RedisError as e:
            raise StorageError("Failed to read tax period", {"period_id": period_id}, e)
        if raw is None:
            raise PeriodNotFoundError(period_id)
        return TaxPeriod.model_validate_json(raw)

    def list(
        self, tenant_id: str, legal_entity_id: Optional[str] = None
    ) -> List[TaxPeriod]:
        client = self._redis.get_client()
        try:
            period_ids = sorted(client.smembers(self._tenant_key(tenant_id)))
            raws = client.mget([self._period_key(pid) for pid in period_ids]) if period_ids else []
        except redis.RedisError as e:
            raise StorageError("Failed to list tax periods", {"tenant_id": tenant_id}, e)
        periods = [TaxPeriod.model_validate_json(raw) for raw in raws if raw]
        if legal_entity_id is not None:
            periods = [p for p in periods if p.legal_entity_id == legal_entity_id]
        return sorted(periods, key=lambda period: period.start_date)

    def lines(self, period_id: str) -> List[AggregatedLine]:
        try:
            raw = self._redis.get_client().get(self._lines_key(period_id))
        except redis.RedisError as e:
            raise StorageError("Failed to read period lines", {"period_id": period_id}, e)
        if raw is None:
            raise PeriodNotFoundError(period_id)
        return _LINES_ADAPTER.validate_json(raw)

    def save(self, period: TaxPeriod, expected_version: int) -> TaxPeriod:
        return self._swap(period, None, expected_version)

    def replace_calculation(
        self, period: TaxPeriod, lines: List[AggregatedLine], expected_version: int
    ) -> TaxPeriod:
        return self._swap(period, lines, expected_version)

    def _swap(
        self,
        period: TaxPeriod,
        lines: Optional[List[AggregatedLine]],
        expected_version: int,
    ) -> TaxPeriod:
        """WATCH the period row, verify its version and write in one MULTI/EXEC."""
        period_key = self._period_key(period.id)
        client = self._redis.get_client()
        try:
            with client.pipeline() as pipe:
                pipe.watch(period_key)
                raw = pipe.get(period_key)
                if raw is None:
                    raise PeriodNotFoundError(period.id)
                stored_version = TaxPeriod.model_validate_json(raw).version
                if stored_version != expected_version:
                    raise ConcurrentCalculationError(
                        period.id,
                        {
                            "expected_version": expected_version,
                            "stored_version": stored_version,
                        },
                    )
                updated = period.model_copy(
                    update={"version": stored_version + 1, "updated_at": utc_now()}
                )
                pipe.multi()
                pipe.set(period_key, updated.model_dump_json())
                if lines is not None:
                    pipe.set(
                        self._lines_key(period.id),
                        _LINES_ADAPTER.dump_json(lines).decode("utf-8"),
                    )
                pipe.execute()
        except redis.WatchError:
            raise ConcurrentCalculationError(period.id, {"reason": "watched key changed"})
        except redis.RedisError as e:
            raise StorageError("Failed to write tax period", {"period_id": period.id}, e)
        return updated

    @contextmanager
    def lock(self, name: str, timeout: Optional[float] = None) -> Iterator[None]:
        wait = self.lock_timeout if timeout is None else timeout
        redis_lock = self._redis.get_client().lock(
            f"{self.KEY_PREFIX}:lock:{name}",
            timeout=self.lock_timeout,
            blocking_timeout=wait,
        )
        try:
            acquired = redis_lock.acquire()
        except redis.RedisError as e:
            raise StorageError("Failed to acquire period lock", {"lock": name}, e)
        if not acquired:
            raise ConcurrentCalculationError(name, {"lock": name, "waited": wait})
        try:
            yield
        finally:
            try:
                redis_lock.release()
            except redis.exceptions.LockError as e:
                logger.warning(f"Advisory lock {name} expired before release: {e}")
