"""
Snapshot persistence for computed POPDV/PP-PDV results, keyed by
(tenant, period_start, period_end).
"""

import threading
from abc import ABC, abstractmethod
from typing import Dict, Optional

import redis

from core.exceptions import StorageError
from core.infrastructure.redis_client import RedisClient
from core.models.settlement import PeriodSnapshot


class SnapshotStore(ABC):
    @abstractmethod
    def get(self, key: str) -> Optional[PeriodSnapshot]:
        pass

    @abstractmethod
    def upsert(self, snapshot: PeriodSnapshot) -> None:
        """Insert or replace the snapshot stored under snapshot.key."""

    @abstractmethod
    def delete(self, key: str) -> None:
        pass


class InMemorySnapshotStore(SnapshotStore):
    def __init__(self):
        self._lock = threading.Lock()
        self._snapshots: Dict[str, PeriodSnapshot] = {}

    def get(self, key: str) -> Optional[PeriodSnapshot]:
        with self._lock:
            return self._snapshots.get(key)

    def upsert(self, snapshot: PeriodSnapshot) -> None:
        with self._lock:
            self._snapshots[snapshot.key] = snapshot

    def delete(self, key: str) -> None:
        with self._lock:
            self._snapshots.pop(key, None)

    def __len__(self) -> int:
        return len(self._snapshots)


class RedisSnapshotStore(SnapshotStore):
    KEY_PREFIX = "pdv:snapshot"

    def __init__(self, redis_client: RedisClient):
        self._redis = redis_client

    def _key(self, key: str) -> str:
        return f"{self.KEY_PREFIX}:{key}"

    def get(self, key: str) -> Optional[PeriodSnapshot]:
        try:
            raw = self._redis.get_client().get(self._key(key))
        except redis.RedisError as e:
            raise StorageError("Failed to read snapshot", {"key": key}, e)
        return PeriodSnapshot.model_validate_json(raw) if raw else None

    def upsert(self, snapshot: PeriodSnapshot) -> None:
        try:
            self._redis.get_client().set(
                self._key(snapshot.key), snapshot.model_dump_json()
            )
        except redis.RedisError as e:
            raise StorageError("Failed to store snapshot", {"key": snapshot.key}, e)

    def delete(self, key: str) -> None:
        try:
            self._redis.get_client().delete(self._key(key))
        except redis.RedisError as e:
            raise StorageError("Failed to delete snapshot", {"key": key}, e)
