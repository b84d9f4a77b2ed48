from core.infrastructure.period_repository import (
    InMemoryPeriodRepository,
    PeriodRepository,
    RedisPeriodRepository,
)
from core.infrastructure.redis_client import RedisClient
from core.infrastructure.snapshot_store import (
    InMemorySnapshotStore,
    RedisSnapshotStore,
    SnapshotStore,
)

__all__ = [
    "InMemoryPeriodRepository",
    "InMemorySnapshotStore",
    "PeriodRepository",
    "RedisClient",
    "RedisPeriodRepository",
    "RedisSnapshotStore",
    "SnapshotStore",
]
