"""
Redis client service - handles only Redis connection management.
"""

from typing import Optional

import redis
from loguru import logger


class RedisClient:
    """Simple Redis client wrapper - only handles connection and health checks."""

    def __init__(self, redis_url: str = "redis://localhost:6379"):
        self._redis_url = redis_url
        self._client: Optional[redis.Redis] = None

    def get_client(self) -> redis.Redis:
        """Get the shared Redis client."""
        if self._client is None:
            self._client = redis.from_url(
                self._redis_url, decode_responses=True, health_check_interval=30
            )
        return self._client

    def ping(self) -> bool:
        """Check connectivity; used by the health endpoint."""
        try:
            return bool(self.get_client().ping())
        except redis.RedisError as e:
            logger.error(f"Redis ping failed: {e}")
            return False

    def close(self):
        """Close connections."""
        if self._client:
            self._client.close()
            self._client = None
