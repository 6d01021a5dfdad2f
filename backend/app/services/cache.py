"""Key-value cache client backed by Redis.

Only three data operations are exposed (get / set-with-ttl / delete) plus the
lifecycle hooks used by the app lifespan and the /status endpoint. Any Redis
error surfaces as StoreUnavailable; nothing is retried here.
"""
import logging
from typing import Optional

from redis.asyncio import Redis
from redis.exceptions import RedisError

from app.config import settings
from app.errors import StoreUnavailable

logger = logging.getLogger(__name__)


class RedisClient:
    """Thin async wrapper around a Redis connection."""

    def __init__(self, url: str = settings.REDIS_URL, client: Optional[Redis] = None):
        self.url = url
        self._client = client

    @property
    def client(self) -> Redis:
        if self._client is None:
            self._client = Redis.from_url(self.url, decode_responses=True)
        return self._client

    async def connect(self) -> bool:
        """Open the connection pool and report whether the server answered."""
        alive = await self.is_alive()
        if alive:
            logger.info(f"Connected to Redis at {self.url}")
        else:
            logger.warning(f"Redis client not connected to server at {self.url}")
        return alive

    async def is_alive(self) -> bool:
        try:
            return bool(await self.client.ping())
        except RedisError as e:
            logger.warning(f"Redis ping failed: {e}")
            return False

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def get(self, key: str) -> Optional[str]:
        try:
            return await self.client.get(key)
        except RedisError as e:
            raise StoreUnavailable(f"Cache read failed: {e}") from e

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        try:
            await self.client.set(key, value, ex=ttl_seconds)
        except RedisError as e:
            raise StoreUnavailable(f"Cache write failed: {e}") from e

    async def delete(self, key: str) -> None:
        try:
            await self.client.delete(key)
        except RedisError as e:
            raise StoreUnavailable(f"Cache delete failed: {e}") from e


redis_client = RedisClient()


def get_cache() -> RedisClient:
    """FastAPI dependency returning the process-wide cache handle."""
    return redis_client
