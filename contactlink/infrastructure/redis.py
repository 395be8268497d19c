"""Redis client wrapper for cross-process locks."""

import logging

import redis.asyncio as aioredis
from redis.asyncio.lock import Lock
from redis.exceptions import RedisError

from contactlink.settings import settings

logger = logging.getLogger(__name__)


class RedisClient:
    """Redis client wrapper for async operations."""

    def __init__(self) -> None:
        """Initialize Redis client."""
        self._client: aioredis.Redis | None = None
        self._enabled: bool = settings.redis_enabled

    @property
    def enabled(self) -> bool:
        """True when connected and usable."""
        return self._enabled and self._client is not None

    async def connect(self) -> None:
        """Connect to Redis."""
        if not self._enabled:
            logger.info("Redis disabled - skipping connection")
            return
        if self._client is None:
            try:
                self._client = aioredis.from_url(
                    settings.redis_url,
                    encoding="utf-8",
                    decode_responses=True,
                )
                await self._client.ping()
                logger.info("Redis connected successfully")
            except RedisError as e:
                logger.warning(f"Redis connection failed: {e}. Continuing with in-process locks only.")
                self._client = None
                self._enabled = False

    async def disconnect(self) -> None:
        """Disconnect from Redis."""
        if self._client:
            await self._client.aclose()
            self._client = None

    def lock(
        self, name: str, timeout: float | None = None, blocking_timeout: float | None = None
    ) -> Lock | None:
        """Build a distributed lock.

        Args:
            name: Redis key backing the lock
            timeout: Seconds after which the lock expires on its own
            blocking_timeout: Seconds to wait for the lock before giving up

        Returns:
            Lock, or None when Redis is not in use
        """
        if not self.enabled:
            return None
        return self._client.lock(name, timeout=timeout, blocking_timeout=blocking_timeout)


# Global Redis client instance
redis_client = RedisClient()
