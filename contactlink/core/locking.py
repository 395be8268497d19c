"""Per-key locks serializing identify calls.

Two requests that share an email or phone number must not interleave their
read-decide-write sequences, or both may see no match and both create a
primary contact. Requests with different keys can still reach the same
linked group, so each request also holds the primaries it resolves to,
always after its email and phone keys. Every key is held in-process with an
``asyncio.Lock`` and, when Redis is enabled, across processes with a Redis
lock.
"""

import asyncio
import logging
from collections.abc import AsyncIterator, Iterable
from contextlib import AsyncExitStack, asynccontextmanager

from redis.exceptions import LockNotOwnedError

from contactlink.core.exceptions import LockTimeoutError
from contactlink.infrastructure.redis import RedisClient, redis_client
from contactlink.settings import settings

logger = logging.getLogger(__name__)

LOCK_PREFIX = "contactlink:lock:"


def identity_lock_keys(email: str | None, phone_number: str | None) -> list[str]:
    """Lock keys for an identify request."""
    keys = []
    if email:
        keys.append(f"email:{email}")
    if phone_number:
        keys.append(f"phone:{phone_number}")
    return keys


def primary_lock_keys(contact_ids: Iterable[int]) -> list[str]:
    """Lock keys for the primary contacts of linked groups."""
    return sorted(f"primary:{contact_id}" for contact_id in set(contact_ids))


class KeyedLock:
    """Registry of named locks.

    Local locks are reference counted and dropped once nobody holds or
    waits on them.
    """

    def __init__(
        self,
        redis: RedisClient | None = None,
        timeout: float | None = None,
        blocking_timeout: float | None = None,
    ) -> None:
        self._redis = redis
        self._timeout = timeout
        self._blocking_timeout = blocking_timeout
        self._locks: dict[str, asyncio.Lock] = {}
        self._refcounts: dict[str, int] = {}

    def __len__(self) -> int:
        return len(self._locks)

    @asynccontextmanager
    async def _hold_local(self, key: str) -> AsyncIterator[None]:
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        self._refcounts[key] = self._refcounts.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._refcounts[key] -= 1
            if self._refcounts[key] == 0:
                del self._refcounts[key]
                del self._locks[key]

    @asynccontextmanager
    async def _hold_remote(self, key: str) -> AsyncIterator[None]:
        lock = None
        if self._redis is not None:
            lock = self._redis.lock(
                LOCK_PREFIX + key,
                timeout=self._timeout,
                blocking_timeout=self._blocking_timeout,
            )
        if lock is None:
            yield
            return

        if not await lock.acquire():
            raise LockTimeoutError(key)
        try:
            yield
        finally:
            try:
                await lock.release()
            except LockNotOwnedError:
                # Expired while held; the guarded work has already finished
                logger.warning("Lock expired before release", extra={"lock_key": key})

    @asynccontextmanager
    async def hold(self, keys: Iterable[str]) -> AsyncIterator[None]:
        """Hold every key for the duration of the block.

        Keys are acquired in sorted order so overlapping key sets cannot
        deadlock.
        """
        ordered = sorted(set(keys))
        async with AsyncExitStack() as stack:
            for key in ordered:
                await stack.enter_async_context(self._hold_local(key))
                await stack.enter_async_context(self._hold_remote(key))
            logger.debug("Holding identify locks", extra={"lock_keys": ordered})
            yield


# Global lock registry shared by every request in this process
identity_lock = KeyedLock(
    redis=redis_client,
    timeout=settings.identify_lock_timeout_seconds,
    blocking_timeout=settings.identify_lock_blocking_timeout_seconds,
)
