"""
Key-value status store used as the single source of truth for job state.

The tracking core only relies on four operations: get, set (with optional
expiry), rpush and lrange. Everything else is an implementation detail of
the concrete store.
"""

import abc
import logging
import time
from typing import Dict, List, Optional

import redis.asyncio as aioredis
from redis.exceptions import ConnectionError as RedisConnectionError, TimeoutError as RedisTimeoutError

from genstudio.core.config import settings
from genstudio.core.exceptions import StoreUnavailableError

logger = logging.getLogger(__name__)


def _slice_bounds(length: int, start: int, end: int) -> slice:
    """Translate inclusive LRANGE bounds (negative from the tail) to a python slice"""
    if start < 0:
        start = max(length + start, 0)
    if end < 0:
        end = length + end
        if end < 0:
            return slice(0, 0)
    return slice(start, end + 1)


class KeyValueStore(abc.ABC):
    """Minimal async mapping/list store"""

    @abc.abstractmethod
    async def get(self, key: str) -> Optional[str]:
        pass

    @abc.abstractmethod
    async def set(self, key: str, value: str, expire_seconds: Optional[int] = None) -> None:
        pass

    @abc.abstractmethod
    async def rpush(self, key: str, value: str) -> None:
        pass

    @abc.abstractmethod
    async def lrange(self, key: str, start: int, end: int) -> List[str]:
        pass

    async def close(self) -> None:
        """Release connections, if any"""
        return None


class MemoryStore(KeyValueStore):
    """Process-wide in-memory store. Not persistent across restarts."""

    def __init__(self, list_ttl_seconds: Optional[int] = None, clock=time.monotonic):
        self._values: Dict[str, str] = {}
        self._lists: Dict[str, List[str]] = {}
        self._deadlines: Dict[str, float] = {}
        self._list_ttl_seconds = list_ttl_seconds
        self._clock = clock

    def _expired(self, key: str) -> bool:
        deadline = self._deadlines.get(key)
        if deadline is not None and self._clock() >= deadline:
            self._evict(key)
            return True
        return False

    def _evict(self, key: str) -> None:
        self._values.pop(key, None)
        self._lists.pop(key, None)
        self._deadlines.pop(key, None)

    async def get(self, key: str) -> Optional[str]:
        if self._expired(key):
            return None
        return self._values.get(key)

    async def set(self, key: str, value: str, expire_seconds: Optional[int] = None) -> None:
        self._values[key] = value
        if expire_seconds:
            self._deadlines[key] = self._clock() + expire_seconds
        else:
            self._deadlines.pop(key, None)

    async def rpush(self, key: str, value: str) -> None:
        self._expired(key)
        self._lists.setdefault(key, []).append(value)
        # Matches the EXPIRE sent with every RPUSH on Redis
        if self._list_ttl_seconds:
            self._deadlines[key] = self._clock() + self._list_ttl_seconds

    async def lrange(self, key: str, start: int, end: int) -> List[str]:
        if self._expired(key):
            return []
        items = self._lists.get(key, [])
        return list(items[_slice_bounds(len(items), start, end)])

    def purge_expired(self) -> int:
        """Drop every expired key. Returns the number of keys removed."""
        now = self._clock()
        expired = [key for key, deadline in self._deadlines.items() if now >= deadline]
        for key in expired:
            self._evict(key)
        return len(expired)


class RedisStore(KeyValueStore):
    """Redis-backed store for multi-process deployments"""

    def __init__(self, url: str, list_ttl_seconds: Optional[int] = None, client: Optional[aioredis.Redis] = None):
        self._client = client or aioredis.from_url(url, decode_responses=True)
        self._list_ttl_seconds = list_ttl_seconds

    async def get(self, key: str) -> Optional[str]:
        try:
            return await self._client.get(key)
        except (RedisConnectionError, RedisTimeoutError) as e:
            logger.error(f"Redis GET failed for {key}: {e}")
            raise StoreUnavailableError() from e

    async def set(self, key: str, value: str, expire_seconds: Optional[int] = None) -> None:
        try:
            await self._client.set(key, value, ex=expire_seconds)
        except (RedisConnectionError, RedisTimeoutError) as e:
            logger.error(f"Redis SET failed for {key}: {e}")
            raise StoreUnavailableError() from e

    async def rpush(self, key: str, value: str) -> None:
        try:
            async with self._client.pipeline(transaction=True) as pipe:
                pipe.rpush(key, value)
                if self._list_ttl_seconds:
                    pipe.expire(key, self._list_ttl_seconds)
                await pipe.execute()
        except (RedisConnectionError, RedisTimeoutError) as e:
            logger.error(f"Redis RPUSH failed for {key}: {e}")
            raise StoreUnavailableError() from e

    async def lrange(self, key: str, start: int, end: int) -> List[str]:
        try:
            return await self._client.lrange(key, start, end)
        except (RedisConnectionError, RedisTimeoutError) as e:
            logger.error(f"Redis LRANGE failed for {key}: {e}")
            raise StoreUnavailableError() from e

    async def close(self) -> None:
        await self._client.aclose()


_memory_store: Optional[MemoryStore] = None


def get_job_store() -> KeyValueStore:
    """Build the store selected by JOB_STORE_BACKEND"""
    global _memory_store

    backend = settings.JOB_STORE_BACKEND.lower()
    if backend == "redis":
        return RedisStore(settings.REDIS_URL, list_ttl_seconds=settings.JOB_RECORD_TTL_SECONDS)
    if backend == "memory":
        if _memory_store is None:
            _memory_store = MemoryStore(list_ttl_seconds=settings.JOB_RECORD_TTL_SECONDS)
        return _memory_store
    raise ValueError(f"Unknown job store backend: {settings.JOB_STORE_BACKEND}")
