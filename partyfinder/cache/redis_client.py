"""
Redis-backed JSON cache.

All keys live under ``settings.CACHE_PREFIX`` so several deployments can
share one Redis. Redis is an accelerator here, never a dependency: any
``RedisError`` is logged and the call behaves like a miss.
"""
import json
from typing import Any, Callable, Optional, TypeVar
import redis
from partyfinder.core.config import settings
from partyfinder.core.logging import logger

T = TypeVar("T")


class RedisCache:
    def __init__(self, url: Optional[str] = None, prefix: Optional[str] = None):
        self.url = url or settings.REDIS_URL
        self.prefix = settings.CACHE_PREFIX if prefix is None else prefix
        self._client: Optional[redis.Redis] = None

    def _get_client(self) -> redis.Redis:
        if self._client is None:
            pool = redis.ConnectionPool.from_url(self.url, decode_responses=True, max_connections=20)
            self._client = redis.Redis(connection_pool=pool)
            logger.info(f"Redis connection pool created for {self.url}")
        return self._client

    def _key(self, key: str) -> str:
        return f"{self.prefix}:{key}" if self.prefix else key

    def _run(self, op: str, key: str, call: Callable[[redis.Redis], T], default: T) -> T:
        try:
            return call(self._get_client())
        except redis.RedisError as e:
            logger.error(f"Redis {op} failed for {key}: {e}")
            return default

    async def get(self, key: str) -> Optional[Any]:
        raw = self._run("GET", key, lambda c: c.get(self._key(key)), None)
        return json.loads(raw) if raw else None

    async def set(self, key: str, value: Any, expire: int = 300) -> bool:
        """Store ``value`` as JSON for ``expire`` seconds."""
        payload = json.dumps(value, default=str)
        return self._run("SET", key, lambda c: bool(c.setex(self._key(key), expire, payload)), False)

    async def delete(self, key: str) -> bool:
        return self._run("DELETE", key, lambda c: c.delete(self._key(key)) > 0, False)

    async def delete_pattern(self, pattern: str) -> int:
        """
        Delete every key matching a glob ``pattern`` (e.g. ``events:list:*``).

        Returns:
            Number of keys removed
        """
        def drop(client: redis.Redis) -> int:
            keys = client.keys(self._key(pattern))
            return client.delete(*keys) if keys else 0

        return self._run("DELETE_PATTERN", pattern, drop, 0)

    async def exists(self, key: str) -> bool:
        return self._run("EXISTS", key, lambda c: c.exists(self._key(key)) > 0, False)

    async def ping(self) -> bool:
        return self._run("PING", "-", lambda c: bool(c.ping()), False)

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None
            logger.info("Redis connection pool closed")


cache = RedisCache()
