"""
Read-through caching for async repository functions.
"""
import hashlib
import json
from functools import wraps
from typing import Any, Callable
from sqlalchemy.ext.asyncio import AsyncSession
from partyfinder.cache.redis_client import cache
from partyfinder.core.logging import logger


def cached(key_prefix: str, expire: int = 300):
    """
    Cache an async function's JSON-serialisable result in Redis.

    ``None`` results are not stored, so a lookup for a missing row is
    retried next time. Writers clear entries with
    ``cache.delete_pattern(f"{key_prefix}:*")``.

    Usage:
        @cached('events:list', expire=30)
        async def list_live_events(db):
            ...
    """
    def decorator(func: Callable) -> Callable:
        @wraps(func)
        async def wrapper(*args, **kwargs) -> Any:
            key = f"{key_prefix}:{cache_key(args, kwargs)}"

            hit = await cache.get(key)
            if hit is not None:
                logger.debug(f"Cache hit {key}")
                return hit

            result = await func(*args, **kwargs)
            if result is not None:
                await cache.set(key, result, expire)
            return result
        return wrapper
    return decorator


def cache_key(args: tuple, kwargs: dict) -> str:
    """Stable digest of the call arguments, ignoring the database session."""
    parts = {
        "args": [str(arg) for arg in args if not isinstance(arg, AsyncSession)],
        "kwargs": {k: str(v) for k, v in kwargs.items() if not isinstance(v, AsyncSession)},
    }
    return hashlib.md5(json.dumps(parts, sort_keys=True).encode()).hexdigest()
