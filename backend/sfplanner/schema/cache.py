"""
Describe cache.

Per-org cache of object describes with a TTL. The schema index builder
takes a cache instance as a parameter; a process-wide default is available
through get_describe_cache(). Entries are independent and writers overwrite
wholesale, so no locking is needed (last writer wins).
"""

import json
import logging
import time
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Optional, Tuple

import redis.asyncio as redis
from redis.exceptions import RedisError

from sfplanner.config import get_settings
from sfplanner.errors import CacheError

logger = logging.getLogger(__name__)


class CacheKeyBuilder:
    """Build cache keys for describe payloads"""
    
    PREFIX = "describe"
    
    @classmethod
    def for_object(cls, org_id: str, object_name: str) -> str:
        return f"{cls.PREFIX}:{org_id}:{object_name}"
    
    @classmethod
    def for_org(cls, org_id: str) -> str:
        return f"{cls.PREFIX}:{org_id}:*"


class DescribeCache(ABC):
    """Cache interface used by the schema index builder"""
    
    def __init__(self, ttl_seconds: Optional[int] = None):
        self.ttl_seconds = ttl_seconds if ttl_seconds is not None else get_settings().describe_cache_ttl_seconds
    
    @abstractmethod
    async def get(self, org_id: str, object_name: str) -> Optional[Dict[str, Any]]:
        """Return the cached describe payload, or None if missing/expired"""
    
    @abstractmethod
    async def set(self, org_id: str, object_name: str, describe: Dict[str, Any],
                  ttl_seconds: Optional[int] = None) -> None:
        """Store a describe payload"""
    
    @abstractmethod
    async def invalidate(self, org_id: str, object_name: Optional[str] = None) -> None:
        """Drop one object, or the whole org when object_name is None"""


class InMemoryDescribeCache(DescribeCache):
    """Process-local cache: org -> object -> (payload, expires_at)"""
    
    def __init__(self, ttl_seconds: Optional[int] = None,
                 clock: Callable[[], float] = time.time):
        super().__init__(ttl_seconds)
        self._clock = clock
        self._entries: Dict[str, Dict[str, Tuple[Dict[str, Any], float]]] = {}
    
    async def get(self, org_id: str, object_name: str) -> Optional[Dict[str, Any]]:
        objects = self._entries.get(org_id)
        if not objects or object_name not in objects:
            return None
        
        payload, expires_at = objects[object_name]
        if self._clock() > expires_at:
            # Expired
            del objects[object_name]
            return None
        return payload
    
    async def set(self, org_id: str, object_name: str, describe: Dict[str, Any],
                  ttl_seconds: Optional[int] = None) -> None:
        ttl = ttl_seconds if ttl_seconds is not None else self.ttl_seconds
        self._entries.setdefault(org_id, {})[object_name] = (describe, self._clock() + ttl)
    
    async def invalidate(self, org_id: str, object_name: Optional[str] = None) -> None:
        if object_name is None:
            self._entries.pop(org_id, None)
        elif org_id in self._entries:
            self._entries[org_id].pop(object_name, None)
    
    def __len__(self) -> int:
        return sum(len(objects) for objects in self._entries.values())


class RedisDescribeCache(DescribeCache):
    """
    Shared cache backed by Redis. Payloads are stored as JSON with SETEX.
    Backend errors are raised as CacheError; the index builder treats them
    as cache misses.
    """
    
    def __init__(self, redis_client: Optional[redis.Redis] = None,
                 ttl_seconds: Optional[int] = None):
        super().__init__(ttl_seconds)
        self._redis = redis_client
        self._key_builder = CacheKeyBuilder()
    
    async def _get_redis(self) -> redis.Redis:
        if self._redis is None:
            settings = get_settings()
            self._redis = redis.from_url(
                settings.redis_url,
                password=settings.redis_password,
                decode_responses=True
            )
        return self._redis
    
    def _serialize(self, data: Any) -> str:
        return json.dumps(data, default=str)
    
    def _deserialize(self, data: str) -> Any:
        return json.loads(data)
    
    async def get(self, org_id: str, object_name: str) -> Optional[Dict[str, Any]]:
        key = self._key_builder.for_object(org_id, object_name)
        try:
            redis_client = await self._get_redis()
            cached = await redis_client.get(key)
        except RedisError as e:
            raise CacheError(f"cache read failed for {key}: {e}") from e
        
        if cached:
            return self._deserialize(cached)
        return None
    
    async def set(self, org_id: str, object_name: str, describe: Dict[str, Any],
                  ttl_seconds: Optional[int] = None) -> None:
        key = self._key_builder.for_object(org_id, object_name)
        ttl = ttl_seconds if ttl_seconds is not None else self.ttl_seconds
        try:
            redis_client = await self._get_redis()
            await redis_client.setex(key, ttl, self._serialize(describe))
        except RedisError as e:
            raise CacheError(f"cache write failed for {key}: {e}") from e
    
    async def invalidate(self, org_id: str, object_name: Optional[str] = None) -> None:
        try:
            redis_client = await self._get_redis()
            if object_name is not None:
                await redis_client.delete(self._key_builder.for_object(org_id, object_name))
                return
            
            pattern = self._key_builder.for_org(org_id)
            cursor = 0
            while True:
                cursor, keys = await redis_client.scan(cursor, match=pattern, count=100)
                if keys:
                    await redis_client.delete(*keys)
                if cursor == 0:
                    break
        except RedisError as e:
            raise CacheError(f"cache invalidation failed for org {org_id}: {e}") from e


# Global cache instance
_cache_instance: Optional[DescribeCache] = None


def get_describe_cache() -> DescribeCache:
    """Get the process-wide describe cache, built from settings"""
    global _cache_instance
    if _cache_instance is None:
        settings = get_settings()
        if settings.describe_cache_backend == "redis":
            logger.info(f"Using Redis describe cache at {settings.redis_url_safe}")
            _cache_instance = RedisDescribeCache()
        else:
            _cache_instance = InMemoryDescribeCache()
    return _cache_instance


def reset_describe_cache() -> None:
    """Drop the process-wide cache (tests, settings reloads)"""
    global _cache_instance
    _cache_instance = None
