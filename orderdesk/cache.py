"""
Redis caching utilities for short-lived per-date slot lists.

Cached values are never used for conflict detection: the booking path always
re-reads the store, and every local mutation invalidates the affected date.
"""
import json
import logging
from datetime import date
from typing import Any, Optional

from .config import CACHE_ENABLED, SLOT_CACHE_TTL_SECONDS
from .redis_client import get_redis_client

logger = logging.getLogger(__name__)


class Cache:
    """Redis cache wrapper with automatic serialization (fail-open)"""

    def __init__(self, enabled: bool = CACHE_ENABLED, client=None):
        self.enabled = enabled
        self.redis_client = client

    def _get_client(self):
        """Lazy load Redis client"""
        if not self.enabled:
            return None
        if self.redis_client is None:
            try:
                self.redis_client = get_redis_client()
            except Exception as e:
                logger.warning(f"⚠️ Redis cache unavailable: {e}")
                return None
        return self.redis_client

    def get(self, key: str) -> Optional[Any]:
        client = self._get_client()
        if not client:
            return None

        try:
            value = client.get(key)
            if value:
                logger.debug(f"✅ Cache HIT: {key}")
                return json.loads(value)
            logger.debug(f"❌ Cache MISS: {key}")
            return None
        except Exception as e:
            logger.error(f"❌ Cache get error for {key}: {e}")
            return None

    def set(self, key: str, value: Any, ttl: int = SLOT_CACHE_TTL_SECONDS) -> bool:
        client = self._get_client()
        if not client:
            return False

        try:
            client.setex(key, ttl, json.dumps(value))
            logger.debug(f"✅ Cache SET: {key} (TTL: {ttl}s)")
            return True
        except Exception as e:
            logger.error(f"❌ Cache set error for {key}: {e}")
            return False

    def delete(self, key: str) -> bool:
        client = self._get_client()
        if not client:
            return False

        try:
            client.delete(key)
            logger.debug(f"✅ Cache DELETE: {key}")
            return True
        except Exception as e:
            logger.error(f"❌ Cache delete error for {key}: {e}")
            return False


# Global cache instance
cache = Cache()


def get_cache() -> Cache:
    return cache


def build_slots_key(delivery_date: date) -> str:
    return f"slots:{delivery_date.isoformat()}"


def get_slots_cached(target: Cache, delivery_date: date) -> Optional[list]:
    return target.get(build_slots_key(delivery_date))


def set_slots_cached(target: Cache, delivery_date: date, slots: list) -> bool:
    return target.set(build_slots_key(delivery_date), slots, SLOT_CACHE_TTL_SECONDS)


def invalidate_slots_cache(target: Cache, delivery_date: date) -> bool:
    """Drop the cached slot list after any mutation touching that date"""
    return target.delete(build_slots_key(delivery_date))
