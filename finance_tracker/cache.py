# finance_tracker/cache.py
# Redis cache for insights, reports and analytics with graceful degradation

import json
import logging
from typing import Any, Callable, Optional

import redis

from .config import get_settings

logger = logging.getLogger(__name__)

CACHE_PREFIXES = {
    "insights": "insights",
    "reports": "reports",
    "analytics": "analytics",
}

# Seconds
CACHE_TTL = {
    "insights": 86400,
    "reports": 3600,
    "analytics": 1800,
    "short": 300,
}

_redis_client: Optional[redis.Redis] = None


def get_redis_client() -> Optional[redis.Redis]:
    """
    Shared Redis client built from REDIS_URL.
    Returns None when Redis is not configured or unreachable.
    """
    global _redis_client

    if _redis_client is None:
        url = get_settings().redis_url
        if not url:
            return None
        try:
            client = redis.Redis.from_url(
                url,
                decode_responses=True,
                socket_connect_timeout=2,
                socket_timeout=2,
            )
            client.ping()
            _redis_client = client
            logger.info("Redis connected")
        except (redis.ConnectionError, redis.TimeoutError) as e:
            logger.warning("Redis unavailable, caching and rate limiting disabled: %s", e)
            return None

    return _redis_client


def build_cache_key(prefix: str, *params) -> str:
    """Join a prefix and its parameters with ':'."""
    return ":".join([prefix] + [str(p) for p in params])


class Cache:
    """JSON cache on top of Redis. Every method is a no-op without a client."""

    def __init__(self, client: Optional[redis.Redis] = None):
        self.client = client

    def get(self, key: str) -> Optional[Any]:
        if not self.client:
            return None
        try:
            value = self.client.get(key)
            if value:
                logger.debug("Cache HIT: %s", key)
                return json.loads(value)
            logger.debug("Cache MISS: %s", key)
            return None
        except (redis.RedisError, json.JSONDecodeError, TypeError) as e:
            logger.warning("Cache read error for key '%s': %s", key, e)
            return None

    def set(self, key: str, value: Any, ttl: int = CACHE_TTL["short"]) -> bool:
        if not self.client:
            return False
        try:
            self.client.set(key, json.dumps(value, default=str), ex=ttl)
            logger.debug("Cache SET: %s (TTL: %ss)", key, ttl)
            return True
        except (redis.RedisError, TypeError, ValueError) as e:
            logger.warning("Cache write error for key '%s': %s", key, e)
            return False

    def delete(self, key: str) -> bool:
        if not self.client:
            return False
        try:
            self.client.delete(key)
            return True
        except redis.RedisError as e:
            logger.warning("Cache delete error for key '%s': %s", key, e)
            return False

    def delete_pattern(self, pattern: str) -> int:
        """Delete every key matching a glob pattern. Returns the number deleted."""
        if not self.client:
            return 0
        try:
            keys = list(self.client.scan_iter(match=pattern, count=100))
            if not keys:
                return 0
            deleted = self.client.delete(*keys)
            logger.debug("Cache DELETE pattern '%s': %s keys", pattern, deleted)
            return deleted
        except redis.RedisError as e:
            logger.warning("Cache pattern delete error for '%s': %s", pattern, e)
            return 0

    def get_or_set(self, key: str, fetcher: Callable[[], Any], ttl: int = CACHE_TTL["short"]) -> Any:
        cached = self.get(key)
        if cached is not None:
            return cached
        value = fetcher()
        self.set(key, value, ttl)
        return value

    def invalidate_user(self, user_id: str) -> int:
        """Drop every cached insight, report and analytics entry of one user."""
        total = 0
        for prefix in CACHE_PREFIXES.values():
            total += self.delete_pattern(f"{prefix}:{user_id}:*")
        if total:
            logger.info("Invalidated %s cache entries for user %s", total, user_id)
        return total

    def is_available(self) -> bool:
        if not self.client:
            return False
        try:
            return bool(self.client.ping())
        except redis.RedisError:
            return False
