# finance_tracker/rate_limit.py
# Sliding-window rate limiting on Redis sorted sets

import logging
import time
import uuid
from dataclasses import dataclass
from typing import Dict, Optional

import redis
from fastapi import Request

logger = logging.getLogger(__name__)


@dataclass
class RateLimitResult:
    success: bool
    limit: int
    remaining: int
    reset: int  # unix timestamp (ms) when the window frees up


class RateLimiter:
    """
    Sliding window limiter. Each request is a member of a sorted set scored by its
    timestamp. Old members are trimmed, the rest counted, then the new one added.
    Fails open when Redis is missing or errors.
    """

    def __init__(self, client: Optional[redis.Redis], max_requests: int, window_seconds: int,
                 prefix: str = "ratelimit"):
        self.client = client
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.prefix = prefix

    def limit(self, identifier: str) -> RateLimitResult:
        now_ms = int(time.time() * 1000)
        window_ms = self.window_seconds * 1000
        reset = now_ms + window_ms

        if not self.client:
            return RateLimitResult(True, self.max_requests, self.max_requests, reset)

        key = f"{self.prefix}:{identifier}"
        try:
            pipe = self.client.pipeline()
            pipe.zremrangebyscore(key, 0, now_ms - window_ms)
            pipe.zcard(key)
            pipe.zadd(key, {f"{now_ms}-{uuid.uuid4().hex[:8]}": now_ms})
            pipe.expire(key, self.window_seconds)
            results = pipe.execute()
        except redis.RedisError as e:
            logger.warning("Rate limiter Redis error, allowing request: %s", e)
            return RateLimitResult(True, self.max_requests, self.max_requests, reset)

        # Count before the current request was added
        count = int(results[1])
        success = count < self.max_requests
        remaining = max(0, self.max_requests - count - 1)
        return RateLimitResult(success, self.max_requests, remaining, reset)


def get_client_ip(request: Request) -> str:
    """Client IP from x-forwarded-for, then x-real-ip, then the socket peer."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip.strip()
    if request.client:
        return request.client.host
    return "unknown"


def rate_limit_headers(result: RateLimitResult) -> Dict[str, str]:
    return {
        "X-RateLimit-Limit": str(result.limit),
        "X-RateLimit-Remaining": str(result.remaining),
        "X-RateLimit-Reset": str(result.reset),
    }
