# finance_tracker/tests/test_cache.py
# Tests for the Redis-backed cache and rate limiter, with Redis mocked out

import json
from unittest.mock import MagicMock

import redis
from fastapi import Request
from fastapi.testclient import TestClient

from finance_tracker.cache import Cache, build_cache_key
from finance_tracker.dependencies import get_redis
from finance_tracker.main import app
from finance_tracker.rate_limit import RateLimiter, get_client_ip, rate_limit_headers


def test_build_cache_key():
    assert build_cache_key("insights", "u1", "month") == "insights:u1:month"

# ===== CACHE =====

def test_cache_without_client_is_a_no_op():
    cache = Cache(None)
    assert cache.get("k") is None
    assert cache.set("k", {"a": 1}) is False
    assert cache.invalidate_user("u1") == 0
    assert cache.is_available() is False
    assert cache.get_or_set("k", lambda: {"fresh": True}) == {"fresh": True}


def test_cache_round_trip_uses_json_and_ttl():
    client = MagicMock()
    cache = Cache(client)

    assert cache.set("reports:u1:month:all", {"total": 5}, 3600) is True
    client.set.assert_called_once_with("reports:u1:month:all", json.dumps({"total": 5}), ex=3600)

    client.get.return_value = '{"total": 5}'
    assert cache.get("reports:u1:month:all") == {"total": 5}


def test_get_or_set_only_fetches_on_miss():
    client = MagicMock()
    client.get.return_value = None
    fetcher = MagicMock(return_value={"n": 1})
    cache = Cache(client)

    assert cache.get_or_set("k", fetcher, 60) == {"n": 1}
    fetcher.assert_called_once()
    client.set.assert_called_once()

    client.get.return_value = '{"n": 2}'
    assert cache.get_or_set("k", fetcher, 60) == {"n": 2}
    fetcher.assert_called_once()


def test_invalidate_user_deletes_every_prefix():
    client = MagicMock()
    client.scan_iter.side_effect = lambda match, count: iter([match.replace("*", "x")])
    client.delete.return_value = 1
    cache = Cache(client)

    assert cache.invalidate_user("u1") == 3
    patterns = [c.kwargs["match"] for c in client.scan_iter.call_args_list]
    assert patterns == ["insights:u1:*", "reports:u1:*", "analytics:u1:*"]


def test_cache_fails_open_on_redis_errors():
    client = MagicMock()
    client.get.side_effect = redis.ConnectionError("down")
    client.set.side_effect = redis.ConnectionError("down")
    client.scan_iter.side_effect = redis.ConnectionError("down")
    client.ping.side_effect = redis.ConnectionError("down")
    cache = Cache(client)

    assert cache.get("k") is None
    assert cache.set("k", 1) is False
    assert cache.delete_pattern("k*") == 0
    assert cache.is_available() is False

# ===== RATE LIMITER =====

def _pipeline_returning(count):
    client = MagicMock()
    pipe = client.pipeline.return_value
    pipe.execute.return_value = [0, count, 1, True]
    return client, pipe


def test_rate_limiter_allows_under_limit():
    client, pipe = _pipeline_returning(3)
    result = RateLimiter(client, max_requests=5, window_seconds=10, prefix="ratelimit:read").limit("1.2.3.4")

    assert result.success is True
    assert result.limit == 5
    assert result.remaining == 1
    key = pipe.zcard.call_args.args[0]
    assert key == "ratelimit:read:1.2.3.4"
    pipe.expire.assert_called_once_with(key, 10)


def test_rate_limiter_blocks_at_limit():
    client, _ = _pipeline_returning(5)
    result = RateLimiter(client, max_requests=5, window_seconds=10).limit("1.2.3.4")
    assert result.success is False
    assert result.remaining == 0


def test_rate_limiter_fails_open():
    client = MagicMock()
    client.pipeline.return_value.execute.side_effect = redis.TimeoutError("slow")
    assert RateLimiter(client, 5, 10).limit("ip").success is True
    assert RateLimiter(None, 5, 10).limit("ip").success is True


def _request(headers, peer="10.0.0.9"):
    return Request({
        "type": "http",
        "headers": [(k.encode(), v.encode()) for k, v in headers.items()],
        "client": (peer, 5000),
    })


def test_client_ip_prefers_forwarded_then_real_ip_then_peer():
    both = {"x-forwarded-for": "203.0.113.7, 10.0.0.1", "x-real-ip": "198.51.100.2"}
    assert get_client_ip(_request(both)) == "203.0.113.7"
    assert get_client_ip(_request({"x-real-ip": "198.51.100.2"})) == "198.51.100.2"
    assert get_client_ip(_request({})) == "10.0.0.9"


def test_rate_limit_headers():
    client, _ = _pipeline_returning(0)
    headers = rate_limit_headers(RateLimiter(client, 30, 10).limit("ip"))
    assert headers["X-RateLimit-Limit"] == "30"
    assert headers["X-RateLimit-Remaining"] == "29"
    assert int(headers["X-RateLimit-Reset"]) > 0


def test_endpoint_answers_429_when_limited(client: TestClient, auth_headers):
    redis_client, _ = _pipeline_returning(1000)
    app.dependency_overrides[get_redis] = lambda: redis_client

    response = client.get("/transactions/", headers=auth_headers)
    assert response.status_code == 429
    assert response.json() == {"detail": "Too many requests. Please try again later."}
    assert response.headers["X-RateLimit-Remaining"] == "0"


def test_endpoint_sets_rate_limit_headers(client: TestClient, auth_headers):
    redis_client, _ = _pipeline_returning(0)
    redis_client.scan_iter.return_value = iter([])
    app.dependency_overrides[get_redis] = lambda: redis_client

    response = client.get("/transactions/", headers=auth_headers)
    assert response.status_code == 200
    assert response.headers["X-RateLimit-Limit"] == "30"
