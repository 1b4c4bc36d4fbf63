import pytest
from fastapi import HTTPException
from starlette.requests import Request

from promptbench.core import ratelimit
from promptbench.core.ratelimit import FixedWindowLimiter


def make_request(ip: str, path: str = "/api/v1/chat/stream", forwarded: str = "") -> Request:
    headers = [(b"x-forwarded-for", forwarded.encode())] if forwarded else []
    return Request(
        {
            "type": "http",
            "method": "POST",
            "scheme": "http",
            "server": ("testserver", 80),
            "path": path,
            "query_string": b"",
            "headers": headers,
            "client": (ip, 50000),
        }
    )


def test_limit_exceeded_returns_retry_after():
    limiter = FixedWindowLimiter()
    key = ("10.0.0.1", "/x")
    assert limiter.hit(key, limit=2, window_seconds=60, now=100.0) is None
    assert limiter.hit(key, limit=2, window_seconds=60, now=110.0) is None
    assert limiter.hit(key, limit=2, window_seconds=60, now=120.0) == 40


def test_expired_windows_are_evicted():
    limiter = FixedWindowLimiter()
    limiter.hit(("10.0.0.1", "/x"), limit=5, window_seconds=60, now=0.0)
    limiter.hit(("10.0.0.2", "/x"), limit=5, window_seconds=60, now=30.0)
    assert len(limiter) == 2

    limiter.hit(("10.0.0.3", "/x"), limit=5, window_seconds=60, now=61.0)
    # 10.0.0.1 expired, 10.0.0.2 still inside its window
    assert len(limiter) == 2

    limiter.hit(("10.0.0.3", "/x"), limit=5, window_seconds=60, now=200.0)
    assert len(limiter) == 1


def test_window_restarts_after_expiry():
    limiter = FixedWindowLimiter()
    key = ("10.0.0.1", "/x")
    limiter.hit(key, limit=1, window_seconds=10, now=0.0)
    assert limiter.hit(key, limit=1, window_seconds=10, now=5.0) is not None
    assert limiter.hit(key, limit=1, window_seconds=10, now=11.0) is None


def test_enforce_rate_limit_uses_forwarded_client():
    ratelimit.enforce_rate_limit(make_request("127.0.0.1", forwarded="203.0.113.9, 10.0.0.1"), limit=1)
    # Different direct peer, same forwarded client
    with pytest.raises(HTTPException) as exc:
        ratelimit.enforce_rate_limit(make_request("127.0.0.2", forwarded="203.0.113.9"), limit=1)
    assert exc.value.status_code == 429
    assert "Retry-After" in exc.value.headers
    # Another route has its own window
    ratelimit.enforce_rate_limit(make_request("127.0.0.1", path="/other", forwarded="203.0.113.9"), limit=1)
