from __future__ import annotations

import pytest
from fastapi import APIRouter, Depends, FastAPI, HTTPException
from fastapi.testclient import TestClient
from starlette.requests import Request

from src.campaign_media.config import RateLimitConfig
from src.campaign_media.rate_limit import UploadRateLimiter


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


def _request(host: str, headers: dict[str, str] | None = None) -> Request:
    raw_headers = [(key.lower().encode(), value.encode()) for key, value in (headers or {}).items()]
    return Request({"type": "http", "client": (host, 5000), "headers": raw_headers})


def test_limit_resets_after_window() -> None:
    clock = FakeClock()
    limiter = UploadRateLimiter(RateLimitConfig(window_ms=1000, max=2), clock=clock)

    limiter.check("ip:1.2.3.4")
    limiter.check("ip:1.2.3.4")
    with pytest.raises(HTTPException) as exc_info:
        limiter.check("ip:1.2.3.4")
    assert exc_info.value.status_code == 429

    clock.now += 1.0
    limiter.check("ip:1.2.3.4")


def test_keys_are_independent() -> None:
    limiter = UploadRateLimiter(RateLimitConfig(window_ms=1000, max=1), clock=FakeClock())

    limiter.check("ip:1.1.1.1")
    limiter.check("ip:2.2.2.2")


def test_key_for_ip_strategy() -> None:
    limiter = UploadRateLimiter(RateLimitConfig(key_strategy="ip"))

    assert limiter.key_for(_request("10.0.0.1", {"X-User-Id": "u1"})) == "ip:10.0.0.1"


def test_key_for_user_strategy_falls_back_to_ip() -> None:
    limiter = UploadRateLimiter(RateLimitConfig(key_strategy="user"))

    assert limiter.key_for(_request("10.0.0.1", {"X-User-Id": "u1"})) == "user:u1"
    assert limiter.key_for(_request("10.0.0.1")) == "ip:10.0.0.1"


def test_limiter_guards_router_as_dependency() -> None:
    limiter = UploadRateLimiter(RateLimitConfig(window_ms=60_000, max=1))
    router = APIRouter(dependencies=[Depends(limiter)])

    @router.post("/ping")
    def ping() -> dict[str, bool]:
        return {"ok": True}

    app = FastAPI()
    app.include_router(router)
    client = TestClient(app)

    assert hash(limiter) == hash(limiter)
    assert client.post("/ping").status_code == 200
    blocked = client.post("/ping")
    assert blocked.status_code == 429
    assert "Retry-After" in blocked.headers
