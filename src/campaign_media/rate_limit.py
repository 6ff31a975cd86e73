"""Fixed-window rate limiting for upload endpoints."""

import time
from collections.abc import Callable
from dataclasses import dataclass, field

from fastapi import HTTPException, Request, status

from .config import RateLimitConfig

USER_HEADER = "X-User-Id"


@dataclass(eq=False)
class UploadRateLimiter:
    """Per-key request counter reset every ``window_ms``."""

    config: RateLimitConfig
    clock: Callable[[], float] = time.monotonic
    buckets: dict[str, tuple[int, float]] = field(default_factory=dict)

    def key_for(self, request: Request) -> str:
        client_ip = (request.client.host if request.client else None) or "unknown"
        if self.config.key_strategy == "user":
            user_id = request.headers.get(USER_HEADER, "").strip()
            if user_id:
                return f"user:{user_id}"
        return f"ip:{client_ip}"

    def check(self, key: str) -> None:
        now = self.clock()
        window_seconds = self.config.window_ms / 1000
        count, window_start = self.buckets.get(key, (0, now))
        if now - window_start >= window_seconds:
            count, window_start = 0, now
        if count >= self.config.max:
            retry_after = max(1, int(window_start + window_seconds - now))
            raise HTTPException(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                detail={
                    "status": "error",
                    "failure_reason": "rate_limited",
                    "retry_after": retry_after,
                },
                headers={"Retry-After": str(retry_after)},
            )
        self.buckets[key] = (count + 1, window_start)

    def __call__(self, request: Request) -> None:
        """FastAPI dependency form of :meth:`check`."""
        self.check(self.key_for(request))
