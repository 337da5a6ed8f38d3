"""
Fixed-window rate limiting for `/api/` routes.

Counters live in process memory: one window per client key, starting at the
key's first request. They are lost on restart.

Response headers follow the IETF RateLimit header fields draft:
- RateLimit-Limit: requests allowed per window
- RateLimit-Remaining: requests left in the current window
- RateLimit-Reset: seconds until the window resets
"""

from __future__ import annotations

import math
import time
from collections.abc import Callable
from dataclasses import dataclass

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.types import ASGIApp

from . import network

TOO_MANY_REQUESTS_MESSAGE = "Too many requests, please try again later."


@dataclass(frozen=True)
class RateLimitResult:
    allowed: bool
    limit: int
    remaining: int
    reset_after: float

    def headers(self) -> dict[str, str]:
        return {
            "RateLimit-Limit": str(self.limit),
            "RateLimit-Remaining": str(self.remaining),
            "RateLimit-Reset": str(max(0, math.ceil(self.reset_after))),
        }


@dataclass
class _Window:
    started_at: float
    count: int = 0


class FixedWindowRateLimiter:
    def __init__(
        self,
        *,
        limit: int = 60,
        window_seconds: float = 60,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if limit <= 0 or window_seconds <= 0:
            raise ValueError("limit and window_seconds must be positive.")
        self.limit = limit
        self.window_seconds = window_seconds
        self._clock = clock
        self._windows: dict[str, _Window] = {}
        self._last_prune = clock()

    def hit(self, key: str) -> RateLimitResult:
        """
        Count one request for `key` and report whether it is allowed.
        """
        now = self._clock()
        self._prune(now)

        window = self._windows.get(key)
        if window is None or now - window.started_at >= self.window_seconds:
            window = _Window(started_at=now)
            self._windows[key] = window
        window.count += 1

        return RateLimitResult(
            allowed=window.count <= self.limit,
            limit=self.limit,
            remaining=max(0, self.limit - window.count),
            reset_after=window.started_at + self.window_seconds - now,
        )

    def reset(self, key: str | None = None) -> None:
        if key is None:
            self._windows.clear()
        else:
            self._windows.pop(key, None)

    def __len__(self) -> int:
        return len(self._windows)

    def _prune(self, now: float) -> None:
        # Sweep expired windows at most once per window length.
        if now - self._last_prune < self.window_seconds:
            return
        self._last_prune = now
        expired = [k for k, w in self._windows.items() if now - w.started_at >= self.window_seconds]
        for k in expired:
            del self._windows[k]


class RateLimitMiddleware(BaseHTTPMiddleware):
    def __init__(
        self,
        app: ASGIApp,
        *,
        limiter: FixedWindowRateLimiter,
        path_prefix: str = "/api/",
        trust_proxy: bool = True,
    ) -> None:
        super().__init__(app)
        self.limiter = limiter
        self.path_prefix = path_prefix
        self.trust_proxy = trust_proxy

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        if not request.url.path.startswith(self.path_prefix):
            return await call_next(request)

        key = network.client_address(request, trust_proxy=self.trust_proxy) or "unknown"
        result = self.limiter.hit(key)
        headers = result.headers()

        if not result.allowed:
            headers["Retry-After"] = headers["RateLimit-Reset"]
            return JSONResponse(
                {"error": TOO_MANY_REQUESTS_MESSAGE},
                status_code=429,
                headers=headers,
            )

        response = await call_next(request)
        for name, value in headers.items():
            response.headers[name] = value
        return response
