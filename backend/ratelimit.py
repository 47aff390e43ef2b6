"""
Fixed-window, per-IP rate limiting for the relay.

Each client IP gets a counter and a window end (reset_at). The first request
after the window ends starts a new window with count 1. Once the count goes
past max_requests, requests are rejected with the seconds left until reset_at.

Entries are only ever touched from the request middleware, plus sweep(), which
a background task runs every SWEEP_INTERVAL_SECONDS to drop expired windows.
"""

import asyncio
import logging
import math
import threading
import time
from dataclasses import dataclass
from typing import Callable, Optional

from fastapi import Request
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)

SWEEP_INTERVAL_SECONDS = 60


def _now_ms() -> int:
    return int(time.time() * 1000)


@dataclass
class RateWindow:
    count: int
    reset_at: int       # epoch ms


@dataclass(frozen=True)
class RateDecision:
    allowed: bool
    retry_after: int = 0    # seconds, only meaningful when rejected


class FixedWindowRateLimiter:
    def __init__(
        self,
        window_ms: int,
        max_requests: int,
        clock: Optional[Callable[[], int]] = None,
    ) -> None:
        self.window_ms = window_ms
        self.max_requests = max_requests
        self._clock = clock or _now_ms
        self._clients: dict[str, RateWindow] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._clients)

    def check(self, key: str) -> RateDecision:
        now = self._clock()
        with self._lock:
            window = self._clients.get(key)
            if window is None or now > window.reset_at:
                self._clients[key] = RateWindow(count=1, reset_at=now + self.window_ms)
                return RateDecision(allowed=True)

            window.count += 1
            if window.count > self.max_requests:
                return RateDecision(
                    allowed=False,
                    retry_after=math.ceil((window.reset_at - now) / 1000),
                )
            return RateDecision(allowed=True)

    def sweep(self) -> int:
        """Drop expired windows. Returns how many were evicted."""
        now = self._clock()
        with self._lock:
            expired = [key for key, w in self._clients.items() if now > w.reset_at]
            for key in expired:
                del self._clients[key]
        return len(expired)


def client_ip(request: Request) -> str:
    return request.client.host if request.client else "unknown"


def rate_limit_middleware(limiter: FixedWindowRateLimiter):
    async def middleware(request: Request, call_next):
        decision = limiter.check(client_ip(request))
        if not decision.allowed:
            logger.info(
                "Rate limit hit for %s, retry in %ss", client_ip(request), decision.retry_after
            )
            return JSONResponse(
                status_code=429,
                content={"error": "Too many requests", "retry_after": decision.retry_after},
                headers={"Retry-After": str(decision.retry_after)},
            )
        return await call_next(request)

    return middleware


async def sweep_forever(
    limiter: FixedWindowRateLimiter,
    interval: Optional[float] = None,
) -> None:
    interval = SWEEP_INTERVAL_SECONDS if interval is None else interval
    while True:
        await asyncio.sleep(interval)
        evicted = limiter.sweep()
        if evicted:
            logger.debug("Rate limiter evicted %d expired windows", evicted)
