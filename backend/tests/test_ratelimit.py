"""
Tests for the fixed-window rate limiter and the origin guard in front of the relay.
"""

import asyncio
import time
from contextlib import suppress
from unittest.mock import patch

from conftest import make_relay_client
from cors import CORS_REJECTION
from ratelimit import FixedWindowRateLimiter, sweep_forever


class FakeClock:
    def __init__(self, now: int = 1_000_000):
        self.now = now

    def __call__(self) -> int:
        return self.now


# ── Limiter ───────────────────────────────────────────────────────────────


class TestFixedWindowRateLimiter:

    def setup_method(self):
        self.clock = FakeClock()
        self.limiter = FixedWindowRateLimiter(window_ms=60_000, max_requests=3, clock=self.clock)

    def test_allows_up_to_max_requests(self):
        assert all(self.limiter.check("1.2.3.4").allowed for _ in range(3))

    def test_rejects_request_past_max(self):
        for _ in range(3):
            self.limiter.check("1.2.3.4")
        decision = self.limiter.check("1.2.3.4")
        assert not decision.allowed
        assert decision.retry_after == 60

    def test_retry_after_rounds_up(self):
        for _ in range(3):
            self.limiter.check("1.2.3.4")
        self.clock.now += 59_500
        assert self.limiter.check("1.2.3.4").retry_after == 1

    def test_ips_are_counted_separately(self):
        for _ in range(3):
            self.limiter.check("1.2.3.4")
        assert self.limiter.check("5.6.7.8").allowed

    def test_allows_again_after_window(self):
        for _ in range(4):
            self.limiter.check("1.2.3.4")
        # reset_at itself is still inside the window
        self.clock.now += 60_000
        assert not self.limiter.check("1.2.3.4").allowed
        self.clock.now += 1
        assert self.limiter.check("1.2.3.4").allowed

    def test_new_window_counts_from_one(self):
        for _ in range(4):
            self.limiter.check("1.2.3.4")
        self.clock.now += 60_001
        results = [self.limiter.check("1.2.3.4").allowed for _ in range(4)]
        assert results == [True, True, True, False]

    def test_sweep_evicts_only_expired_windows(self):
        self.limiter.check("old")
        self.clock.now += 30_000
        self.limiter.check("fresh")
        self.clock.now += 30_001

        assert self.limiter.sweep() == 1
        assert len(self.limiter) == 1
        assert self.limiter.sweep() == 0


# ── Middleware ────────────────────────────────────────────────────────────


class TestRateLimitMiddleware:

    def test_429_after_max_requests(self, settings, github):
        settings = settings.model_copy(update={"rate_limit_max_requests": 2})
        client = make_relay_client(settings, github)

        assert client.get("/health").status_code == 200
        assert client.get("/health").status_code == 200
        response = client.get("/health")

        assert response.status_code == 429
        body = response.json()
        assert body["error"] == "Too many requests"
        assert 0 < body["retry_after"] <= 60
        assert response.headers["Retry-After"] == str(body["retry_after"])

    def test_rejected_requests_never_reach_github(self, settings, github):
        settings = settings.model_copy(update={"rate_limit_max_requests": 1})
        client = make_relay_client(settings, github)

        client.get("/health")
        response = client.post("/token")

        assert response.status_code == 429
        assert github.requests == []


# ── Origin guard / CORS ───────────────────────────────────────────────────


class TestOriginGuard:

    def test_no_origin_is_allowed(self, relay):
        assert relay.get("/health").status_code == 200

    def test_allowed_origin_gets_cors_headers(self, relay):
        response = relay.get("/health", headers={"Origin": "http://localhost:8080"})
        assert response.status_code == 200
        assert response.headers["access-control-allow-origin"] == "http://localhost:8080"
        assert response.headers["access-control-allow-credentials"] == "true"

    def test_unknown_origin_is_rejected(self, relay, github):
        response = relay.post(
            "/events",
            json={"event_type": "x", "client_payload": {}},
            headers={"Origin": "https://evil.example"},
        )
        assert response.status_code == 403
        assert response.json() == {"error": CORS_REJECTION}
        assert github.requests == []

    def test_preflight_for_allowed_origin(self, relay):
        response = relay.options(
            "/events",
            headers={
                "Origin": "http://localhost:8080",
                "Access-Control-Request-Method": "POST",
            },
        )
        assert response.status_code == 200
        assert "POST" in response.headers["access-control-allow-methods"]


# ── Background sweep ──────────────────────────────────────────────────────


class TestSweepTask:

    def test_sweep_forever_evicts_expired_windows(self):
        clock = FakeClock()
        limiter = FixedWindowRateLimiter(window_ms=1_000, max_requests=3, clock=clock)
        limiter.check("old")
        clock.now += 1_001

        async def scenario():
            task = asyncio.create_task(sweep_forever(limiter, interval=0.01))
            for _ in range(100):
                await asyncio.sleep(0.01)
                if len(limiter) == 0:
                    break
            task.cancel()
            with suppress(asyncio.CancelledError):
                await task
            return task

        task = asyncio.run(scenario())
        assert len(limiter) == 0
        assert task.cancelled()

    def test_lifespan_runs_and_stops_sweeper(self, settings, github):
        settings = settings.model_copy(update={"rate_limit_window_ms": 1})

        with patch("ratelimit.SWEEP_INTERVAL_SECONDS", 0.01):
            with make_relay_client(settings, github) as client:
                limiter = client.app.state.rate_limiter
                sweeper = client.app.state.rate_limit_sweeper

                assert client.get("/health").status_code == 200
                for _ in range(200):
                    if len(limiter) == 0:
                        break
                    time.sleep(0.01)

                assert len(limiter) == 0
                assert not sweeper.done()

        assert sweeper.done()
