"""Unit tests for the fixed window rate limiter."""

import pytest
from fastapi import Depends, FastAPI
from httpx import ASGITransport, AsyncClient

from tourbnt.core.metrics import MetricsCollector
from tourbnt.server.exception_handlers import setup_exception_handlers
from tourbnt.server.middleware.rate_limit import RATE_LIMIT_MESSAGE, FixedWindowRateLimiter


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def collector(clock) -> MetricsCollector:
    return MetricsCollector(clock=clock)


@pytest.fixture
def limiter(clock, collector) -> FixedWindowRateLimiter:
    return FixedWindowRateLimiter(limit=2, window_seconds=60, name="test", collector=collector, clock=clock)


class TestCheck:
    def test_counts_down(self, limiter):
        assert limiter.check("1.1.1.1") == {"allowed": 1, "remaining": 1, "limit": 2, "reset_in": 60}
        assert limiter.check("1.1.1.1")["remaining"] == 0
        assert limiter.check("1.1.1.1")["allowed"] == 0

    def test_keys_are_independent(self, limiter):
        limiter.check("a")
        limiter.check("a")
        assert limiter.check("b")["allowed"] == 1

    def test_window_resets(self, limiter, clock):
        for _ in range(3):
            limiter.check("a")
        clock.now = 30
        assert limiter.check("a")["reset_in"] == 30
        clock.now = 60
        assert limiter.check("a") == {"allowed": 1, "remaining": 1, "limit": 2, "reset_in": 60}

    def test_reset(self, limiter):
        for _ in range(3):
            limiter.check("a")
        limiter.reset()
        assert limiter.check("a")["allowed"] == 1

    def test_expired_windows_are_pruned(self, limiter, clock):
        limiter.check("10.0.0.1")
        limiter.check("10.0.0.2")
        assert len(limiter) == 2

        clock.now = 30
        limiter.check("10.0.0.3")
        assert len(limiter) == 3

        clock.now = 75
        limiter.check("10.0.0.4")
        # windows started at 0 expired at 60, the one started at 30 is still open
        assert len(limiter) == 2
        assert limiter.check("10.0.0.3")["remaining"] == 0

    def test_many_clients_do_not_accumulate(self, limiter, clock):
        for second in range(0, 600, 5):
            clock.now = second
            limiter.check(f"192.168.0.{second}")
        assert len(limiter) <= 2 * 60 // 5 + 1


class TestDependency:
    @pytest.fixture
    def app(self, limiter) -> FastAPI:
        app = FastAPI()
        setup_exception_handlers(app)

        @app.get("/limited", dependencies=[Depends(limiter)])
        async def limited():
            return {"ok": True}

        return app

    async def test_429_envelope_and_violation(self, app, collector):
        headers = {"X-Forwarded-For": "203.0.113.7, 10.0.0.1", "User-Agent": "pytest"}
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            assert (await client.get("/limited", headers=headers)).status_code == 200
            assert (await client.get("/limited", headers=headers)).status_code == 200
            response = await client.get("/limited", headers=headers)

        assert response.status_code == 429
        assert response.json() == {
            "success": False,
            "message": RATE_LIMIT_MESSAGE,
            "code": "RATE_LIMIT_EXCEEDED",
            "errors": {"retryAfter": 60, "limit": 2, "windowMs": 60000},
        }
        violation = collector.violations[0]
        assert (violation.ip, violation.endpoint, violation.user_agent, violation.limit) == (
            "203.0.113.7",
            "/limited",
            "pytest",
            2,
        )
