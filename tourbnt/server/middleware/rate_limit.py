"""
Fixed window, per client IP rate limiting.

Limiters are FastAPI dependencies attached to individual routes::

    @router.post("/login", dependencies=[Depends(auth_limiter)])
"""

import time
from typing import Callable, Dict, Optional, Tuple

from fastapi import Request

from tourbnt.core.errors import RATE_LIMIT_EXCEEDED, ApiError
from tourbnt.core.logging_config import get_logger
from tourbnt.core.metrics import MetricsCollector, metrics_collector
from tourbnt.server.core.config import settings

from .metrics_middleware import client_ip

logger = get_logger(__name__)

RATE_LIMIT_MESSAGE = "Too many requests, please try again later."


class FixedWindowRateLimiter:
    """Counts requests per key in fixed windows of ``window_seconds``."""

    def __init__(
        self,
        limit: int,
        window_seconds: int = 900,
        name: str = "general",
        collector: Optional[MetricsCollector] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.limit = limit
        self.window_seconds = window_seconds
        self.name = name
        self.collector = collector or metrics_collector
        self.clock = clock
        self._windows: Dict[str, Tuple[float, int]] = {}
        self._next_prune = 0.0

    def __len__(self) -> int:
        return len(self._windows)

    def _prune(self, now: float) -> None:
        """Drop every window that has expired, at most once per window length."""
        if now < self._next_prune:
            return
        expired = [key for key, (started, _) in self._windows.items() if now - started >= self.window_seconds]
        for key in expired:
            del self._windows[key]
        self._next_prune = now + self.window_seconds

    def check(self, key: str) -> Dict[str, int]:
        """Count one hit for ``key``.

        Returns:
            ``{"allowed", "remaining", "limit", "reset_in"}`` where ``allowed`` is 0 or 1
        """
        now = self.clock()
        self._prune(now)
        started, count = self._windows.get(key, (now, 0))
        if now - started >= self.window_seconds:
            started, count = now, 0
        count += 1
        self._windows[key] = (started, count)
        reset_in = int(self.window_seconds - (now - started))
        if count > self.limit:
            return {"allowed": 0, "remaining": 0, "limit": self.limit, "reset_in": reset_in}
        return {"allowed": 1, "remaining": self.limit - count, "limit": self.limit, "reset_in": reset_in}

    def reset(self) -> None:
        self._windows.clear()
        self._next_prune = 0.0

    async def __call__(self, request: Request) -> None:
        ip = client_ip(request)
        result = self.check(ip)
        if result["allowed"]:
            return
        logger.warning(f"{self.name} rate limit exceeded for {ip} on {request.url.path}")
        self.collector.record_rate_limit_violation(
            ip, request.url.path, request.headers.get("user-agent"), self.limit
        )
        raise ApiError(
            429,
            RATE_LIMIT_MESSAGE,
            RATE_LIMIT_EXCEEDED,
            {"retryAfter": self.window_seconds, "limit": self.limit, "windowMs": self.window_seconds * 1000},
        )


_rate_config = settings.rate_limit

auth_limiter = FixedWindowRateLimiter(
    limit=_rate_config.auth_max_development if settings.is_development else _rate_config.auth_max,
    window_seconds=_rate_config.window_seconds,
    name="auth",
)
general_limiter = FixedWindowRateLimiter(
    limit=_rate_config.general_max,
    window_seconds=_rate_config.window_seconds,
    name="general",
)
