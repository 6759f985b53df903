"""
Metrics Middleware for FastAPI.

Every request is timed and recorded in the in-memory metrics collector:
- Request/response logging (and Logfire, when enabled)
- Response time in the ``X-Process-Time`` header
- Error records for 4xx and 5xx responses
"""

import time
from typing import Callable

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from tourbnt.core.logging_config import get_logger
from tourbnt.core.metrics import MetricsCollector, metrics_collector
from tourbnt.core.monitoring import log_api_request

logger = get_logger(__name__)


def client_ip(request: Request) -> str:
    """Best effort client address, honouring reverse proxy headers."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip
    if request.client and request.client.host:
        return request.client.host
    return "unknown"


class MetricsMiddleware(BaseHTTPMiddleware):
    """Middleware recording request metrics."""

    def __init__(self, app, collector: MetricsCollector = metrics_collector) -> None:
        super().__init__(app)
        self.collector = collector

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """
        Process the request and record its metrics.

        Args:
            request: The incoming HTTP request
            call_next: The next middleware/handler

        Returns:
            The HTTP response
        """
        start_time = time.time()
        method = request.method
        path = request.url.path
        ip = client_ip(request)
        user_agent = request.headers.get("user-agent")

        try:
            response = await call_next(request)
        except Exception as e:
            duration_ms = (time.time() - start_time) * 1000
            logger.error(
                f"API request failed: {method} {path}",
                exc_info=True,
                extra={"method": method, "path": path, "duration_ms": duration_ms, "error": str(e)},
            )
            self.collector.record_request(path, method, 500, duration_ms, ip, user_agent)
            self.collector.record_error(path, method, 500, str(e), ip)
            log_api_request(method=method, path=path, status_code=500, duration_ms=duration_ms)
            raise

        duration_ms = (time.time() - start_time) * 1000
        status_code = response.status_code
        self.collector.record_request(path, method, status_code, duration_ms, ip, user_agent)
        if status_code >= 400:
            message = getattr(request.state, "error_message", None) or f"HTTP {status_code}"
            self.collector.record_error(path, method, status_code, message, ip)

        log_api_request(method=method, path=path, status_code=status_code, duration_ms=duration_ms)
        response.headers["X-Process-Time"] = f"{duration_ms:.2f}"
        return response
