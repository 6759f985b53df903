"""
Middleware modules for the TourBNT API server.

This package contains the request metrics middleware and the per-IP rate
limiters used as route dependencies.
"""

from .metrics_middleware import MetricsMiddleware, client_ip
from .rate_limit import FixedWindowRateLimiter, auth_limiter, general_limiter

__all__ = ["FixedWindowRateLimiter", "MetricsMiddleware", "auth_limiter", "client_ip", "general_limiter"]
