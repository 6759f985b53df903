"""
In-memory API metrics.

The collector keeps the last hour of request, error and rate limit records
and derives the monitoring dashboard from them. Alerts are plain log records
at warning or error level.
"""

from __future__ import annotations

import time
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from .logging_config import get_logger

logger = get_logger(__name__)

RETENTION_SECONDS = 60 * 60
ALERT_WINDOW_SECONDS = 15 * 60
SLOW_REQUEST_MS = 5000
ERROR_RATE_ALERT_THRESHOLD = 0.1
ERROR_RATE_MIN_REQUESTS = 10
RATE_LIMIT_ALERT_THRESHOLD = 10
RATE_LIMIT_IP_ALERT_THRESHOLD = 5
TOP_N = 10


@dataclass
class RequestRecord:
    endpoint: str
    method: str
    status_code: int
    response_time_ms: float
    timestamp: float
    ip: Optional[str] = None
    user_agent: Optional[str] = None


@dataclass
class ErrorRecord:
    endpoint: str
    method: str
    status_code: int
    message: str
    timestamp: float
    ip: Optional[str] = None


@dataclass
class RateLimitViolation:
    ip: str
    endpoint: str
    timestamp: float
    user_agent: Optional[str] = None
    limit: Optional[int] = None


@dataclass
class MetricsCollector:
    """Collects request metrics and raises log alerts."""

    clock: Callable[[], float] = time.time
    requests: List[RequestRecord] = field(default_factory=list)
    errors: List[ErrorRecord] = field(default_factory=list)
    violations: List[RateLimitViolation] = field(default_factory=list)

    # -----------------------------------------------------------------
    # Recording
    # -----------------------------------------------------------------

    def record_request(
        self,
        endpoint: str,
        method: str,
        status_code: int,
        response_time_ms: float,
        ip: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> None:
        self._prune()
        self.requests.append(
            RequestRecord(endpoint, method, status_code, response_time_ms, self.clock(), ip, user_agent)
        )
        if response_time_ms > SLOW_REQUEST_MS:
            logger.warning(f"Slow request detected: {method} {endpoint} took {response_time_ms:.0f}ms (ip={ip})")
        self._check_error_rate()

    def record_error(
        self, endpoint: str, method: str, status_code: int, message: str, ip: Optional[str] = None
    ) -> None:
        self._prune()
        self.errors.append(ErrorRecord(endpoint, method, status_code, message, self.clock(), ip))
        logger.info(f"API error recorded: {method} {endpoint} -> {status_code} {message}")

    def record_rate_limit_violation(
        self, ip: str, endpoint: str, user_agent: Optional[str] = None, limit: Optional[int] = None
    ) -> None:
        self._prune()
        self.violations.append(RateLimitViolation(ip, endpoint, self.clock(), user_agent, limit))
        logger.warning(f"Rate limit violation: ip={ip} endpoint={endpoint} limit={limit}")
        self._check_rate_limit_alerts()

    def reset(self) -> None:
        self.requests.clear()
        self.errors.clear()
        self.violations.clear()

    # -----------------------------------------------------------------
    # Alerts
    # -----------------------------------------------------------------

    def _since(self, records: List[Any], window_seconds: float) -> List[Any]:
        cutoff = self.clock() - window_seconds
        return [record for record in records if record.timestamp > cutoff]

    def _prune(self) -> None:
        cutoff = self.clock() - RETENTION_SECONDS
        self.requests = [r for r in self.requests if r.timestamp > cutoff]
        self.errors = [e for e in self.errors if e.timestamp > cutoff]
        self.violations = [v for v in self.violations if v.timestamp > cutoff]

    def _check_error_rate(self) -> None:
        recent = self._since(self.requests, ALERT_WINDOW_SECONDS)
        if len(recent) < ERROR_RATE_MIN_REQUESTS:
            return
        server_errors = [r for r in recent if r.status_code >= 500]
        rate = len(server_errors) / len(recent)
        if rate > ERROR_RATE_ALERT_THRESHOLD:
            logger.error(
                f"HIGH ERROR RATE DETECTED: {rate * 100:.2f}% "
                f"({len(server_errors)}/{len(recent)} requests in {ALERT_WINDOW_SECONDS // 60} minutes)"
            )

    def _check_rate_limit_alerts(self) -> None:
        recent = self._since(self.violations, ALERT_WINDOW_SECONDS)
        if len(recent) < RATE_LIMIT_ALERT_THRESHOLD:
            return
        logger.error(f"HIGH RATE LIMIT VIOLATIONS: {len(recent)} in {ALERT_WINDOW_SECONDS // 60} minutes")
        by_ip: Dict[str, List[RateLimitViolation]] = defaultdict(list)
        for violation in recent:
            by_ip[violation.ip].append(violation)
        for ip, violations in by_ip.items():
            if len(violations) >= RATE_LIMIT_IP_ALERT_THRESHOLD:
                endpoints = sorted({v.endpoint for v in violations})
                logger.error(f"RATE LIMIT ABUSE: ip={ip} violations={len(violations)} endpoints={endpoints}")

    # -----------------------------------------------------------------
    # Dashboard
    # -----------------------------------------------------------------

    def get_dashboard(self, window_minutes: float = 15) -> Dict[str, Any]:
        """Summarize the metrics recorded in the last ``window_minutes``."""
        window = window_minutes * 60
        requests = self._since(self.requests, window)
        errors = self._since(self.errors, window)
        violations = self._since(self.violations, window)

        total = len(requests)
        successful = sum(1 for r in requests if r.status_code < 400)
        failed = total - successful
        error_rate = f"{failed / total * 100:.2f}%" if total else "0.00%"
        average = round(sum(r.response_time_ms for r in requests) / total) if total else 0

        by_endpoint: Dict[str, List[RequestRecord]] = defaultdict(list)
        for record in requests:
            by_endpoint[f"{record.method} {record.endpoint}"].append(record)
        endpoint_stats = [
            {
                "endpoint": key,
                "count": len(records),
                "avgResponseTime": round(sum(r.response_time_ms for r in records) / len(records), 2),
            }
            for key, records in by_endpoint.items()
        ]
        top_endpoints = sorted(endpoint_stats, key=lambda item: item["count"], reverse=True)[:TOP_N]
        slowest = sorted(endpoint_stats, key=lambda item: item["avgResponseTime"], reverse=True)[:TOP_N]

        errors_by_endpoint: Dict[str, List[str]] = defaultdict(list)
        for error in errors:
            errors_by_endpoint[f"{error.method} {error.endpoint}"].append(error.message)
        error_stats = sorted(
            (
                {"endpoint": key, "count": len(messages), "errors": list(dict.fromkeys(messages))}
                for key, messages in errors_by_endpoint.items()
            ),
            key=lambda item: item["count"],
            reverse=True,
        )[:TOP_N]

        violations_by_ip: Dict[str, List[RateLimitViolation]] = defaultdict(list)
        for violation in violations:
            violations_by_ip[violation.ip].append(violation)
        violation_stats = sorted(
            (
                {
                    "ip": ip,
                    "count": len(items),
                    "endpoints": list(dict.fromkeys(v.endpoint for v in items)),
                }
                for ip, items in violations_by_ip.items()
            ),
            key=lambda item: item["count"],
            reverse=True,
        )

        return {
            "summary": {
                "totalRequests": total,
                "successfulRequests": successful,
                "failedRequests": failed,
                "errorRate": error_rate,
                "averageResponseTime": average,
                "rateLimitViolations": len(violations),
            },
            "topEndpoints": top_endpoints,
            "errorsByEndpoint": error_stats,
            "rateLimitViolationsByIp": violation_stats,
            "slowestEndpoints": slowest,
        }

    def health_status(self, window_minutes: float = 5) -> Dict[str, Any]:
        """``healthy``, ``degraded`` (>10% failures) or ``unhealthy`` (>25%)."""
        summary = self.get_dashboard(window_minutes)["summary"]
        rate = float(summary["errorRate"].rstrip("%"))
        status = "healthy"
        if rate > 25:
            status = "unhealthy"
        elif rate > 10:
            status = "degraded"
        return {"status": status, "summary": summary}


metrics_collector = MetricsCollector()
