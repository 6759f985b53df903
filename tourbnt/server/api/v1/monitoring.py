"""
Monitoring Endpoints.

Health and traffic figures from the in-memory metrics collector, plus the
normalization cache report.
"""

from __future__ import annotations

from fastapi import APIRouter, Query, status
from fastapi.responses import JSONResponse

from tourbnt.core.database.base import utc_now
from tourbnt.core.logging_config import get_logger
from tourbnt.core.metrics import metrics_collector
from tourbnt.core.normalize import clear_normalization_cache, get_performance_report
from tourbnt.core.responses import success_response
from tourbnt.server.services.deps import AdminUser

logger = get_logger(__name__)

router = APIRouter(tags=["monitoring"])


@router.get(
    "/health",
    summary="API Health",
    description="Health derived from the error rate of the last 5 minutes: "
    "healthy, degraded (>10% failures) or unhealthy (>25%).",
    response_description="`{status, timestamp, metrics}`",
    responses={503: {"description": "Degraded or unhealthy"}},
)
async def api_health():
    health = metrics_collector.health_status(window_minutes=5)
    body = {"status": health["status"], "timestamp": utc_now().isoformat(), "metrics": health["summary"]}
    if health["status"] != "healthy":
        logger.warning(f"Health check reports {health['status']}: error rate {health['summary']['errorRate']}")
        return JSONResponse(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, content=body)
    return body


@router.get(
    "/dashboard",
    summary="Metrics Dashboard",
    description="Request, error and rate limit figures for the last `window` minutes.",
    response_description="Summary, top and slowest endpoints, errors and rate limit violations.",
)
async def dashboard(admin: AdminUser, window: int = Query(default=15, ge=1, le=60, description="Minutes")):
    return success_response(metrics_collector.get_dashboard(window), "Dashboard metrics retrieved successfully")


@router.get(
    "/performance/normalization",
    summary="Normalization Performance",
    description="Cache statistics and tuning recommendations for document normalization.",
    response_description="`{cache, normalization, recommendations}`",
)
async def normalization_report(admin: AdminUser):
    return success_response(get_performance_report(), "Normalization performance report retrieved successfully")


@router.post(
    "/performance/normalization/reset",
    summary="Reset Normalization Cache",
    description="Clear the normalization cache and its counters.",
    response_description="Confirmation message.",
)
async def reset_normalization(admin: AdminUser):
    clear_normalization_cache()
    logger.info(f"Normalization cache cleared by {admin.id}")
    return success_response(None, "Normalization cache cleared")
