"""
Health Check Endpoints.

This module provides basic system status endpoints (health, version)
used for monitoring and deployment verification.
"""

from fastapi import APIRouter
from fastapi.responses import PlainTextResponse

from tourbnt import __version__

router = APIRouter()


@router.get(
    "/",
    response_class=PlainTextResponse,
    summary="Welcome",
    description="Greeting used by uptime checks and humans poking at the API.",
    response_description="Plain text greeting.",
)
async def root() -> str:
    return "Hello, this is TourBNT APIs"


@router.get(
    "/health",
    summary="Health Check",
    description="Check the operational status of the API server.",
    response_description="Status object.",
)
async def health_check():
    """
    Health check endpoint.

    Returns a simple status indicator to confirm the server is running and reachable.
    """
    return {"status": "ok"}


@router.get(
    "/version",
    summary="Get Version",
    description="Retrieve version information for the API server.",
    response_description="Version object.",
)
async def version():
    """
    Get API version.

    Returns the current semantic version of the API and the API path version.
    """
    return {"version": __version__, "api_version": "v1"}
