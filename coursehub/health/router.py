"""Health check endpoints."""

from typing import Any

from fastapi import APIRouter, Response, status

from coursehub.config import get_settings
from coursehub.core.database import AsyncCassandraConnection


router = APIRouter(prefix="/health", tags=["health"])


@router.get("/live")
async def liveness() -> dict[str, str]:
    """Liveness probe - checks if the application is running."""
    return {"status": "alive"}


@router.get("/ready")
async def readiness(response: Response) -> dict[str, Any]:
    """Readiness probe.

    Not ready (503) until the Cassandra session is up. Storage and email are
    reported but optional: without them uploads fail and refund
    notifications are skipped.
    """
    settings = get_settings()
    database = AsyncCassandraConnection.is_connected()
    if not database:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    return {
        "status": "ready" if database else "unavailable",
        "environment": settings.environment,
        "dependencies": {
            "database": database,
            "storage": settings.firebase_configured,
            "email": settings.email_configured,
        },
        "refund_window_days": settings.refund_window_days,
    }


@router.get("")
async def health() -> dict[str, str]:
    """General health check endpoint."""
    settings = get_settings()
    return {
        "status": "healthy",
        "app_name": settings.app_name,
        "version": settings.app_version,
        "environment": settings.environment,
    }
