"""Health check endpoints."""

from fastapi import APIRouter, Request

from learnhub.config import get_settings


router = APIRouter(prefix="/health", tags=["health"])


@router.get("/live")
async def liveness() -> dict[str, str]:
    """Liveness check - the process is up."""
    return {"status": "alive"}


@router.get("/ready")
async def readiness(request: Request) -> dict[str, str | bool]:
    """Readiness check - reports which backends the app is running with."""
    settings = get_settings()
    connection = getattr(request.app.state, "cassandra", None)
    return {
        "status": "ready",
        "environment": settings.environment,
        "database": connection is not None and connection.is_connected(),
        "redis": getattr(request.app.state, "redis", None) is not None,
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
