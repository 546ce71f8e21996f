"""Health check endpoints."""

from fastapi import APIRouter, Request, Response, status

from learnhub.config import get_settings
from learnhub.core.database import AsyncCassandraConnection


router = APIRouter(prefix="/health", tags=["health"])

# app.state attributes that must be wired before traffic is accepted
REQUIRED_SERVICES = (
    "course_catalog",
    "enrollment_ledger",
    "progress_tracker",
    "purchase_coordinator",
)


@router.get("/live")
async def liveness() -> dict[str, str]:
    """Liveness probe - checks if the application is running."""
    return {"status": "alive"}


@router.get("/ready")
async def readiness(request: Request, response: Response) -> dict[str, object]:
    """Readiness probe.

    Ready once every domain service is wired and, outside the testing
    environment, the Cassandra session is open.
    """
    settings = get_settings()
    services = {
        name: getattr(request.app.state, name, None) is not None
        for name in REQUIRED_SERVICES
    }
    database = settings.is_testing or AsyncCassandraConnection.is_connected()
    ready = database and all(services.values())

    if not ready:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE

    return {
        "status": "ready" if ready else "not_ready",
        "environment": settings.environment,
        "debug": settings.debug,
        "database": database,
        "services": services,
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
