"""Health check endpoints."""

from fastapi import APIRouter, Request

from discussion_engine.config import get_settings
from discussion_engine.core.redis import get_redis


router = APIRouter(prefix="/health", tags=["health"])


@router.get("/live")
async def liveness() -> dict[str, str]:
    """Liveness check - the application process is running."""
    return {"status": "alive"}


@router.get("/ready")
async def readiness(request: Request) -> dict[str, str | bool]:
    """Readiness check - the discussion service is wired to a record store."""
    settings = get_settings()
    store_ready = getattr(request.app.state, "discussion_service", None) is not None
    return {
        "status": "ready" if store_ready else "degraded",
        "environment": settings.environment,
        "store_backend": settings.store_backend,
        "store_ready": store_ready,
        "listing_cache": get_redis() is not None,
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
