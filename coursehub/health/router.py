"""Health check endpoints."""

from fastapi import APIRouter

from coursehub.config import get_settings
from coursehub.core.database import AsyncCassandraConnection
from coursehub.core.redis import get_redis


router = APIRouter(prefix="/health", tags=["health"])


@router.get("/live")
async def liveness() -> dict[str, str]:
    """Liveness probe - checks if the application is running."""
    return {"status": "alive"}


@router.get("/ready")
async def readiness() -> dict[str, str | bool]:
    """Readiness probe - reports whether the backing stores are connected.

    Redis is optional, so only Cassandra decides the status.
    """
    cassandra = AsyncCassandraConnection.is_connected()
    return {
        "status": "ready" if cassandra else "degraded",
        "cassandra": cassandra,
        "redis": get_redis() is not None,
        "environment": get_settings().environment,
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
