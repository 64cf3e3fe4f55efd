"""Health check endpoints."""

from fastapi import APIRouter, Response, status

from blog_comments.config import get_settings
from blog_comments.core.database import AsyncCassandraConnection
from blog_comments.core.redis import get_redis


router = APIRouter(prefix="/health", tags=["health"])


@router.get("/live")
async def liveness() -> dict[str, str]:
    """Liveness probe - checks if the application is running."""
    return {"status": "alive"}


@router.get("/ready")
async def readiness(response: Response) -> dict[str, str | bool]:
    """Readiness probe - ready once Cassandra is connected.

    Redis is reported but only required with the shared rate limiter.
    """
    settings = get_settings()
    cassandra_ok = AsyncCassandraConnection.is_connected()
    redis_ok = get_redis() is not None
    ready = cassandra_ok and (redis_ok or settings.comment_rate_limit_backend != "redis")

    if not ready:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE

    return {
        "status": "ready" if ready else "not_ready",
        "cassandra": cassandra_ok,
        "redis": redis_ok,
        "environment": settings.environment,
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
