"""Health check endpoints."""

from fastapi import APIRouter
from datetime import datetime

from integrations_console.core.backend import backend
from integrations_console.core.cache import query_cache
from integrations_console.core.config import get_settings
from redis.exceptions import RedisError

router = APIRouter()
settings = get_settings()


@router.get("/health")
async def health_check():
    """Basic health check."""
    return {
        "status": "healthy",
        "service": settings.service_name,
        "environment": settings.environment,
        "timestamp": datetime.utcnow().isoformat(),
    }


@router.get("/health/detailed")
async def detailed_health_check():
    """Detailed health check with backend and cache connectivity."""
    health_status = {
        "status": "healthy",
        "service": settings.service_name,
        "environment": settings.environment,
        "timestamp": datetime.utcnow().isoformat(),
        "checks": {
            "backend": {"status": "unknown"},
            "redis": {"status": "unknown"},
        }
    }

    # Backend
    if backend.client is None:
        health_status["checks"]["backend"]["status"] = "disconnected"
        health_status["status"] = "unhealthy"
    elif await backend.ping():
        health_status["checks"]["backend"]["status"] = "healthy"
    else:
        health_status["checks"]["backend"]["status"] = "unhealthy"
        health_status["status"] = "unhealthy"

    # Redis; the console keeps working without it, uncached
    if query_cache.client is None:
        health_status["checks"]["redis"]["status"] = "disabled"
        if health_status["status"] == "healthy":
            health_status["status"] = "degraded"
    else:
        try:
            await query_cache.client.ping()
            health_status["checks"]["redis"]["status"] = "healthy"
        except RedisError as e:
            health_status["checks"]["redis"]["status"] = "unhealthy"
            health_status["checks"]["redis"]["error"] = str(e)
            if health_status["status"] == "healthy":
                health_status["status"] = "degraded"

    return health_status
