"""
Health check endpoints.
"""

from typing import List

from fastapi import APIRouter
from fastapi.responses import JSONResponse
import redis.asyncio as redis
from sqlalchemy import text

from config import prime_oauth_simulated, settings
from database import engine
from services.connectors import list_streaming_providers
from services.content import CONTENT_CLIENTS

router = APIRouter()


async def _database_status() -> str:
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception as e:
        return f"down: {str(e)}"
    return "up"


async def _redis_status() -> str:
    try:
        r = redis.from_url(settings.REDIS_URL)
        try:
            await r.ping()
        finally:
            await r.aclose()
    except Exception as e:
        return f"down: {str(e)}"
    return "up"


def _missing_provider_settings() -> List[str]:
    if prime_oauth_simulated():
        return []
    missing = []
    if not settings.PRIME_CLIENT_SECRET or settings.PRIME_CLIENT_SECRET == "demo-client-secret":
        missing.append("PRIME_CLIENT_SECRET")
    if not settings.PRIME_REDIRECT_URI:
        missing.append("PRIME_REDIRECT_URI")
    return missing


@router.get("/health")
async def health_check():
    """
    Overall status plus the backing stores and provider integration mode.
    Redis is optional; without it rate limiting runs on local counters.
    """
    database = await _database_status()
    cache = await _redis_status()
    return {
        "status": "healthy" if database == "up" and cache == "up" else "degraded",
        "api": "up",
        "database": database,
        "redis": cache,
        "prime_video_oauth": "simulated" if prime_oauth_simulated() else "live",
        "providers": len(list_streaming_providers()),
        "content_sources": sorted(CONTENT_CLIENTS),
    }


@router.get("/health/ready")
async def readiness_check():
    """Kubernetes-style readiness probe."""
    missing = _missing_provider_settings()
    if missing:
        return JSONResponse(
            status_code=503,
            content={"ready": False, "missing": missing},
        )
    return {"ready": True}


@router.get("/health/live")
async def liveness_check():
    """Kubernetes-style liveness probe."""
    return {"alive": True}
