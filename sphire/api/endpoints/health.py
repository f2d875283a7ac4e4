"""Liveness and readiness probes for the store API."""
from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from sphire.core.config import settings
from sphire.core.database import get_db
from sphire.core.redis import get_redis, RedisClient

router = APIRouter()


async def probe_database(db: AsyncSession) -> str:
    try:
        await db.execute(text("SELECT 1"))
    except Exception as e:
        return f"unhealthy: {e}"
    return "healthy"


async def probe_cache(redis: RedisClient) -> str:
    try:
        reachable = await redis.ping()
    except Exception as e:
        return f"unhealthy: {e}"
    return "healthy" if reachable else "unavailable"


@router.get("/health")
async def health_check():
    return {"status": "healthy", "version": settings.APP_VERSION}


@router.get("/health/ready")
async def readiness_check(
    db: AsyncSession = Depends(get_db),
    redis: RedisClient = Depends(get_redis),
):
    """
    Ready when the database answers.

    Redis only holds the catalog cache and login counters, so losing it
    reports "degraded" and the API keeps serving from the database.
    """
    checks = {
        "database": await probe_database(db),
        "redis": await probe_cache(redis),
    }

    if checks["database"] != "healthy":
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"status": "unhealthy", "checks": checks},
        )

    overall = "healthy" if checks["redis"] == "healthy" else "degraded"
    return {"status": overall, "checks": checks}


@router.get("/health/live")
async def liveness_check():
    return {"status": "alive"}
