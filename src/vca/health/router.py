"""Liveness, readiness and version probes."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from vca.config import get_settings
from vca.database import get_session, ping_database
from vca.redis_client import ping_redis

router = APIRouter()


@router.get("/health")
async def health() -> dict[str, str]:
    return {"status": "healthy"}


@router.get("/ready")
async def readiness(
    db: AsyncSession = Depends(get_session),  # noqa: B008
) -> dict[str, object]:
    """Report each backing service; "degraded" when any of them is unreachable."""
    checks = {
        "database": await ping_database(db),
        "redis": await ping_redis(),
    }
    status = "ready" if all(result == "ok" for result in checks.values()) else "degraded"
    return {"status": status, "checks": checks}


@router.get("/version")
async def version() -> dict[str, str]:
    settings = get_settings()
    return {"version": settings.app_version, "environment": settings.environment}
