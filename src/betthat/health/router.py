"""Liveness, readiness and version endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from betthat.config import get_settings
from betthat.database import get_session
from betthat.redis_client import get_redis_or_none

router = APIRouter()


@router.get("/health")
async def health() -> dict[str, str]:
    return {"status": "healthy"}


@router.get("/ready")
async def readiness(
    db: AsyncSession = Depends(get_session),  # noqa: B008
    redis: object = Depends(get_redis_or_none),  # noqa: B008
) -> JSONResponse:
    """Check the database and, when configured, Redis.

    The database is required: if it fails the check answers 503. Redis only
    backs rate limiting and event fan-out, so a Redis failure reports
    "degraded" with a 200.
    """
    checks: dict[str, str] = {}

    try:
        await db.execute(text("SELECT 1"))
        checks["database"] = "ok"
    except Exception as exc:
        checks["database"] = f"error: {exc}"

    if redis is None:
        checks["redis"] = "disabled"
    else:
        try:
            await redis.ping()  # type: ignore[attr-defined]
            checks["redis"] = "ok"
        except Exception as exc:
            checks["redis"] = f"error: {exc}"

    if checks["database"] != "ok":
        return JSONResponse(status_code=503, content={"status": "unavailable", "checks": checks})
    status = "ready" if checks["redis"] in ("ok", "disabled") else "degraded"
    return JSONResponse(content={"status": status, "checks": checks})


@router.get("/version")
async def version() -> dict[str, str]:
    settings = get_settings()
    return {
        "name": "betthat",
        "version": settings.app_version,
        "environment": settings.environment,
    }
