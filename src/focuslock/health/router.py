"""Health, readiness, and version endpoints."""

from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from focuslock.config import get_settings
from focuslock.database import get_session
from focuslock.dependencies import get_registry
from focuslock.redis_client import check_redis
from focuslock.ws.manager import RoomRegistry

router = APIRouter()


@router.get("/health")
async def health() -> dict[str, str]:
    """Liveness probe — returns 200 if the process is alive."""
    return {"status": "healthy"}


@router.get("/ready")
async def readiness(
    db: AsyncSession = Depends(get_session),  # noqa: B008
    registry: RoomRegistry = Depends(get_registry),  # noqa: B008
) -> dict[str, object]:
    """Readiness probe — checks DB and Redis connectivity, reports live rooms."""
    checks: dict[str, str] = {}

    try:
        result = await db.execute(text("SELECT 1"))
        result.scalar()
        checks["database"] = "ok"
    except Exception as exc:
        checks["database"] = f"error: {exc}"

    checks["redis"] = await check_redis()

    all_ok = all(v == "ok" for v in checks.values())
    return {
        "status": "ready" if all_ok else "degraded",
        "checks": checks,
        "websocket": registry.get_stats(),
    }


@router.get("/version")
async def version() -> dict[str, str]:
    """Return API version and environment."""
    settings = get_settings()
    return {
        "version": settings.app_version,
        "environment": settings.environment,
    }


@router.get("/api/ping")
async def ping() -> dict[str, str]:
    return {"message": "pong", "timestamp": datetime.now(timezone.utc).isoformat()}
