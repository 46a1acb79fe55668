"""Health check endpoints for liveness and readiness."""

from __future__ import annotations

from fastapi import APIRouter, HTTPException, Request, status
from loguru import logger
from redis.exceptions import RedisError

router = APIRouter()


def _redis_ready(app) -> bool:
    """Return True if the shared Redis client answers a ping."""
    client = getattr(app.state, "redis_client", None)
    if client is None:
        return False
    try:
        return bool(client.ping())
    except (RedisError, OSError) as exc:
        logger.warning("Readiness ping failed: {}", exc)
        return False


@router.get("/health/live", status_code=status.HTTP_200_OK)
async def live() -> dict[str, str]:
    """Liveness probe that always succeeds."""
    return {"status": "ok"}


@router.get("/health/ready")
async def ready(request: Request) -> dict[str, str]:
    """Readiness probe that verifies the permission store is reachable."""
    app = request.app
    if getattr(app.state, "ready", False) and _redis_ready(app):
        return {"status": "ok"}
    raise HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="not ready"
    )
