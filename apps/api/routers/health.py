"""
Health check endpoints.
"""

import os

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy import text
import redis.asyncio as redis

from config import Settings, get_settings
from database import engine

router = APIRouter()


def _runtime_dir_status(app_settings: Settings) -> str:
    if app_settings.STATE_BACKEND != "file":
        return "not used"
    runtime_dir = app_settings.RUNTIME_DIR
    if os.path.isdir(runtime_dir) and os.access(runtime_dir, os.W_OK):
        return "up"
    if not os.path.exists(runtime_dir) and os.access(os.path.dirname(runtime_dir) or ".", os.W_OK):
        return "up (created on first write)"
    return "down: not writable"


@router.get("/health")
async def health_check(app_settings: Settings = Depends(get_settings)):
    """
    Health check endpoint.
    Reports the clip store, the rate-limit/queue Redis and the runtime state backend.
    """
    health_status = {
        "status": "healthy",
        "api": "up",
        "database": "unknown",
        "redis": "unknown",
        "state_backend": app_settings.STATE_BACKEND,
        "runtime_dir": _runtime_dir_status(app_settings),
    }

    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        health_status["database"] = "up"
    except Exception as e:
        health_status["database"] = f"down: {str(e)}"
        health_status["status"] = "degraded"

    # Redis only backs rate limits and deferred imports; the catalog keeps working without it.
    try:
        r = redis.from_url(app_settings.REDIS_URL)
        await r.ping()
        await r.aclose()
        health_status["redis"] = "up"
    except Exception as e:
        health_status["redis"] = f"down: {str(e)}"

    if health_status["runtime_dir"].startswith("down"):
        health_status["status"] = "degraded"

    return health_status


@router.get("/health/ready")
async def readiness_check(app_settings: Settings = Depends(get_settings)):
    """Kubernetes-style readiness probe."""
    missing = []
    if not (app_settings.ADMIN_KEY or "").strip():
        missing.append("ADMIN_KEY")
    if app_settings.STATE_BACKEND == "file" and not (app_settings.RUNTIME_DIR or "").strip():
        missing.append("RUNTIME_DIR")

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
