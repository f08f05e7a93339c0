"""
Health check endpoints for monitoring and orchestration.

Provides:
- Liveness probe: Is the app running?
- Readiness probe: Can the app serve traffic?
- Detailed health check: database, scheduler and Celery workers
"""

import time
from typing import Any

import structlog
from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy import text

from engagehub.config import settings
from engagehub.core.database import db_manager

logger = structlog.get_logger(__name__)

router = APIRouter(tags=["Health"])


async def _check_database() -> dict[str, Any]:
    start = time.perf_counter()
    try:
        async with db_manager.session_factory() as db:
            await db.execute(text("SELECT 1"))
    except Exception as e:
        logger.warning("health_database_unhealthy", error=str(e))
        return {"status": "unhealthy", "error": str(e)}
    return {
        "status": "healthy",
        "response_time_ms": round((time.perf_counter() - start) * 1000, 2),
    }


def _scheduler_state(request: Request) -> dict[str, Any]:
    scheduler = getattr(request.app.state, "scheduler", None)
    if scheduler is None:
        return {"status": "disabled", "mode": settings.scheduler_mode}
    return {"status": "running" if scheduler.started else "stopped", "jobs": scheduler.state()["jobs"]}


@router.get("/health/live")
async def liveness() -> dict:
    """
    Liveness probe.

    Returns:
        200: Application is running
    """
    return {"status": "alive"}


@router.get("/health/ready")
async def readiness(request: Request) -> JSONResponse:
    """
    Readiness probe.

    Checks:
    - Database connectivity
    - Scheduler state (reported, not gating)

    Returns:
        200: Ready to serve traffic
        503: Not ready (database unavailable)
    """
    database = await _check_database()
    is_ready = database["status"] == "healthy"

    status_code = status.HTTP_200_OK if is_ready else status.HTTP_503_SERVICE_UNAVAILABLE
    return JSONResponse(
        status_code=status_code,
        content={
            "status": "ready" if is_ready else "not_ready",
            "checks": {
                "database": database,
                "scheduler": _scheduler_state(request),
            },
        },
    )


@router.get("/health")
async def health(request: Request) -> dict:
    """Detailed health check with dependency status."""
    checks: dict[str, Any] = {
        "database": await _check_database(),
        "scheduler": _scheduler_state(request),
    }
    overall_status = "healthy" if checks["database"]["status"] == "healthy" else "degraded"

    if settings.scheduler_mode == "celery":
        try:
            from engagehub.core.celery_app import celery_app

            stats = celery_app.control.inspect(timeout=1.0).stats()
            checks["celery"] = {
                "status": "healthy" if stats else "degraded",
                "worker_count": len(stats or {}),
            }
        except Exception as e:
            checks["celery"] = {"status": "unknown", "error": str(e)}

    return {
        "status": overall_status,
        "version": settings.app_version,
        "environment": settings.environment,
        "checks": checks,
    }
