"""
FastAPI application factory.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from engagehub.config import settings
from engagehub.core.database import db_manager
from engagehub.core.error_tracking import error_tracker
from engagehub.core.exceptions import EngageHubError
from engagehub.core.logging_config import get_logger, setup_logging
from engagehub.core.middleware import RequestContextMiddleware
from engagehub.core.performance import track_http_metrics

# Setup logging first
setup_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """Application lifespan events."""
    logger.info(
        "application_starting",
        app_name=settings.app_name,
        version=settings.app_version,
        environment=settings.environment,
        scheduler_mode=settings.scheduler_mode,
    )

    # Initialize services
    db_manager.init()
    if settings.uses_sqlite:
        await db_manager.create_all()
    error_tracker.init()

    # Update Prometheus app info
    from engagehub.core.metrics import app_info
    app_info.info({
        "version": settings.app_version,
        "environment": settings.environment,
    })

    app.state.scheduler = None
    if settings.scheduler_mode == "embedded":
        from engagehub.features.scheduling.scheduler import create_scheduler

        app.state.scheduler = create_scheduler(db_manager.session_factory)
        app.state.scheduler.start()

    logger.info("application_ready")

    yield

    # Cleanup
    logger.info("application_shutting_down")
    if app.state.scheduler is not None:
        await app.state.scheduler.stop()
    await db_manager.close()
    logger.info("application_shutdown_complete")


def create_application() -> FastAPI:
    """Application factory."""

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Multi-tenant social engagement platform: comments, auto-replies and leads",
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
        lifespan=lifespan,
    )

    # Middleware (order matters - last added = outermost)

    @app.middleware("http")
    async def performance_middleware(request: Request, call_next):
        return await track_http_metrics(request, call_next)

    app.add_middleware(RequestContextMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Exception handlers
    @app.exception_handler(EngageHubError)
    async def engagehub_exception_handler(
        request: Request,
        exc: EngageHubError,
    ) -> JSONResponse:
        log = logger.warning if exc.http_status < 500 else logger.error
        log(
            "request_failed",
            path=request.url.path,
            method=request.method,
            kind=exc.kind,
            status_code=exc.http_status,
            error=exc.message,
        )
        return JSONResponse(
            status_code=exc.http_status,
            content={"error": exc.to_dict(include_details=settings.is_development)},
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request,
        exc: RequestValidationError
    ) -> JSONResponse:
        logger.warning(
            "validation_error",
            path=request.url.path,
            errors=exc.errors(),
        )

        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content=jsonable_encoder({"detail": exc.errors()}),
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(
        request: Request,
        exc: Exception,
    ) -> JSONResponse:
        """Global exception handler with error tracking."""

        request_id = getattr(request.state, "request_id", None) or "unknown"

        logger.error(
            "unhandled_exception",
            path=request.url.path,
            method=request.method,
            error=str(exc),
            exc_info=True,
        )

        error_tracker.capture_exception(
            exc,
            context={
                "request_id": request_id,
                "path": request.url.path,
                "method": request.method,
            }
        )

        # Return clean error
        if settings.is_development:
            message = str(exc)
        else:
            message = "An internal error occurred. Please contact support."

        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "error": {"kind": "internal_error", "message": message, "retryable": False},
                "request_id": request_id,
            },
        )

    # Register routers
    from engagehub.api.health_router import router as health_router
    from engagehub.api.metrics_router import router as metrics_router
    from engagehub.api.v1.router import v1_router

    # Health endpoints (no prefix)
    app.include_router(health_router)

    # Metrics endpoint
    if settings.metrics_enabled:
        app.include_router(metrics_router)

    # API routers
    app.include_router(v1_router, prefix="/api")

    @app.get("/", tags=["Root"])
    async def root() -> dict:
        return {
            "message": f"Welcome to {settings.app_name}",
            "version": settings.app_version,
            "environment": settings.environment,
            "docs": "/docs" if settings.is_development else "Disabled in production",
            "health": "/health",
            "metrics": "/metrics" if settings.metrics_enabled else "Disabled",
        }

    logger.info("application_configured")
    return app


app = create_application()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "engagehub.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.reload and settings.is_development,
        log_level=settings.log_level.lower(),
        access_log=False,  # We handle logging ourselves
    )
