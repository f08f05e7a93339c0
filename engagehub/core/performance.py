"""
Performance monitoring utilities.
"""

import time
from typing import Any, Callable

import structlog
from fastapi import Request

from engagehub.core.metrics import (
    http_request_duration_seconds,
    http_requests_in_progress,
    http_requests_total,
)

logger = structlog.get_logger(__name__)


class PerformanceMonitor:
    """
    Time an async block and log the outcome.

    Usage:
        async with PerformanceMonitor("process_unreplied", tenant_id=tenant.id):
            ...
    """

    def __init__(self, operation_name: str, **tags: Any):
        self.operation_name = operation_name
        self.tags = tags
        self.start_time: float | None = None
        self.end_time: float | None = None

    async def __aenter__(self) -> "PerformanceMonitor":
        self.start_time = time.time()
        logger.debug("operation_started", operation=self.operation_name, **self.tags)
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        self.end_time = time.time()
        duration_ms = round((self.end_time - self.start_time) * 1000, 2)

        if exc_type is None:
            logger.info(
                "operation_completed",
                operation=self.operation_name,
                duration_ms=duration_ms,
                **self.tags,
            )
        else:
            logger.error(
                "operation_failed",
                operation=self.operation_name,
                duration_ms=duration_ms,
                error=str(exc_val),
                **self.tags,
            )

    @property
    def duration_ms(self) -> float | None:
        """Get duration in milliseconds."""
        if self.start_time and self.end_time:
            return (self.end_time - self.start_time) * 1000
        return None


async def track_http_metrics(request: Request, call_next: Callable):
    """
    Middleware to track HTTP metrics.

    Uses the route template (not the raw path) as the endpoint label so
    tenant and comment ids don't explode label cardinality.
    """
    method = request.method
    route = request.scope.get("route")
    endpoint = getattr(route, "path", None) or request.url.path

    http_requests_in_progress.labels(method=method, endpoint=endpoint).inc()
    start_time = time.time()

    try:
        response = await call_next(request)

        # The route is only resolved once routing ran
        route = request.scope.get("route")
        endpoint_label = getattr(route, "path", None) or endpoint

        http_request_duration_seconds.labels(
            method=method,
            endpoint=endpoint_label,
        ).observe(time.time() - start_time)

        http_requests_total.labels(
            method=method,
            endpoint=endpoint_label,
            status_code=response.status_code,
        ).inc()

        return response

    finally:
        http_requests_in_progress.labels(method=method, endpoint=endpoint).dec()
