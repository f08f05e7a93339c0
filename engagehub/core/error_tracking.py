"""
Error tracking and reporting.

Wraps sentry-sdk. When no DSN is configured, exceptions are only logged.
"""

from typing import Any

import sentry_sdk
import structlog
from sentry_sdk.integrations.asyncio import AsyncioIntegration
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration

from engagehub.config import settings

logger = structlog.get_logger(__name__)


class ErrorTracker:
    """Error tracking interface used by HTTP handlers and scheduler sweeps."""

    def __init__(self, dsn: str | None = None):
        self.dsn = dsn
        self.enabled = False

    def init(self) -> None:
        """Initialize Sentry if a DSN is configured."""
        if not self.dsn or self.enabled:
            return

        sentry_sdk.init(
            dsn=self.dsn,
            environment=settings.environment,
            release=settings.app_version,
            traces_sample_rate=settings.sentry_traces_sample_rate,
            integrations=[
                FastApiIntegration(),
                SqlalchemyIntegration(),
                AsyncioIntegration(),
            ],
        )
        self.enabled = True
        logger.info("sentry_initialized")

    def capture_exception(
        self,
        exception: BaseException,
        context: dict[str, Any] | None = None,
    ) -> str | None:
        """
        Capture and report an exception.

        Args:
            exception: The exception to report
            context: Additional context (tenant, job, request, ...)

        Returns:
            Event ID from Sentry (or None when disabled)
        """
        if not self.enabled:
            logger.error(
                "exception_captured",
                exception=str(exception),
                exception_type=type(exception).__name__,
                context=context,
            )
            return None

        with sentry_sdk.new_scope() as scope:
            for key, value in (context or {}).items():
                scope.set_extra(key, value)
            return sentry_sdk.capture_exception(exception)


# Global error tracker instance
error_tracker = ErrorTracker(dsn=settings.sentry_dsn)
