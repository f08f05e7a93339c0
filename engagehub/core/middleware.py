"""
Request correlation middleware.

Every request gets a request id (the caller's ``X-Request-ID`` when it is
well formed, a fresh one otherwise) that is bound into the structlog
context and echoed back. The auth and tenancy dependencies add the user
and tenant to the same context once they resolve them.
"""

import re
import time
import uuid
from typing import Callable

import structlog
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from engagehub.core.context import clear_request_context, set_request_context

logger = structlog.get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"

# Platform proxies and load balancers send their own ids; anything else is replaced
_REQUEST_ID_PATTERN = re.compile(r"^[A-Za-z0-9._:-]{1,128}$")

# Liveness probes and Prometheus scrapes, logged at debug
QUIET_PATH_PREFIXES = ("/health", "/metrics")


def resolve_request_id(claimed: str | None) -> str:
    if claimed and _REQUEST_ID_PATTERN.match(claimed):
        return claimed
    return str(uuid.uuid4())


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Bind request id, user and tenant to the logs of one request."""

    async def dispatch(
        self,
        request: Request,
        call_next: Callable,
    ) -> Response:
        request_id = resolve_request_id(request.headers.get(REQUEST_ID_HEADER))
        path = request.url.path
        quiet = path.startswith(QUIET_PATH_PREFIXES)

        request.state.request_id = request_id
        request.state.tenant_id = None
        request.state.user_id = None
        set_request_context(request_id=request_id)

        started = time.perf_counter()
        if not quiet:
            logger.info(
                "request_started",
                method=request.method,
                path=path,
                client_host=request.client.host if request.client else None,
            )

        try:
            response = await call_next(request)
        except Exception as e:
            logger.error(
                "request_crashed",
                method=request.method,
                path=path,
                duration_ms=round((time.perf_counter() - started) * 1000, 2),
                user_id=request.state.user_id,
                tenant_id=request.state.tenant_id,
                error=str(e),
                exc_info=True,
            )
            raise
        finally:
            clear_request_context()

        duration_ms = round((time.perf_counter() - started) * 1000, 2)
        response.headers[REQUEST_ID_HEADER] = request_id
        response.headers["X-Process-Time"] = str(duration_ms)

        if quiet:
            log = logger.debug
        elif response.status_code >= 500:
            log = logger.warning
        else:
            log = logger.info
        log(
            "request_completed",
            method=request.method,
            path=path,
            status_code=response.status_code,
            duration_ms=duration_ms,
            request_id=request_id,
            user_id=request.state.user_id,
            tenant_id=request.state.tenant_id,
        )
        return response
