"""
Request/job context using contextvars.

Provides task-local context storage for:
- Request ID
- User ID
- Tenant ID
- Scheduler job name
"""

import contextvars
from typing import Any

# Context variables
request_id_var: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "request_id", default=None
)
user_id_var: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "user_id", default=None
)
tenant_id_var: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "tenant_id", default=None
)
job_var: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "job", default=None
)


def set_request_context(
    request_id: str | None = None,
    user_id: str | None = None,
    tenant_id: str | None = None,
    job: str | None = None,
) -> None:
    """Set context variables (only the ones given)."""
    if request_id:
        request_id_var.set(request_id)
    if user_id:
        user_id_var.set(user_id)
    if tenant_id:
        tenant_id_var.set(tenant_id)
    if job:
        job_var.set(job)


def get_request_context() -> dict[str, Any]:
    """Get the non-empty context values as a dictionary."""
    context = {
        "request_id": request_id_var.get(),
        "user_id": user_id_var.get(),
        "tenant_id": tenant_id_var.get(),
        "job": job_var.get(),
    }
    return {key: value for key, value in context.items() if value is not None}


def clear_request_context() -> None:
    """Clear all context variables."""
    request_id_var.set(None)
    user_id_var.set(None)
    tenant_id_var.set(None)
    job_var.set(None)
