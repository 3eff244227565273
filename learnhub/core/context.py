"""Request-scoped logging context backed by contextvars.

Every request carries a request ID, and optionally the authenticated user ID
and an upstream trace ID. The logging processors read these values so that
log lines emitted deep inside a service call are still attributable.
"""

from contextvars import ContextVar
from typing import Any
from uuid import UUID, uuid4


request_id_var: ContextVar[str] = ContextVar("request_id", default="")
user_id_var: ContextVar[str | None] = ContextVar("user_id", default=None)
trace_id_var: ContextVar[str | None] = ContextVar("trace_id", default=None)


def generate_request_id() -> str:
    """Generate a new unique request ID."""
    return str(uuid4())


def get_request_id() -> str:
    """Get the current request ID."""
    return request_id_var.get()


def set_request_id(request_id: str | None = None) -> str:
    """Set the request ID, generating one when none is supplied.

    Returns:
        The request ID that was set.
    """
    rid = request_id or generate_request_id()
    request_id_var.set(rid)
    return rid


def set_user_id(user_id: str | UUID | None) -> None:
    """Set the authenticated user ID for the current context."""
    user_id_var.set(str(user_id) if user_id is not None else None)


def set_trace_id(trace_id: str | None) -> None:
    """Set the trace ID received from distributed tracing headers."""
    trace_id_var.set(trace_id)


def get_context() -> dict[str, Any]:
    """Return the non-empty context values as a dictionary."""
    context: dict[str, Any] = {}

    request_id = get_request_id()
    if request_id:
        context["request_id"] = request_id

    user_id = user_id_var.get()
    if user_id:
        context["user_id"] = user_id

    trace_id = trace_id_var.get()
    if trace_id:
        context["trace_id"] = trace_id

    return context


def clear_context() -> None:
    """Reset all context variables at the end of a request."""
    request_id_var.set("")
    user_id_var.set(None)
    trace_id_var.set(None)

