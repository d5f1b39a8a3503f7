"""Request-scoped logging context backed by contextvars.

Every request gets a request id; authenticated requests additionally carry the
principal id and role so that log lines emitted anywhere below the route
handler can be attributed without passing them around.
"""

from contextvars import ContextVar
from typing import Any
from uuid import UUID, uuid4


request_id_var: ContextVar[str] = ContextVar("request_id", default="")
user_id_var: ContextVar[str | None] = ContextVar("user_id", default=None)
user_role_var: ContextVar[str | None] = ContextVar("user_role", default=None)
trace_id_var: ContextVar[str | None] = ContextVar("trace_id", default=None)


def generate_request_id() -> str:
    """Generate a new unique request ID."""
    return str(uuid4())


def get_request_id() -> str:
    """Get the current request ID."""
    return request_id_var.get()


def set_request_id(request_id: str | None = None) -> str:
    """Set the request ID for the current context.

    Args:
        request_id: Incoming request ID. A new one is generated when missing.

    Returns:
        The request ID that was set.
    """
    rid = request_id or generate_request_id()
    request_id_var.set(rid)
    return rid


def get_user_id() -> str | None:
    """Get the authenticated principal ID."""
    return user_id_var.get()


def set_user_id(user_id: str | UUID | None) -> None:
    """Bind the authenticated principal ID to the current context."""
    user_id_var.set(str(user_id) if user_id is not None else None)


def get_user_role() -> str | None:
    return user_role_var.get()


def set_user_role(role: str | None) -> None:
    user_role_var.set(role)


def get_trace_id() -> str | None:
    """Get the current trace ID."""
    return trace_id_var.get()


def set_trace_id(trace_id: str | None) -> None:
    """Set the trace ID propagated by an upstream proxy or tracer."""
    trace_id_var.set(trace_id)


def get_context() -> dict[str, Any]:
    """Return the non-empty context values as a dictionary."""
    values = {
        "request_id": get_request_id(),
        "user_id": get_user_id(),
        "user_role": get_user_role(),
        "trace_id": get_trace_id(),
    }
    return {key: value for key, value in values.items() if value}


def clear_context() -> None:
    """Reset all context variables.

    Called at the end of every request so values never leak into the next one
    handled by the same worker.
    """
    request_id_var.set("")
    user_id_var.set(None)
    user_role_var.set(None)
    trace_id_var.set(None)
