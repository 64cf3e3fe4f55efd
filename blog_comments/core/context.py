"""Request context management using contextvars.

Each request gets a unique ID plus the resolved caller principal (id and role),
so every log line emitted while handling a submission or a moderation action
carries who did it without passing the principal around explicitly.
"""

from contextvars import ContextVar, Token
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
        request_id: Optional request ID. If not provided, generates a new one.

    Returns:
        The request ID that was set.
    """
    rid = request_id or generate_request_id()
    request_id_var.set(rid)
    return rid


def get_user_id() -> str | None:
    """Get the current caller ID."""
    return user_id_var.get()


def set_principal(user_id: str | UUID | None, role: str | None = None) -> None:
    """Record the resolved caller for the current context."""
    user_id_var.set(str(user_id) if user_id is not None else None)
    user_role_var.set(role)


def set_trace_id(trace_id: str | None) -> None:
    """Set the trace ID from distributed tracing headers."""
    trace_id_var.set(trace_id)


def get_context() -> dict[str, Any]:
    """Get all non-empty context variables as a dictionary."""
    values = {
        "request_id": request_id_var.get(),
        "user_id": user_id_var.get(),
        "user_role": user_role_var.get(),
        "trace_id": trace_id_var.get(),
    }
    return {key: value for key, value in values.items() if value}


def clear_context() -> None:
    """Clear all context variables.

    Called at the end of each request so values never leak between requests.
    """
    request_id_var.set("")
    user_id_var.set(None)
    user_role_var.set(None)
    trace_id_var.set(None)


class RequestContext:
    """Context manager binding a request scope outside of HTTP handling.

    Usage:
        with RequestContext(user_id=moderator_id, role="admin"):
            await workflow.bulk_moderate(...)
    """

    def __init__(
        self,
        request_id: str | None = None,
        user_id: str | UUID | None = None,
        role: str | None = None,
    ) -> None:
        self.request_id = request_id
        self.user_id = user_id
        self.role = role
        self._tokens: list[tuple[ContextVar[Any], Token[Any]]] = []

    def __enter__(self) -> "RequestContext":
        """Enter context and set variables."""
        self._tokens.append(
            (request_id_var, request_id_var.set(self.request_id or generate_request_id()))
        )
        if self.user_id is not None:
            self._tokens.append((user_id_var, user_id_var.set(str(self.user_id))))
        if self.role is not None:
            self._tokens.append((user_role_var, user_role_var.set(self.role)))
        return self

    def __exit__(self, *_: object) -> None:
        """Exit context and restore previous values."""
        for var, token in reversed(self._tokens):
            var.reset(token)
        self._tokens.clear()
