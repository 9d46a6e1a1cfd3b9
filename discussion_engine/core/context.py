"""Request context management using contextvars.

Each request gets a unique ID plus the identity of the caller, resolved once by
the HTTP layer. Anything further down the call stack (loggers, the
context-backed identity provider) reads them without explicit parameters.
"""

from contextvars import ContextVar
from typing import Any
from uuid import uuid4


# Context variables for request tracking
request_id_var: ContextVar[str] = ContextVar("request_id", default="")
user_id_var: ContextVar[str | None] = ContextVar("user_id", default=None)
user_role_var: ContextVar[str | None] = ContextVar("user_role", default=None)
user_name_var: ContextVar[str | None] = ContextVar("user_name", default=None)


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
    """Get the current user ID."""
    return user_id_var.get()


def set_user(
    user_id: str | None,
    role: str | None = None,
    display_name: str | None = None,
) -> None:
    """Set the calling user for the current context."""
    user_id_var.set(str(user_id) if user_id is not None else None)
    user_role_var.set(role)
    user_name_var.set(display_name)


def get_user() -> tuple[str | None, str | None, str | None]:
    """Get (user_id, role, display_name) for the current context."""
    return user_id_var.get(), user_role_var.get(), user_name_var.get()


def get_context() -> dict[str, Any]:
    """Get logging-relevant context variables as a dictionary."""
    context: dict[str, Any] = {}

    request_id = get_request_id()
    if request_id:
        context["request_id"] = request_id

    user_id = get_user_id()
    if user_id:
        context["user_id"] = user_id

    return context


def clear_context() -> None:
    """Clear all context variables.

    Called at the end of each request to prevent context leakage between
    requests.
    """
    request_id_var.set("")
    user_id_var.set(None)
    user_role_var.set(None)
    user_name_var.set(None)


class RequestContext:
    """Context manager for request scope.

    Usage:
        with RequestContext(user_id="u1", role="admin"):
            await service.delete_comment("c1")
    """

    def __init__(
        self,
        request_id: str | None = None,
        user_id: str | None = None,
        role: str | None = None,
        display_name: str | None = None,
    ) -> None:
        self.request_id = request_id
        self.user_id = user_id
        self.role = role
        self.display_name = display_name
        self._tokens: list[tuple[ContextVar[Any], Any]] = []

    def __enter__(self) -> "RequestContext":
        """Enter context and set variables."""
        request_id = self.request_id or generate_request_id()
        self._tokens.append((request_id_var, request_id_var.set(request_id)))
        if self.user_id is not None:
            self._tokens.append((user_id_var, user_id_var.set(str(self.user_id))))
            self._tokens.append((user_role_var, user_role_var.set(self.role)))
            self._tokens.append((user_name_var, user_name_var.set(self.display_name)))
        return self

    def __exit__(self, *_: object) -> None:
        """Exit context and restore previous values."""
        for var, token in reversed(self._tokens):
            var.reset(token)
        self._tokens.clear()
