# Core infrastructure
from discussion_engine.core.context import (
    RequestContext,
    clear_context,
    get_context,
    get_request_id,
    get_user,
    get_user_id,
    set_request_id,
    set_user,
)
from discussion_engine.core.logging import configure_structlog, get_logger


__all__ = [
    "RequestContext",
    "clear_context",
    "configure_structlog",
    "get_context",
    "get_logger",
    "get_request_id",
    "get_user",
    "get_user_id",
    "set_request_id",
    "set_user",
]
