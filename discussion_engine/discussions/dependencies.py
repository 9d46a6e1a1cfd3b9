"""FastAPI dependencies for the discussions API.

Provides dependency injection for:
- Discussion service
- Caller identity from the bearer token
- Result to HTTP error conversion
"""

from typing import Annotated, TypeVar

from fastapi import Depends, HTTPException, Request, status
from jose import JWTError

from discussion_engine.auth.security import caller_from_token
from discussion_engine.core.context import set_user
from discussion_engine.core.logging import get_logger

from .errors import ErrorKind, Result
from .service import DiscussionService


logger = get_logger(__name__)

T = TypeVar("T")


async def get_discussion_service(request: Request) -> DiscussionService:
    """Get discussion service from app state.

    Raises:
        HTTPException: 503 if the service was not initialized
    """
    app_state = request.app.state
    if not getattr(app_state, "discussion_service", None):
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Discussion service not available",
        )
    return app_state.discussion_service


def get_token_from_header(request: Request) -> str | None:
    """Extract Bearer token from Authorization header."""
    auth_header = request.headers.get("Authorization")
    if not auth_header:
        return None

    expected_parts = 2
    parts = auth_header.split()
    if len(parts) != expected_parts or parts[0].lower() != "bearer":
        return None

    return parts[1]


async def bind_caller(
    token: Annotated[str | None, Depends(get_token_from_header)],
) -> None:
    """Resolve the caller once per request into the context variables.

    Missing or invalid tokens leave the request anonymous; operations that
    need a caller then fail with 401.

    Must stay async: sync dependencies run in a worker thread and their
    context variable changes would not reach the endpoint.
    """
    if not token:
        set_user(None)
        return
    try:
        caller = caller_from_token(token)
    except JWTError as e:
        logger.info("invalid_access_token", error=str(e))
        set_user(None)
        return
    set_user(caller.id, caller.role.value, caller.display_name)


DiscussionServiceDep = Annotated[DiscussionService, Depends(get_discussion_service)]


STATUS_MAP = {
    ErrorKind.UNAUTHENTICATED: status.HTTP_401_UNAUTHORIZED,
    ErrorKind.FORBIDDEN: status.HTTP_403_FORBIDDEN,
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.VALIDATION_FAILED: 422,
    ErrorKind.STORE_UNAVAILABLE: status.HTTP_503_SERVICE_UNAVAILABLE,
}


def unwrap_result(result: Result[T]) -> T:
    """Return the value of a successful result or raise the matching HTTP error."""
    if result.ok:
        return result.value  # type: ignore[return-value]

    assert result.error is not None
    status_code = STATUS_MAP.get(
        result.error.kind, status.HTTP_500_INTERNAL_SERVER_ERROR
    )
    unauthorized = status_code == status.HTTP_401_UNAUTHORIZED
    headers = {"WWW-Authenticate": "Bearer"} if unauthorized else None
    raise HTTPException(
        status_code=status_code,
        detail=result.error.message,
        headers=headers,
    )
