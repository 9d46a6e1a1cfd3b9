"""Request middleware: request ids and access logging."""

import time
from collections.abc import Awaitable, Callable

import structlog
from fastapi import Request, Response, status
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from discussion_engine.core.context import clear_context, set_request_id


logger = structlog.get_logger(__name__)


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Binds a request id to the logging context and logs each request.

    The id is taken from ``X-Request-ID`` when the client sends one and is
    echoed back on the response. Requests slower than ``slow_request_ms`` are
    logged as warnings even when they succeed.
    """

    REQUEST_ID_HEADER = "X-Request-ID"

    def __init__(
        self,
        app: ASGIApp,
        log_requests: bool = True,
        exclude_paths: list[str] | None = None,
        slow_request_ms: float = 1000.0,
    ) -> None:
        super().__init__(app)
        self.log_requests = log_requests
        self.exclude_paths = exclude_paths or ["/health"]
        self.slow_request_ms = slow_request_ms

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        started = time.perf_counter()
        request_id = set_request_id(request.headers.get(self.REQUEST_ID_HEADER))
        request.state.request_id = request_id
        should_log = self.log_requests and not self._should_exclude(request.url.path)
        fields = {
            "method": request.method,
            "path": request.url.path,
            "authenticated": "authorization" in request.headers,
        }

        try:
            response = await call_next(request)
            if should_log:
                duration_ms = _elapsed_ms(started)
                self._log_method(response.status_code, duration_ms)(
                    "request_completed",
                    status_code=response.status_code,
                    duration_ms=duration_ms,
                    **fields,
                )
            response.headers[self.REQUEST_ID_HEADER] = request_id
            return response
        except Exception as e:
            logger.exception(
                "request_failed",
                error_type=type(e).__name__,
                duration_ms=_elapsed_ms(started),
                **fields,
            )
            raise
        finally:
            clear_context()

    def _log_method(self, status_code: int, duration_ms: float):
        if status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
            return logger.error
        if status_code >= status.HTTP_400_BAD_REQUEST:
            return logger.warning
        if duration_ms >= self.slow_request_ms:
            return logger.warning
        return logger.info

    def _should_exclude(self, path: str) -> bool:
        return any(path.startswith(excluded) for excluded in self.exclude_paths)


def _elapsed_ms(started: float) -> float:
    return round((time.perf_counter() - started) * 1000, 2)
