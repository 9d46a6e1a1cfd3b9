"""Discussion Engine API - Main Application."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from discussion_engine.auth import ContextIdentityProvider
from discussion_engine.config import Settings, get_settings
from discussion_engine.core.context import get_request_id
from discussion_engine.core.logging import configure_structlog, get_logger
from discussion_engine.core.middleware import RequestContextMiddleware
from discussion_engine.core.redis import init_redis, shutdown_redis
from discussion_engine.discussions import DiscussionService, ThreadListingCache
from discussion_engine.discussions.router import router as discussions_router
from discussion_engine.health.router import router as health_router
from discussion_engine.store import InMemoryRecordStore, RecordStore


# Configure logging early (before creating logger)
settings = get_settings()
configure_structlog(settings, log_dir=Path(settings.log_dir))

logger = get_logger(__name__)


class AppState:
    """Application state container."""

    store: RecordStore | None = None
    cassandra_session: Any = None
    thread_cache: ThreadListingCache | None = None
    discussion_service: DiscussionService | None = None


app_state = AppState()


async def init_store(settings: Settings) -> RecordStore:
    """Create the configured record store backend."""
    if settings.store_backend == "memory":
        return InMemoryRecordStore()

    # Cassandra driver is only needed for this backend
    from discussion_engine.core.database import init_async_cassandra
    from discussion_engine.store import CassandraRecordStore

    app_state.cassandra_session = await init_async_cassandra(settings)
    logger.info("cassandra_initialized")
    return CassandraRecordStore(
        session=app_state.cassandra_session,
        keyspace=settings.cassandra_keyspace,
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    settings = get_settings()
    logger.info(
        "starting_application",
        app_name=settings.app_name,
        version=settings.app_version,
        environment=settings.environment,
        store_backend=settings.store_backend,
    )

    # Initialize Redis (non-critical - listings are read from the store)
    if settings.redis_enabled:
        try:
            redis_client = await init_redis(settings)
            app_state.thread_cache = ThreadListingCache(
                redis_client, ttl_seconds=settings.thread_cache_ttl_seconds
            )
            logger.info("redis_initialized")
        except Exception as e:
            logger.warning(
                "redis_init_skipped",
                error=str(e),
                message="Running without thread listing cache",
            )

    try:
        app_state.store = await init_store(settings)
        app_state.discussion_service = DiscussionService(
            store=app_state.store,
            identity=ContextIdentityProvider(),
            settings=settings,
            thread_cache=app_state.thread_cache,
        )
        # Also set on app.state for dependency injection via request.app.state
        app.state.discussion_service = app_state.discussion_service
        logger.info(
            "discussion_service_initialized",
            counter_mode=settings.counter_mode,
            max_thread_depth=settings.max_thread_depth,
            thread_cache_enabled=app_state.thread_cache is not None,
        )
    except Exception as e:
        logger.warning(
            "database_init_skipped",
            error=str(e),
            message="Running without database connection",
        )

    yield

    # Shutdown
    logger.info("shutting_down_application")
    await shutdown_redis()
    if app_state.cassandra_session is not None:
        from discussion_engine.core.database import shutdown_async_cassandra

        await shutdown_async_cassandra()
        app_state.cassandra_session = None


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    # Never expose stack traces in responses; handlers below log the details.
    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Threaded comments and forums API",
        debug=False,
        lifespan=lifespan,
        default_response_class=ORJSONResponse,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
        openapi_url="/openapi.json" if settings.is_development else None,
    )

    # Request context middleware (must be added first - outermost)
    app.add_middleware(
        RequestContextMiddleware,
        log_requests=settings.log_requests,
        slow_request_ms=settings.log_slow_request_ms,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    def _get_request_id_safe(request: Request) -> str | None:
        if hasattr(request.state, "request_id"):
            return request.state.request_id
        return get_request_id()

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(
        request: Request, exc: StarletteHTTPException
    ) -> ORJSONResponse:
        """Handle HTTP exceptions with safe error messages."""
        request_id = _get_request_id_safe(request)

        logger.warning(
            "http_exception",
            status_code=exc.status_code,
            detail=str(exc.detail),
            path=request.url.path,
            method=request.method,
        )

        return ORJSONResponse(
            status_code=exc.status_code,
            content={
                "error": True,
                "message": str(exc.detail)
                if exc.status_code < status.HTTP_500_INTERNAL_SERVER_ERROR
                else "Internal server error",
                "status_code": exc.status_code,
                "request_id": request_id,
            },
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> ORJSONResponse:
        """Handle validation errors with safe error messages."""
        request_id = _get_request_id_safe(request)

        logger.warning(
            "validation_error",
            errors=exc.errors(),
            path=request.url.path,
            method=request.method,
        )

        return ORJSONResponse(
            status_code=422,
            content={
                "error": True,
                "message": "Validation error",
                "status_code": 422,
                "request_id": request_id,
                "details": [
                    {
                        "field": ".".join(str(loc) for loc in err.get("loc", [])),
                        "message": err.get("msg", "Invalid value"),
                    }
                    for err in exc.errors()
                ],
            },
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(
        request: Request, exc: Exception
    ) -> ORJSONResponse:
        """Catch-all handler for unhandled exceptions."""
        request_id = _get_request_id_safe(request)

        logger.exception(
            "unhandled_exception",
            error_type=type(exc).__name__,
            error_message=str(exc),
            path=request.url.path,
            method=request.method,
        )

        return ORJSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "error": True,
                "message": "An unexpected error occurred. Please try again later.",
                "status_code": 500,
                "request_id": request_id,
            },
        )

    app.include_router(health_router)
    app.include_router(discussions_router)

    return app


app = create_app()
