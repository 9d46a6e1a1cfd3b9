# ruff: noqa: PLW0603
"""Redis client backing the thread listing cache.

Redis is optional: when it is disabled or unreachable the application runs
without a listing cache and every read goes to the record store.
"""

from urllib.parse import urlsplit, urlunsplit

import redis.asyncio as redis

from discussion_engine.config import Settings, get_settings
from discussion_engine.core.logging import get_logger


logger = get_logger(__name__)

_redis_client: redis.Redis | None = None


def redact_url(url: str) -> str:
    """Drop the password from a Redis URL before it is logged."""
    parts = urlsplit(url)
    if parts.password is None:
        return url
    host = parts.hostname or ""
    if parts.port:
        host = f"{host}:{parts.port}"
    netloc = f"{parts.username or ''}:***@{host}"
    return urlunsplit(parts._replace(netloc=netloc))


async def init_redis(settings: Settings | None = None) -> redis.Redis:
    """Connect and ping.

    Raises:
        redis.RedisError: If the server does not answer the ping
    """
    global _redis_client

    settings = settings or get_settings()
    client = redis.from_url(
        settings.redis_url,
        max_connections=settings.redis_max_connections,
        socket_timeout=settings.redis_socket_timeout,
        socket_connect_timeout=settings.redis_socket_connect_timeout,
        decode_responses=True,
    )

    try:
        await client.ping()
    except redis.RedisError as e:
        logger.warning(
            "redis_connection_failed",
            url=redact_url(settings.redis_url),
            error=str(e),
        )
        await client.aclose()
        raise

    _redis_client = client
    logger.info("redis_connected", url=redact_url(settings.redis_url))
    return client


async def shutdown_redis() -> None:
    global _redis_client

    if _redis_client is not None:
        await _redis_client.aclose()
        _redis_client = None
        logger.info("redis_disconnected")


def get_redis() -> redis.Redis | None:
    """Current client, or None when running without a listing cache."""
    return _redis_client
