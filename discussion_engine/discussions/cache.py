"""Redis cache of thread listings.

Caches the flat records a thread is built from (comments plus their
reactions, or forum replies). Each thread has a version counter and its
listing is stored under the version it was read at:

    discussions:{kind}:{scope_id}:version
    discussions:{kind}:{scope_id}:v{version}

Every mutation on a thread increments its version. A listing loaded before a
mutation is written under the old version and is never read again, so a slow
reader cannot put stale data back in front of later requests.

Redis failures never reach the caller: a failed read is a miss, a failed
write or invalidation is logged.
"""

import json
from typing import TYPE_CHECKING, Any

from redis.exceptions import RedisError

from discussion_engine.core.logging import get_logger


if TYPE_CHECKING:
    from redis.asyncio import Redis


logger = get_logger(__name__)

COMMENTS_KIND = "comments"
REPLIES_KIND = "replies"


class ThreadListingCache:
    """Short-lived cache in front of the thread listing queries."""

    def __init__(self, redis: "Redis", ttl_seconds: int = 600):
        self.redis = redis
        self.ttl_seconds = ttl_seconds

    @staticmethod
    def version_key(kind: str, scope_id: str) -> str:
        return f"discussions:{kind}:{scope_id}:version"

    @staticmethod
    def key(kind: str, scope_id: str, version: int = 0) -> str:
        return f"discussions:{kind}:{scope_id}:v{version}"

    async def version(self, kind: str, scope_id: str) -> int | None:
        """Current version of a thread, or None when Redis cannot be read."""
        try:
            return int(await self.redis.get(self.version_key(kind, scope_id)) or 0)
        except (RedisError, ValueError) as e:
            logger.warning(
                "thread_cache_read_failed",
                kind=kind,
                scope_id=scope_id,
                error=str(e),
            )
            return None

    async def get(
        self, kind: str, scope_id: str, version: int
    ) -> dict[str, Any] | None:
        try:
            cached = await self.redis.get(self.key(kind, scope_id, version))
            if not cached:
                return None
            return json.loads(cached)
        except (RedisError, ValueError) as e:
            logger.warning(
                "thread_cache_read_failed",
                kind=kind,
                scope_id=scope_id,
                error=str(e),
            )
            return None

    async def set(
        self, kind: str, scope_id: str, version: int, payload: dict[str, Any]
    ) -> None:
        try:
            await self.redis.setex(
                self.key(kind, scope_id, version),
                self.ttl_seconds,
                json.dumps(payload, default=str),
            )
        except RedisError as e:
            logger.warning(
                "thread_cache_write_failed",
                kind=kind,
                scope_id=scope_id,
                error=str(e),
            )

    async def invalidate(self, kind: str, scope_id: str) -> None:
        try:
            await self.redis.incr(self.version_key(kind, scope_id))
        except RedisError as e:
            logger.warning(
                "thread_cache_invalidate_failed",
                kind=kind,
                scope_id=scope_id,
                error=str(e),
            )
