"""Denormalized forum counters.

Counters (``post_count``, ``reply_count``, ``upvote_count``, ``view_count``)
are copies of facts stored elsewhere. Two update modes:

- READ_WRITE: read the record, write back ``old + delta``. Concurrent writers
  can lose updates; the recount methods repair drift.
- ATOMIC: delegate to ``RecordStore.increment``, which applies the delta
  atomically on the backend.

Incremental updates are best effort: a failure is logged and swallowed so the
primary write that triggered it still succeeds.
"""

from datetime import datetime
from enum import Enum
from typing import Any

from discussion_engine.core.logging import get_logger
from discussion_engine.store import RecordNotFoundError, RecordStore, StoreError

from .models import FORUM_POSTS, FORUM_REPLIES, FORUM_VOTES, FORUMS


logger = get_logger(__name__)


class CounterMode(str, Enum):
    READ_WRITE = "read_write"
    ATOMIC = "atomic"


class CounterMaintainer:
    """Applies counter deltas after forum writes."""

    def __init__(
        self,
        store: RecordStore,
        mode: CounterMode | str = CounterMode.READ_WRITE,
    ):
        self.store = store
        self.mode = CounterMode(mode)

    async def _bump(
        self,
        collection: str,
        record_id: str,
        field: str,
        delta: int,
        floor: int | None = None,
        extra: dict[str, Any] | None = None,
    ) -> bool:
        try:
            if self.mode is CounterMode.ATOMIC:
                await self.store.increment(collection, record_id, field, delta, floor)
                if extra:
                    await self.store.update(collection, record_id, extra)
                return True

            record = await self.store.get(collection, record_id)
            if record is None:
                raise RecordNotFoundError(collection, record_id)
            value = int(record.get(field) or 0) + delta
            if floor is not None:
                value = max(floor, value)
            fields = {field: value, **(extra or {})}
            await self.store.update(collection, record_id, fields)
            return True
        except StoreError as e:
            logger.warning(
                "counter_update_failed",
                collection=collection,
                record_id=record_id,
                field=field,
                delta=delta,
                mode=self.mode.value,
                error=e.message,
            )
            return False

    async def forum_post_created(self, forum_id: str) -> bool:
        return await self._bump(FORUMS, forum_id, "post_count", 1)

    async def reply_created(self, post_id: str, at: datetime) -> bool:
        return await self._bump(
            FORUM_POSTS,
            post_id,
            "reply_count",
            1,
            extra={"last_reply_at": at.isoformat()},
        )

    async def reply_deleted(self, post_id: str) -> bool:
        return await self._bump(FORUM_POSTS, post_id, "reply_count", -1, floor=0)

    async def vote_recorded(self, collection: str, target_id: str) -> bool:
        """Increment ``upvote_count`` on a post or a reply."""
        return await self._bump(collection, target_id, "upvote_count", 1)

    async def post_viewed(self, post_id: str) -> bool:
        return await self._bump(FORUM_POSTS, post_id, "view_count", 1)

    # Reconciliation. Unlike the incremental updates these raise StoreError,
    # since the caller asked for them explicitly.

    async def recount_forum_posts(self, forum_id: str) -> int:
        """Recompute ``Forum.post_count`` from the forum's posts."""
        posts = await self.store.list(FORUM_POSTS, {"forum_id": forum_id})
        await self.store.update(FORUMS, forum_id, {"post_count": len(posts)})
        logger.info(
            "counter_recounted",
            collection=FORUMS,
            record_id=forum_id,
            post_count=len(posts),
        )
        return len(posts)

    async def recount_replies(self, post_id: str) -> int:
        """Recompute ``reply_count`` and ``last_reply_at`` from the replies."""
        replies = await self.store.list(FORUM_REPLIES, {"forum_post_id": post_id})
        fields: dict[str, Any] = {"reply_count": len(replies)}
        if replies:
            fields["last_reply_at"] = max(str(reply["created_at"]) for reply in replies)
        await self.store.update(FORUM_POSTS, post_id, fields)
        logger.info(
            "counter_recounted",
            collection=FORUM_POSTS,
            record_id=post_id,
            reply_count=len(replies),
        )
        return len(replies)

    async def recount_votes(self, collection: str, target_id: str) -> int:
        """Recompute ``upvote_count`` of a post or reply from the vote rows."""
        votes = await self.store.list(
            FORUM_VOTES, {"forum_post_id": target_id, "vote_type": "upvote"}
        )
        await self.store.update(collection, target_id, {"upvote_count": len(votes)})
        return len(votes)
