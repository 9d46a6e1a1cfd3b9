"""Tests for denormalized counter maintenance."""

from datetime import UTC, datetime

import pytest
import pytest_asyncio

from discussion_engine.forums import (
    FORUM_POSTS,
    FORUM_REPLIES,
    FORUM_VOTES,
    FORUMS,
    CounterMaintainer,
    CounterMode,
)
from discussion_engine.store import InMemoryRecordStore


@pytest_asyncio.fixture
async def post(store: InMemoryRecordStore) -> dict:
    return await store.create(
        FORUM_POSTS,
        {"forum_id": "f", "reply_count": 0, "upvote_count": 0, "view_count": 0},
    )


@pytest.fixture(params=[CounterMode.READ_WRITE, CounterMode.ATOMIC])
def counters(request, store: InMemoryRecordStore) -> CounterMaintainer:
    return CounterMaintainer(store, request.param)


class TestIncrementalUpdates:
    """Both modes apply the same deltas."""

    @pytest.mark.asyncio
    async def test_reply_created_sets_last_reply_at(
        self, counters, store, post
    ) -> None:
        at = datetime(2024, 5, 1, 12, 0, tzinfo=UTC)

        assert await counters.reply_created(post["id"], at) is True

        stored = await store.get(FORUM_POSTS, post["id"])
        assert stored["reply_count"] == 1
        assert stored["last_reply_at"] == at.isoformat()

    @pytest.mark.asyncio
    async def test_reply_deleted_floors_at_zero(self, counters, store, post) -> None:
        await counters.reply_deleted(post["id"])

        stored = await store.get(FORUM_POSTS, post["id"])
        assert stored["reply_count"] == 0

    @pytest.mark.asyncio
    async def test_vote_and_view(self, counters, store, post) -> None:
        await counters.vote_recorded(FORUM_POSTS, post["id"])
        await counters.post_viewed(post["id"])
        await counters.post_viewed(post["id"])

        stored = await store.get(FORUM_POSTS, post["id"])
        assert stored["upvote_count"] == 1
        assert stored["view_count"] == 2

    @pytest.mark.asyncio
    async def test_forum_post_created(self, counters, store) -> None:
        forum = await store.create(FORUMS, {"slug": "f"})

        await counters.forum_post_created(forum["id"])

        stored = await store.get(FORUMS, forum["id"])
        assert stored["post_count"] == 1


class TestFailureTolerance:
    """Counter failures are logged, never raised."""

    @pytest.mark.asyncio
    async def test_store_failure_returns_false(self, counters, store, post) -> None:
        store.fail_on.update({("update", FORUM_POSTS), ("increment", FORUM_POSTS)})

        result = await counters.reply_created(post["id"], datetime.now(UTC))

        assert result is False

    @pytest.mark.asyncio
    async def test_missing_target_returns_false(self, counters) -> None:
        assert await counters.vote_recorded(FORUM_POSTS, "nope") is False


class TestReadWriteMode:
    """The default mode keeps the read-then-write race."""

    @pytest.mark.asyncio
    async def test_interleaved_writers_lose_an_update(self, store, post) -> None:
        counters = CounterMaintainer(store)
        assert counters.mode is CounterMode.READ_WRITE

        # Both writers read the same value before either writes back
        stale = await store.get(FORUM_POSTS, post["id"])
        await counters.reply_created(post["id"], datetime.now(UTC))
        await store.update(
            FORUM_POSTS, post["id"], {"reply_count": stale["reply_count"] + 1}
        )

        stored = await store.get(FORUM_POSTS, post["id"])
        assert stored["reply_count"] == 1


class TestRecount:
    """Reconciliation from authoritative rows."""

    @pytest.mark.asyncio
    async def test_recount_replies_fixes_undercount(self, store, post) -> None:
        for _ in range(3):
            await store.create(FORUM_REPLIES, {"forum_post_id": post["id"]})
        await store.update(FORUM_POSTS, post["id"], {"reply_count": 1})

        count = await CounterMaintainer(store).recount_replies(post["id"])

        stored = await store.get(FORUM_POSTS, post["id"])
        assert count == 3
        assert stored["reply_count"] == 3
        assert stored["last_reply_at"] is not None

    @pytest.mark.asyncio
    async def test_recount_forum_posts(self, store) -> None:
        forum = await store.create(FORUMS, {"slug": "f", "post_count": 7})
        await store.create(FORUM_POSTS, {"forum_id": forum["id"]})

        count = await CounterMaintainer(store).recount_forum_posts(forum["id"])

        assert count == 1
        assert (await store.get(FORUMS, forum["id"]))["post_count"] == 1

    @pytest.mark.asyncio
    async def test_recount_votes(self, store, post) -> None:
        for user_id in ("u1", "u2"):
            await store.create(
                FORUM_VOTES,
                {
                    "forum_post_id": post["id"],
                    "user_id": user_id,
                    "vote_type": "upvote",
                },
            )

        count = await CounterMaintainer(store).recount_votes(FORUM_POSTS, post["id"])

        assert count == 2
        assert (await store.get(FORUM_POSTS, post["id"]))["upvote_count"] == 2
