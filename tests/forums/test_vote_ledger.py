"""Tests for the forum vote ledger."""

import asyncio

import pytest

from discussion_engine.forums import FORUM_VOTES, VoteLedger
from discussion_engine.store import InMemoryRecordStore


@pytest.fixture
def ledger(store: InMemoryRecordStore) -> VoteLedger:
    return VoteLedger(store)


class TestUpvote:
    """Tests for upvote and has_voted."""

    @pytest.mark.asyncio
    async def test_first_vote_applies_then_rejects(self, ledger, store) -> None:
        assert await ledger.upvote("p", "u") is True
        assert await ledger.upvote("p", "u") is False
        assert await ledger.upvote("p", "u") is False

        votes = await store.list(FORUM_VOTES, {"forum_post_id": "p"})
        assert len(votes) == 1
        assert votes[0]["vote_type"] == "upvote"
        assert votes[0]["id"] == "p:u"

    @pytest.mark.asyncio
    async def test_votes_are_per_user_and_target(self, ledger) -> None:
        assert await ledger.upvote("p", "u1") is True
        assert await ledger.upvote("p", "u2") is True
        assert await ledger.upvote("r", "u1") is True

    @pytest.mark.asyncio
    async def test_has_voted(self, ledger) -> None:
        assert await ledger.has_voted("p", "u") is False

        await ledger.upvote("p", "u")

        assert await ledger.has_voted("p", "u") is True
        assert await ledger.has_voted("p", "other") is False

    @pytest.mark.asyncio
    async def test_concurrent_upvotes_apply_once(self, yielding_store) -> None:
        """Interleaved upvotes by the same user leave one vote row."""
        store = yielding_store
        ledger = VoteLedger(store)

        results = await asyncio.gather(*(ledger.upvote("p", "u") for _ in range(5)))

        assert sorted(results) == [False, False, False, False, True]
        assert len(await store.list(FORUM_VOTES, {"forum_post_id": "p"})) == 1
