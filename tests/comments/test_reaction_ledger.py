"""Tests for the comment reaction ledger.

Covers:
- mutual exclusion of reaction types per user
- idempotent add
- remove, lookup and purge
- concurrent adds and batched lookups
"""

import asyncio
from unittest.mock import patch

import pytest

from discussion_engine.comments import (
    COMMENT_REACTIONS,
    ReactionLedger,
    ReactionType,
)
from discussion_engine.store import InMemoryRecordStore


@pytest.fixture
def ledger(store: InMemoryRecordStore) -> ReactionLedger:
    return ReactionLedger(store)


async def user_rows(store: InMemoryRecordStore, comment_id: str, user_id: str):
    return await store.list(
        COMMENT_REACTIONS, {"comment_id": comment_id, "user_id": user_id}
    )


class TestAddReaction:
    """Tests for add_reaction."""

    @pytest.mark.asyncio
    async def test_second_type_replaces_first(self, ledger, store) -> None:
        """like then love leaves exactly one row, of type love."""
        await ledger.add_reaction("c", "u", ReactionType.LIKE)
        await ledger.add_reaction("c", "u", ReactionType.LOVE)

        rows = await user_rows(store, "c", "u")
        assert len(rows) == 1
        assert rows[0]["reaction_type"] == "love"

    @pytest.mark.asyncio
    async def test_same_type_twice_is_idempotent(self, ledger, store) -> None:
        first = await ledger.add_reaction("c", "u", ReactionType.LIKE)
        second = await ledger.add_reaction("c", "u", ReactionType.LIKE)

        rows = await user_rows(store, "c", "u")
        assert len(rows) == 1
        assert second.id == first.id

    @pytest.mark.asyncio
    async def test_other_users_are_untouched(self, ledger, store) -> None:
        await ledger.add_reaction("c", "u1", ReactionType.LIKE)
        await ledger.add_reaction("c", "u2", ReactionType.SAD)

        await ledger.add_reaction("c", "u1", ReactionType.WOW)

        assert len(await user_rows(store, "c", "u2")) == 1
        assert len(await store.list(COMMENT_REACTIONS, {"comment_id": "c"})) == 2

    @pytest.mark.asyncio
    async def test_repairs_multiple_existing_rows(self, ledger, store) -> None:
        """Rows written by another writer are all replaced."""
        for reaction_type in ("like", "love"):
            await store.create(
                COMMENT_REACTIONS,
                {"comment_id": "c", "user_id": "u", "reaction_type": reaction_type},
            )

        await ledger.add_reaction("c", "u", ReactionType.HELPFUL)

        rows = await user_rows(store, "c", "u")
        assert [row["reaction_type"] for row in rows] == ["helpful"]

    @pytest.mark.asyncio
    async def test_concurrent_adds_leave_one_row(self, yielding_store) -> None:
        ledger = ReactionLedger(yielding_store)

        await asyncio.gather(
            ledger.add_reaction("c", "u", ReactionType.LIKE),
            ledger.add_reaction("c", "u", ReactionType.LIKE),
            ledger.add_reaction("c", "u", ReactionType.LOVE),
        )

        rows = await user_rows(yielding_store, "c", "u")
        assert len(rows) == 1
        assert rows[0]["id"] == "c:u"


class TestRemoveReaction:
    """Tests for remove_reaction and lookups."""

    @pytest.mark.asyncio
    async def test_remove_existing(self, ledger, store) -> None:
        await ledger.add_reaction("c", "u", ReactionType.LIKE)

        assert await ledger.remove_reaction("c", "u", ReactionType.LIKE) is True
        assert await user_rows(store, "c", "u") == []

    @pytest.mark.asyncio
    async def test_remove_absent_is_not_an_error(self, ledger) -> None:
        assert await ledger.remove_reaction("c", "u", ReactionType.LIKE) is False

    @pytest.mark.asyncio
    async def test_remove_other_type_keeps_row(self, ledger, store) -> None:
        await ledger.add_reaction("c", "u", ReactionType.LIKE)

        assert await ledger.remove_reaction("c", "u", ReactionType.LOVE) is False
        assert len(await user_rows(store, "c", "u")) == 1

    @pytest.mark.asyncio
    async def test_user_reaction(self, ledger) -> None:
        assert await ledger.user_reaction("c", "u") is None

        await ledger.add_reaction("c", "u", ReactionType.ANGRY)

        reaction = await ledger.user_reaction("c", "u")
        assert reaction.reaction_type == ReactionType.ANGRY

    @pytest.mark.asyncio
    async def test_reactions_for(self, ledger) -> None:
        await ledger.add_reaction("c1", "u1", ReactionType.LIKE)
        await ledger.add_reaction("c1", "u2", ReactionType.LOVE)

        reactions = await ledger.reactions_for(["c1", "c2"])

        assert len(reactions["c1"]) == 2
        assert reactions["c2"] == []

    @pytest.mark.asyncio
    async def test_reactions_for_reads_store_once(self, ledger, store) -> None:
        for comment_id in ("c1", "c2", "c3"):
            await ledger.add_reaction(comment_id, "u1", ReactionType.LIKE)

        with patch.object(store, "list", wraps=store.list) as listing:
            reactions = await ledger.reactions_for(["c1", "c2", "c3", "c4"])

        assert listing.await_count == 1
        assert {k: len(v) for k, v in reactions.items()} == {
            "c1": 1,
            "c2": 1,
            "c3": 1,
            "c4": 0,
        }


class TestPurge:
    """Tests for purge."""

    @pytest.mark.asyncio
    async def test_purge_removes_all_reactions_of_comment(
        self, ledger, store
    ) -> None:
        await ledger.add_reaction("c1", "u1", ReactionType.LIKE)
        await ledger.add_reaction("c1", "u2", ReactionType.LOVE)
        await ledger.add_reaction("c2", "u1", ReactionType.LIKE)

        assert await ledger.purge("c1") == 2
        assert await store.list(COMMENT_REACTIONS, {"comment_id": "c1"}) == []
        assert len(await store.list(COMMENT_REACTIONS, {"comment_id": "c2"})) == 1
