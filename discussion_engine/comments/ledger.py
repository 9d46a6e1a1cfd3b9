"""Reaction ledger.

Keeps at most one active reaction per (comment, user). The row is keyed by
``{comment_id}:{user_id}``: changing the reaction type rewrites that row, and
concurrent adds collide on the key instead of inserting twice.
"""

from collections.abc import Iterable

from discussion_engine.core.logging import get_logger
from discussion_engine.store import (
    RecordExistsError,
    RecordNotFoundError,
    RecordStore,
)

from .models import COMMENT_REACTIONS, CommentReaction, ReactionType


logger = get_logger(__name__)


def reaction_id(comment_id: str, user_id: str) -> str:
    return f"{comment_id}:{user_id}"


class ReactionLedger:
    """Per-user reactions on comments."""

    def __init__(self, store: RecordStore):
        self.store = store

    async def _user_rows(self, comment_id: str, user_id: str) -> list[CommentReaction]:
        records = await self.store.list(
            COMMENT_REACTIONS, {"comment_id": comment_id, "user_id": user_id}
        )
        return [CommentReaction.from_record(record) for record in records]

    async def _delete(self, record_id: str) -> bool:
        try:
            await self.store.delete(COMMENT_REACTIONS, record_id)
        except RecordNotFoundError:
            # Removed by a concurrent request
            return False
        return True

    async def add_reaction(
        self,
        comment_id: str,
        user_id: str,
        reaction_type: ReactionType,
    ) -> CommentReaction:
        """Set the user's reaction on a comment.

        An identical existing reaction is returned unchanged (no write). A
        reaction of another type is overwritten in place; rows under any other
        id are deleted.
        """
        existing = await self._user_rows(comment_id, user_id)
        for reaction in existing:
            if reaction.reaction_type == reaction_type:
                return reaction

        key = reaction_id(comment_id, user_id)
        for reaction in existing:
            if reaction.id != key:
                await self._delete(reaction.id)
        if existing:
            logger.info(
                "reaction_replaced",
                comment_id=comment_id,
                user_id=user_id,
                previous=[reaction.reaction_type.value for reaction in existing],
                reaction_type=reaction_type.value,
            )

        change = {"reaction_type": reaction_type.value}
        if any(reaction.id == key for reaction in existing):
            record = await self.store.update(COMMENT_REACTIONS, key, change)
            return CommentReaction.from_record(record)
        try:
            record = await self.store.create(
                COMMENT_REACTIONS,
                {"comment_id": comment_id, "user_id": user_id, **change},
                record_id=key,
            )
        except RecordExistsError:
            record = await self.store.update(COMMENT_REACTIONS, key, change)
        return CommentReaction.from_record(record)

    async def remove_reaction(
        self,
        comment_id: str,
        user_id: str,
        reaction_type: ReactionType,
    ) -> bool:
        """Remove the user's reaction of that type. Absent rows are not an error."""
        removed = False
        for reaction in await self._user_rows(comment_id, user_id):
            if reaction.reaction_type == reaction_type:
                removed = await self._delete(reaction.id) or removed
        return removed

    async def user_reaction(
        self, comment_id: str, user_id: str
    ) -> CommentReaction | None:
        rows = await self._user_rows(comment_id, user_id)
        return rows[0] if rows else None

    async def reactions_for(
        self, comment_ids: Iterable[str]
    ) -> dict[str, list[CommentReaction]]:
        """Fetch reactions for several comments, keyed by comment id.

        One store read regardless of how many comments are asked for.
        """
        reactions: dict[str, list[CommentReaction]] = {
            comment_id: [] for comment_id in comment_ids
        }
        if not reactions:
            return reactions
        filters = None
        if len(reactions) == 1:
            filters = {"comment_id": next(iter(reactions))}
        for record in await self.store.list(COMMENT_REACTIONS, filters):
            bucket = reactions.get(record.get("comment_id"))
            if bucket is not None:
                bucket.append(CommentReaction.from_record(record))
        return reactions

    async def purge(self, comment_id: str) -> int:
        """Delete every reaction left on a comment. Returns the removed count."""
        records = await self.store.list(COMMENT_REACTIONS, {"comment_id": comment_id})
        for record in records:
            await self.store.delete(COMMENT_REACTIONS, record["id"])
        if records:
            logger.info("reactions_purged", comment_id=comment_id, count=len(records))
        return len(records)
