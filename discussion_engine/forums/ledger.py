"""Vote ledger: one upvote per user and target, never retracted.

Vote rows are keyed by ``{target_id}:{user_id}`` so the store's
create-if-absent rejects a second vote even when two requests race.
"""

from discussion_engine.core.logging import get_logger
from discussion_engine.store import RecordExistsError, RecordStore

from .models import FORUM_VOTES, VoteType


logger = get_logger(__name__)


def vote_id(target_id: str, user_id: str) -> str:
    return f"{target_id}:{user_id}"


class VoteLedger:
    """Upvotes on forum posts and replies."""

    def __init__(self, store: RecordStore):
        self.store = store

    async def has_voted(self, target_id: str, user_id: str) -> bool:
        record = await self.store.get(FORUM_VOTES, vote_id(target_id, user_id))
        return record is not None

    async def upvote(self, target_id: str, user_id: str) -> bool:
        """Record an upvote.

        Returns:
            False if the user already voted on the target, True otherwise
        """
        try:
            await self.store.create(
                FORUM_VOTES,
                {
                    "forum_post_id": target_id,
                    "user_id": user_id,
                    "vote_type": VoteType.UPVOTE.value,
                },
                record_id=vote_id(target_id, user_id),
            )
        except RecordExistsError:
            logger.info("vote_rejected_duplicate", target_id=target_id, user_id=user_id)
            return False
        return True
