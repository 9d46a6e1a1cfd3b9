"""Community forums.

Provides:
- Forum, post and reply entities
- Vote ledger (one upvote per user and target)
- Denormalized counter maintenance and reconciliation
"""

from .counters import CounterMaintainer, CounterMode
from .ledger import VoteLedger
from .models import (
    FORUM_POSTS,
    FORUM_REPLIES,
    FORUM_VOTES,
    FORUMS,
    Forum,
    ForumPost,
    ForumReply,
    VoteType,
)


__all__ = [
    "FORUMS",
    "FORUM_POSTS",
    "FORUM_REPLIES",
    "FORUM_VOTES",
    "CounterMaintainer",
    "CounterMode",
    "Forum",
    "ForumPost",
    "ForumReply",
    "VoteLedger",
    "VoteType",
]
