"""Article comments.

Provides:
- Comment and reaction entities
- Reaction ledger (one active reaction per user and comment)
"""

from .ledger import ReactionLedger
from .models import (
    COMMENT_REACTIONS,
    COMMENTS,
    Comment,
    CommentReaction,
    ReactionType,
)


__all__ = [
    "COMMENTS",
    "COMMENT_REACTIONS",
    "Comment",
    "CommentReaction",
    "ReactionLedger",
    "ReactionType",
]
