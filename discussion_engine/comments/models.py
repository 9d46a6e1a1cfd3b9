"""Comment entities.

Record store collections:
- comments: one document per comment, ``parent_id`` links replies
- comment_reactions: one document per (comment, user), keyed ``{comment_id}:{user_id}``

Architecture: adjacency list. ``parent_id`` references the parent comment
(None for root comments); the tree is rebuilt on read.
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any


COMMENTS = "comments"
COMMENT_REACTIONS = "comment_reactions"

# Shown when the author left no display name
DEFAULT_AUTHOR_NAME = "İstifadəçi"


class ReactionType(str, Enum):
    """Available reaction types for comments."""

    LIKE = "like"
    LOVE = "love"
    HELPFUL = "helpful"
    LAUGH = "laugh"
    WOW = "wow"
    SAD = "sad"
    ANGRY = "angry"


def parse_timestamp(value: Any) -> datetime | None:
    """Read a stored ISO-8601 timestamp (naive values are taken as UTC)."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        parsed = datetime.fromisoformat(str(value))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def format_timestamp(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def author_name(record: dict[str, Any]) -> str:
    return record.get("user_name") or DEFAULT_AUTHOR_NAME


@dataclass
class CommentReaction:
    """User reaction to a comment."""

    id: str
    comment_id: str
    user_id: str
    reaction_type: ReactionType

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> "CommentReaction":
        return cls(
            id=record["id"],
            comment_id=record["comment_id"],
            user_id=record["user_id"],
            reaction_type=ReactionType(record["reaction_type"]),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "comment_id": self.comment_id,
            "user_id": self.user_id,
            "reaction_type": self.reaction_type.value,
        }


@dataclass
class Comment:
    """Comment entity.

    ``reactions`` and ``replies`` are filled in when a thread is read and are
    never written back to the store.
    """

    id: str
    post_id: str
    author_id: str
    content: str
    author_name: str = DEFAULT_AUTHOR_NAME
    parent_id: str | None = None
    approved: bool = True
    created_at: datetime | None = None
    updated_at: datetime | None = None
    reactions: list[CommentReaction] = field(default_factory=list)
    replies: list["Comment"] = field(default_factory=list)

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> "Comment":
        """Create Comment from a store record."""
        return cls(
            id=record["id"],
            post_id=record["post_id"],
            author_id=record["user_id"],
            author_name=author_name(record),
            content=record.get("content") or "",
            parent_id=record.get("parent_id") or None,
            approved=record.get("is_approved", True) is not False,
            created_at=parse_timestamp(record.get("created_at")),
            updated_at=parse_timestamp(record.get("updated_at")),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to a nested dictionary, replies included."""
        return {
            "id": self.id,
            "post_id": self.post_id,
            "author_id": self.author_id,
            "author_name": self.author_name,
            "parent_id": self.parent_id,
            "content": self.content,
            "approved": self.approved,
            "created_at": format_timestamp(self.created_at),
            "updated_at": format_timestamp(self.updated_at),
            "reactions": [reaction.to_dict() for reaction in self.reactions],
            "replies": [reply.to_dict() for reply in self.replies],
        }
