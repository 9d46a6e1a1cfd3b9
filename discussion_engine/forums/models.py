"""Forum entities.

Record store collections:
- forums: forum categories with localized names
- forum_posts: topics opened inside a forum
- forum_replies: replies to a post, ``parent_reply_id`` links nested replies
- forum_votes: one upvote per (target, user); the target is a post or a reply
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from discussion_engine.comments.models import (
    DEFAULT_AUTHOR_NAME,
    author_name,
    format_timestamp,
    parse_timestamp,
)


FORUMS = "forums"
FORUM_POSTS = "forum_posts"
FORUM_REPLIES = "forum_replies"
FORUM_VOTES = "forum_votes"


class VoteType(str, Enum):
    """Vote direction. Only upvotes exist; votes are never retracted."""

    UPVOTE = "upvote"


def _count(value: Any) -> int:
    return int(value or 0)


@dataclass
class Forum:
    """Forum category.

    ``name`` and ``description`` map a locale code (``az``, ``ru``) to text.
    """

    id: str
    slug: str
    name: dict[str, str]
    description: dict[str, str] | None = None
    icon: str | None = None
    color: str | None = None
    is_active: bool = True
    order: int = 0
    post_count: int = 0
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> "Forum":
        return cls(
            id=record["id"],
            slug=record["slug"],
            name=dict(record.get("name") or {}),
            description=record.get("description"),
            icon=record.get("icon"),
            color=record.get("color"),
            is_active=bool(record.get("is_active", True)),
            order=_count(record.get("order")),
            post_count=_count(record.get("post_count")),
            created_at=parse_timestamp(record.get("created_at")),
            updated_at=parse_timestamp(record.get("updated_at")),
        )


@dataclass
class ForumPost:
    """Forum topic. Counters are denormalized on the post record."""

    id: str
    forum_id: str
    author_id: str
    title: str
    content: str
    author_name: str = DEFAULT_AUTHOR_NAME
    is_pinned: bool = False
    is_solved: bool = False
    is_closed: bool = False
    view_count: int = 0
    upvote_count: int = 0
    downvote_count: int = 0
    reply_count: int = 0
    last_reply_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> "ForumPost":
        return cls(
            id=record["id"],
            forum_id=record["forum_id"],
            author_id=record["user_id"],
            author_name=author_name(record),
            title=record.get("title") or "",
            content=record.get("content") or "",
            is_pinned=bool(record.get("is_pinned")),
            is_solved=bool(record.get("is_solved")),
            is_closed=bool(record.get("is_closed")),
            view_count=_count(record.get("view_count")),
            upvote_count=_count(record.get("upvote_count")),
            downvote_count=_count(record.get("downvote_count")),
            reply_count=_count(record.get("reply_count")),
            last_reply_at=parse_timestamp(record.get("last_reply_at")),
            created_at=parse_timestamp(record.get("created_at")),
            updated_at=parse_timestamp(record.get("updated_at")),
        )


@dataclass
class ForumReply:
    """Reply to a forum post, optionally nested under another reply."""

    id: str
    forum_post_id: str
    author_id: str
    content: str
    author_name: str = DEFAULT_AUTHOR_NAME
    is_helpful: bool = False
    upvote_count: int = 0
    parent_reply_id: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    replies: list["ForumReply"] = field(default_factory=list)

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> "ForumReply":
        return cls(
            id=record["id"],
            forum_post_id=record["forum_post_id"],
            author_id=record["user_id"],
            author_name=author_name(record),
            content=record.get("content") or "",
            is_helpful=bool(record.get("is_helpful")),
            upvote_count=_count(record.get("upvote_count")),
            parent_reply_id=record.get("parent_reply_id") or None,
            created_at=parse_timestamp(record.get("created_at")),
            updated_at=parse_timestamp(record.get("updated_at")),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to a nested dictionary, replies included."""
        return {
            "id": self.id,
            "forum_post_id": self.forum_post_id,
            "author_id": self.author_id,
            "author_name": self.author_name,
            "content": self.content,
            "is_helpful": self.is_helpful,
            "upvote_count": self.upvote_count,
            "parent_reply_id": self.parent_reply_id,
            "created_at": format_timestamp(self.created_at),
            "updated_at": format_timestamp(self.updated_at),
            "replies": [reply.to_dict() for reply in self.replies],
        }
