"""Pydantic schemas for the discussions API.

Request/Response models for:
- Comment threads and reactions
- Forums, posts and reply threads
- Votes and counter reconciliation
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from discussion_engine.comments.models import ReactionType


# ==============================================================================
# Request Schemas
# ==============================================================================


class CreateCommentRequest(BaseModel):
    """Request to comment on an article, optionally as a reply."""

    post_id: str = Field(..., min_length=1)
    content: str = Field(..., min_length=1)
    parent_id: str | None = None


class UpdateContentRequest(BaseModel):
    """Request to edit a comment or a forum reply."""

    content: str = Field(..., min_length=1)


class ToggleReactionRequest(BaseModel):
    reaction_type: ReactionType


class CreateForumPostRequest(BaseModel):
    """Request to open a topic in a forum."""

    title: str = Field(..., min_length=1)
    content: str = Field(..., min_length=1)


class CreateReplyRequest(BaseModel):
    """Request to reply to a forum post, optionally under another reply."""

    content: str = Field(..., min_length=1)
    parent_reply_id: str | None = None


class FlagRequest(BaseModel):
    """Set or clear a boolean flag (pinned, solved, helpful)."""

    value: bool = True


class RecountRequest(BaseModel):
    forum_post_id: str | None = None
    forum_id: str | None = None


# ==============================================================================
# Response Schemas
# ==============================================================================


class ReactionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    comment_id: str
    user_id: str
    reaction_type: ReactionType


class CommentResponse(BaseModel):
    """Comment with its reactions and nested replies."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    post_id: str
    author_id: str
    author_name: str
    parent_id: str | None = None
    content: str
    approved: bool = True
    created_at: datetime | None = None
    updated_at: datetime | None = None
    reactions: list[ReactionResponse] = Field(default_factory=list)
    replies: list["CommentResponse"] = Field(default_factory=list)


class ReactionStateResponse(BaseModel):
    """Caller's reaction after a toggle plus all reactions on the comment."""

    model_config = ConfigDict(from_attributes=True)

    comment_id: str
    user_id: str
    active: ReactionResponse | None = None
    reactions: list[ReactionResponse] = Field(default_factory=list)


class DeletionResponse(BaseModel):
    """Identifies the removed node so clients can drop its cached subtree."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    parent_id: str | None = None
    scope_id: str


class ForumResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

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


class ForumPostResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    forum_id: str
    author_id: str
    author_name: str
    title: str
    content: str
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


class ForumReplyResponse(BaseModel):
    """Forum reply with nested replies."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    forum_post_id: str
    author_id: str
    author_name: str
    content: str
    is_helpful: bool = False
    upvote_count: int = 0
    parent_reply_id: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    replies: list["ForumReplyResponse"] = Field(default_factory=list)


class VoteResponse(BaseModel):
    """Whether the upvote was applied (False if already voted)."""

    target_id: str
    applied: bool


class VoteStatusResponse(BaseModel):
    target_id: str
    has_voted: bool


class RecountResponse(BaseModel):
    counts: dict[str, int]
