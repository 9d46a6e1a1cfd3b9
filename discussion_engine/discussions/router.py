"""Discussions API endpoints.

Provides routes for:
- Article comment threads, edits, deletes and reactions
- Forums, forum posts and moderation flags
- Forum reply threads
- Upvotes and counter reconciliation
"""

from fastapi import APIRouter, Depends, Query, status

from .dependencies import DiscussionServiceDep, bind_caller, unwrap_result
from .schemas import (
    CommentResponse,
    CreateCommentRequest,
    CreateForumPostRequest,
    CreateReplyRequest,
    DeletionResponse,
    FlagRequest,
    ForumPostResponse,
    ForumReplyResponse,
    ForumResponse,
    ReactionStateResponse,
    RecountRequest,
    RecountResponse,
    ToggleReactionRequest,
    UpdateContentRequest,
    VoteResponse,
    VoteStatusResponse,
)


router = APIRouter(
    prefix="/v1/discussions",
    tags=["discussions"],
    dependencies=[Depends(bind_caller)],
)


# ==============================================================================
# Comments
# ==============================================================================


@router.get(
    "/articles/{post_id}/comments",
    response_model=list[CommentResponse],
    summary="Get article comment thread",
)
async def list_comment_thread(
    post_id: str,
    service: DiscussionServiceDep,
) -> list[CommentResponse]:
    """Approved comments as a forest, oldest first, reactions attached."""
    forest = unwrap_result(await service.list_comment_thread(post_id))
    return [CommentResponse.model_validate(comment) for comment in forest]


@router.post(
    "/comments",
    response_model=CommentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create comment",
)
async def post_comment(
    data: CreateCommentRequest,
    service: DiscussionServiceDep,
) -> CommentResponse:
    comment = unwrap_result(
        await service.post_comment(data.post_id, data.content, data.parent_id)
    )
    return CommentResponse.model_validate(comment)


@router.patch(
    "/comments/{comment_id}",
    response_model=CommentResponse,
    summary="Edit comment",
)
async def edit_comment(
    comment_id: str,
    data: UpdateContentRequest,
    service: DiscussionServiceDep,
) -> CommentResponse:
    """Edit a comment (author, admin or author role).

    The response has no replies; clients keep the children they loaded.
    """
    comment = unwrap_result(await service.edit_comment(comment_id, data.content))
    return CommentResponse.model_validate(comment)


@router.delete(
    "/comments/{comment_id}",
    response_model=DeletionResponse,
    summary="Delete comment",
)
async def delete_comment(
    comment_id: str,
    service: DiscussionServiceDep,
) -> DeletionResponse:
    deletion = unwrap_result(await service.delete_comment(comment_id))
    return DeletionResponse.model_validate(deletion)


@router.post(
    "/comments/{comment_id}/reactions",
    response_model=ReactionStateResponse,
    summary="Toggle reaction",
)
async def toggle_reaction(
    comment_id: str,
    data: ToggleReactionRequest,
    service: DiscussionServiceDep,
) -> ReactionStateResponse:
    """Toggle a reaction. Sending the active type again removes it."""
    state = unwrap_result(
        await service.toggle_reaction(comment_id, data.reaction_type)
    )
    return ReactionStateResponse.model_validate(state)


# ==============================================================================
# Forums and posts
# ==============================================================================


@router.get(
    "/forums",
    response_model=list[ForumResponse],
    summary="List forums",
)
async def list_forums(
    service: DiscussionServiceDep,
    active_only: bool = Query(default=True),
) -> list[ForumResponse]:
    forums = unwrap_result(await service.list_forums(active_only))
    return [ForumResponse.model_validate(forum) for forum in forums]


@router.get(
    "/forums/{slug}",
    response_model=ForumResponse,
    summary="Get forum by slug",
)
async def get_forum_by_slug(
    slug: str,
    service: DiscussionServiceDep,
) -> ForumResponse:
    forum = unwrap_result(await service.get_forum_by_slug(slug))
    return ForumResponse.model_validate(forum)


@router.get(
    "/forums/{forum_id}/posts",
    response_model=list[ForumPostResponse],
    summary="List forum posts",
)
async def list_forum_posts(
    forum_id: str,
    service: DiscussionServiceDep,
    limit: int | None = Query(default=None, le=100),
) -> list[ForumPostResponse]:
    """Pinned posts first, then newest first."""
    posts = unwrap_result(await service.list_forum_posts(forum_id, limit))
    return [ForumPostResponse.model_validate(post) for post in posts]


@router.post(
    "/forums/{forum_id}/posts",
    response_model=ForumPostResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create forum post",
)
async def create_forum_post(
    forum_id: str,
    data: CreateForumPostRequest,
    service: DiscussionServiceDep,
) -> ForumPostResponse:
    post = unwrap_result(
        await service.create_forum_post(forum_id, data.title, data.content)
    )
    return ForumPostResponse.model_validate(post)


@router.get(
    "/forum-posts/{post_id}",
    response_model=ForumPostResponse,
    summary="Get forum post",
)
async def get_forum_post(
    post_id: str,
    service: DiscussionServiceDep,
    count_view: bool = Query(default=False),
) -> ForumPostResponse:
    """Get a post; ``count_view`` increments its view counter."""
    post = unwrap_result(await service.get_forum_post(post_id, count_view))
    return ForumPostResponse.model_validate(post)


@router.post(
    "/forum-posts/{post_id}/close",
    response_model=ForumPostResponse,
    summary="Close forum post",
)
async def close_forum_post(
    post_id: str,
    service: DiscussionServiceDep,
) -> ForumPostResponse:
    """Close a post to new replies (post author only)."""
    post = unwrap_result(await service.close_forum_post(post_id))
    return ForumPostResponse.model_validate(post)


@router.put(
    "/forum-posts/{post_id}/pinned",
    response_model=ForumPostResponse,
    summary="Pin or unpin forum post",
)
async def pin_post(
    post_id: str,
    data: FlagRequest,
    service: DiscussionServiceDep,
) -> ForumPostResponse:
    post = unwrap_result(await service.pin_post(post_id, data.value))
    return ForumPostResponse.model_validate(post)


@router.put(
    "/forum-posts/{post_id}/solved",
    response_model=ForumPostResponse,
    summary="Mark forum post solved",
)
async def mark_solved(
    post_id: str,
    data: FlagRequest,
    service: DiscussionServiceDep,
) -> ForumPostResponse:
    post = unwrap_result(await service.mark_solved(post_id, data.value))
    return ForumPostResponse.model_validate(post)


# ==============================================================================
# Replies
# ==============================================================================


@router.get(
    "/forum-posts/{post_id}/replies",
    response_model=list[ForumReplyResponse],
    summary="Get reply thread",
)
async def list_reply_thread(
    post_id: str,
    service: DiscussionServiceDep,
) -> list[ForumReplyResponse]:
    forest = unwrap_result(await service.list_reply_thread(post_id))
    return [ForumReplyResponse.model_validate(reply) for reply in forest]


@router.post(
    "/forum-posts/{post_id}/replies",
    response_model=ForumReplyResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Reply to forum post",
)
async def reply_to_forum_post(
    post_id: str,
    data: CreateReplyRequest,
    service: DiscussionServiceDep,
) -> ForumReplyResponse:
    reply = unwrap_result(
        await service.reply_to_forum_post(post_id, data.content, data.parent_reply_id)
    )
    return ForumReplyResponse.model_validate(reply)


@router.patch(
    "/replies/{reply_id}",
    response_model=ForumReplyResponse,
    summary="Edit reply",
)
async def edit_reply(
    reply_id: str,
    data: UpdateContentRequest,
    service: DiscussionServiceDep,
) -> ForumReplyResponse:
    reply = unwrap_result(await service.edit_reply(reply_id, data.content))
    return ForumReplyResponse.model_validate(reply)


@router.delete(
    "/replies/{reply_id}",
    response_model=DeletionResponse,
    summary="Delete reply",
)
async def delete_reply(
    reply_id: str,
    service: DiscussionServiceDep,
) -> DeletionResponse:
    deletion = unwrap_result(await service.delete_reply(reply_id))
    return DeletionResponse.model_validate(deletion)


@router.put(
    "/replies/{reply_id}/helpful",
    response_model=ForumReplyResponse,
    summary="Mark reply helpful",
)
async def mark_helpful(
    reply_id: str,
    data: FlagRequest,
    service: DiscussionServiceDep,
) -> ForumReplyResponse:
    reply = unwrap_result(await service.mark_helpful(reply_id, data.value))
    return ForumReplyResponse.model_validate(reply)


# ==============================================================================
# Votes and reconciliation
# ==============================================================================


@router.post(
    "/votes/{target_id}",
    response_model=VoteResponse,
    summary="Upvote post or reply",
)
async def upvote(
    target_id: str,
    service: DiscussionServiceDep,
) -> VoteResponse:
    applied = unwrap_result(await service.upvote(target_id))
    return VoteResponse(target_id=target_id, applied=applied)


@router.get(
    "/votes/{target_id}",
    response_model=VoteStatusResponse,
    summary="Check vote",
)
async def has_voted(
    target_id: str,
    service: DiscussionServiceDep,
) -> VoteStatusResponse:
    """Anonymous callers always get ``has_voted = false``."""
    voted = unwrap_result(await service.has_voted(target_id))
    return VoteStatusResponse(target_id=target_id, has_voted=voted)


@router.post(
    "/recount",
    response_model=RecountResponse,
    summary="Recount counters",
)
async def recount_counters(
    data: RecountRequest,
    service: DiscussionServiceDep,
) -> RecountResponse:
    """Recompute denormalized counters (admin and author roles)."""
    counts = unwrap_result(
        await service.recount_counters(data.forum_post_id, data.forum_id)
    )
    return RecountResponse(counts=counts)
