"""Discussion service layer.

Business logic for:
- Article comment threads and reactions
- Forums, forum posts and nested replies
- Upvotes and denormalized counters

Every public operation returns a ``Result``; domain errors and record store
failures are converted at this boundary and never raised to the caller.
"""

import functools
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any, ParamSpec, TypeVar

from discussion_engine.auth import Caller, IdentityProvider, can_close, can_mutate
from discussion_engine.auth.permissions import is_elevated
from discussion_engine.comments import (
    COMMENTS,
    Comment,
    CommentReaction,
    ReactionLedger,
    ReactionType,
)
from discussion_engine.config import Settings, get_settings
from discussion_engine.core.logging import get_logger
from discussion_engine.forums import (
    FORUM_POSTS,
    FORUM_REPLIES,
    FORUMS,
    CounterMaintainer,
    Forum,
    ForumPost,
    ForumReply,
    VoteLedger,
)
from discussion_engine.store import (
    Record,
    RecordNotFoundError,
    RecordStore,
    StoreError,
    asc,
    desc,
)
from discussion_engine.store.base import utcnow
from discussion_engine.threads import build_forest

from .cache import COMMENTS_KIND, REPLIES_KIND
from .errors import (
    Deletion,
    DiscussionError,
    ErrorKind,
    ForbiddenError,
    NotFoundError,
    ReactionState,
    Result,
    UnauthenticatedError,
    ValidationFailedError,
)


if TYPE_CHECKING:
    from .cache import ThreadListingCache


logger = get_logger(__name__)

P = ParamSpec("P")
T = TypeVar("T")


def operation(
    func: Callable[P, Awaitable[T]],
) -> Callable[P, Awaitable[Result[T]]]:
    """Run a service method and convert its outcome into a Result."""

    @functools.wraps(func)
    async def wrapper(*args: P.args, **kwargs: P.kwargs) -> Result[T]:
        try:
            return Result.success(await func(*args, **kwargs))
        except DiscussionError as e:
            return Result.from_error(e)
        except RecordNotFoundError as e:
            return Result.failure(ErrorKind.NOT_FOUND, e.message)
        except StoreError as e:
            logger.exception(
                "store_operation_failed",
                operation=func.__name__,
                error=e.message,
            )
            return Result.failure(ErrorKind.STORE_UNAVAILABLE, e.message)
        except (KeyError, TypeError, ValueError) as e:
            # Raised while decoding a stored record into an entity
            logger.exception(
                "record_decode_failed",
                operation=func.__name__,
                error=str(e),
            )
            return Result.failure(
                ErrorKind.STORE_UNAVAILABLE, "Stored record could not be decoded"
            )

    return wrapper


class DiscussionService:
    """Orchestrates comment and forum threads on top of a record store."""

    def __init__(
        self,
        store: RecordStore,
        identity: IdentityProvider,
        settings: Settings | None = None,
        thread_cache: "ThreadListingCache | None" = None,
    ):
        self.store = store
        self.identity = identity
        self.settings = settings or get_settings()
        self.thread_cache = thread_cache
        self.reactions = ReactionLedger(store)
        self.votes = VoteLedger(store)
        self.counters = CounterMaintainer(store, self.settings.counter_mode)

    # ==========================================================================
    # Helpers
    # ==========================================================================

    async def _require_caller(self) -> Caller:
        caller = await self.identity.current_user()
        if caller is None:
            raise UnauthenticatedError()
        return caller

    def _clean_text(self, text: str | None, field: str = "content") -> str:
        cleaned = (text or "").strip()
        if not cleaned:
            raise ValidationFailedError(f"{field} must not be empty")
        if len(cleaned) > self.settings.max_content_length:
            msg = f"{field} exceeds {self.settings.max_content_length} characters"
            raise ValidationFailedError(msg)
        return cleaned

    async def _get_record(self, collection: str, record_id: str, label: str) -> Record:
        record = await self.store.get(collection, record_id) if record_id else None
        if record is None:
            raise NotFoundError(f"{label} not found")
        return record

    async def _check_depth(
        self, collection: str, parent: Record, parent_key: str
    ) -> None:
        """Reject a new child of ``parent`` deeper than ``max_thread_depth``.

        Depth counts ancestors actually present in the store, so a node under
        a deleted parent restarts at depth 0, the way it is displayed.
        """
        max_depth = self.settings.max_thread_depth
        if max_depth is None:
            return

        parent_depth = 0
        seen = {parent["id"]}
        ancestor_id = parent.get(parent_key)
        while ancestor_id and ancestor_id not in seen:
            ancestor = await self.store.get(collection, ancestor_id)
            if ancestor is None:
                break
            seen.add(ancestor_id)
            parent_depth += 1
            ancestor_id = ancestor.get(parent_key)

        if parent_depth + 1 > max_depth:
            msg = f"Replies cannot be nested deeper than {max_depth} levels"
            raise ValidationFailedError(msg)

    async def _invalidate(self, kind: str, scope_id: str) -> None:
        if self.thread_cache:
            await self.thread_cache.invalidate(kind, scope_id)

    # ==========================================================================
    # Comments
    # ==========================================================================

    async def _cached_listing(
        self,
        kind: str,
        scope_id: str,
        load: Callable[[], Awaitable[dict[str, Any]]],
    ) -> dict[str, Any]:
        """Read a listing through the cache, stamped with the version seen first."""
        version = None
        if self.thread_cache:
            version = await self.thread_cache.version(kind, scope_id)
        if version is not None:
            cached = await self.thread_cache.get(kind, scope_id, version)
            if cached is not None:
                return cached

        listing = await load()
        if version is not None:
            await self.thread_cache.set(kind, scope_id, version, listing)
        return listing

    async def _comment_listing(self, post_id: str) -> dict[str, Any]:
        return await self._cached_listing(
            COMMENTS_KIND, post_id, lambda: self._load_comments(post_id)
        )

    async def _load_comments(self, post_id: str) -> dict[str, Any]:
        records = await self.store.list(
            COMMENTS,
            {"post_id": post_id, "is_approved": True},
            order=[asc("created_at")],
        )
        reactions = await self.reactions.reactions_for(r["id"] for r in records)
        return {
            "records": records,
            "reactions": {
                comment_id: [reaction.to_dict() for reaction in rows]
                for comment_id, rows in reactions.items()
            },
        }

    @operation
    async def list_comment_thread(self, post_id: str) -> list[Comment]:
        """Approved comments of an article as a forest, reactions attached."""
        if not post_id or not post_id.strip():
            raise ValidationFailedError("post_id must not be empty")

        listing = await self._comment_listing(post_id)
        comments = []
        for record in listing["records"]:
            comment = Comment.from_record(record)
            comment.reactions = [
                CommentReaction.from_record(reaction)
                for reaction in listing["reactions"].get(comment.id, [])
            ]
            comments.append(comment)
        return build_forest(comments, "parent_id")

    @operation
    async def post_comment(
        self,
        post_id: str,
        content: str,
        parent_id: str | None = None,
    ) -> Comment:
        caller = await self._require_caller()
        if not post_id or not post_id.strip():
            raise ValidationFailedError("post_id must not be empty")
        content = self._clean_text(content)

        if parent_id:
            parent = await self._get_record(COMMENTS, parent_id, "Parent comment")
            if parent.get("post_id") != post_id:
                raise ValidationFailedError("Parent comment belongs to another post")
            await self._check_depth(COMMENTS, parent, "parent_id")

        record = await self.store.create(
            COMMENTS,
            {
                "post_id": post_id,
                "user_id": caller.id,
                "user_name": caller.display_name,
                "parent_id": parent_id or None,
                "content": content,
                "is_approved": True,
            },
        )
        await self._invalidate(COMMENTS_KIND, post_id)

        logger.info(
            "comment_created",
            comment_id=record["id"],
            post_id=post_id,
            parent_id=parent_id,
        )
        return Comment.from_record(record)

    @operation
    async def edit_comment(self, comment_id: str, content: str) -> Comment:
        """Update comment content.

        The returned comment carries its current reactions but no replies;
        clients keep the children they already loaded.
        """
        caller = await self._require_caller()
        comment = Comment.from_record(
            await self._get_record(COMMENTS, comment_id, "Comment")
        )
        if not can_mutate(comment, caller):
            raise ForbiddenError("Only the author can edit this comment")
        content = self._clean_text(content)

        record = await self.store.update(COMMENTS, comment_id, {"content": content})
        await self._invalidate(COMMENTS_KIND, comment.post_id)

        updated = Comment.from_record(record)
        reactions = await self.reactions.reactions_for([comment_id])
        updated.reactions = reactions[comment_id]
        logger.info("comment_updated", comment_id=comment_id, user_id=caller.id)
        return updated

    @operation
    async def delete_comment(self, comment_id: str) -> Deletion:
        """Delete a comment.

        Only the row itself is removed. Its replies stay stored and resurface
        as roots on the next listing; clients drop the cached subtree.
        """
        caller = await self._require_caller()
        comment = Comment.from_record(
            await self._get_record(COMMENTS, comment_id, "Comment")
        )
        if not can_mutate(comment, caller):
            raise ForbiddenError("Only the author can delete this comment")

        await self.store.delete(COMMENTS, comment_id)
        try:
            await self.reactions.purge(comment_id)
        except StoreError as e:
            logger.warning(
                "reaction_purge_failed",
                comment_id=comment_id,
                error=e.message,
            )
        await self._invalidate(COMMENTS_KIND, comment.post_id)

        logger.info("comment_deleted", comment_id=comment_id, user_id=caller.id)
        return Deletion(
            id=comment.id,
            parent_id=comment.parent_id,
            scope_id=comment.post_id,
        )

    @operation
    async def toggle_reaction(
        self,
        comment_id: str,
        reaction_type: ReactionType | str,
    ) -> ReactionState:
        """React to a comment.

        Repeating the active reaction removes it; any other type replaces it.
        """
        caller = await self._require_caller()
        try:
            reaction_type = ReactionType(reaction_type)
        except ValueError as e:
            msg = f"Unknown reaction type: {reaction_type}"
            raise ValidationFailedError(msg) from e
        comment = Comment.from_record(
            await self._get_record(COMMENTS, comment_id, "Comment")
        )

        current = await self.reactions.user_reaction(comment_id, caller.id)
        active: CommentReaction | None
        if current is not None and current.reaction_type == reaction_type:
            await self.reactions.remove_reaction(comment_id, caller.id, reaction_type)
            active = None
        else:
            active = await self.reactions.add_reaction(
                comment_id, caller.id, reaction_type
            )
        await self._invalidate(COMMENTS_KIND, comment.post_id)

        reactions = await self.reactions.reactions_for([comment_id])
        logger.info(
            "reaction_toggled",
            comment_id=comment_id,
            user_id=caller.id,
            reaction_type=reaction_type.value,
            active=active is not None,
        )
        return ReactionState(
            comment_id=comment_id,
            user_id=caller.id,
            active=active,
            reactions=reactions[comment_id],
        )

    # ==========================================================================
    # Forums and posts
    # ==========================================================================

    @operation
    async def list_forums(self, active_only: bool = True) -> list[Forum]:
        filters = {"is_active": True} if active_only else None
        records = await self.store.list(
            FORUMS, filters, order=[asc("order"), asc("created_at")]
        )
        return [Forum.from_record(record) for record in records]

    @operation
    async def get_forum_by_slug(self, slug: str) -> Forum:
        records = await self.store.list(FORUMS, {"slug": slug}, limit=1)
        if not records:
            raise NotFoundError("Forum not found")
        return Forum.from_record(records[0])

    @operation
    async def list_forum_posts(
        self, forum_id: str, limit: int | None = None
    ) -> list[ForumPost]:
        """Posts of a forum, pinned first, then newest first."""
        if limit is None:
            limit = self.settings.forum_posts_default_limit
        if limit < 1:
            raise ValidationFailedError("limit must be at least 1")

        records = await self.store.list(
            FORUM_POSTS,
            {"forum_id": forum_id},
            order=[desc("is_pinned"), desc("created_at")],
            limit=limit,
        )
        return [ForumPost.from_record(record) for record in records]

    @operation
    async def get_forum_post(self, post_id: str, count_view: bool = False) -> ForumPost:
        post = ForumPost.from_record(
            await self._get_record(FORUM_POSTS, post_id, "Post")
        )
        if count_view and await self.counters.post_viewed(post_id):
            post.view_count += 1
        return post

    @operation
    async def create_forum_post(
        self, forum_id: str, title: str, content: str
    ) -> ForumPost:
        caller = await self._require_caller()
        await self._get_record(FORUMS, forum_id, "Forum")
        title = self._clean_text(title, "title")
        content = self._clean_text(content)

        record = await self.store.create(
            FORUM_POSTS,
            {
                "forum_id": forum_id,
                "user_id": caller.id,
                "user_name": caller.display_name,
                "title": title,
                "content": content,
                "is_pinned": False,
                "is_solved": False,
                "is_closed": False,
                "view_count": 0,
                "upvote_count": 0,
                "downvote_count": 0,
                "reply_count": 0,
                "last_reply_at": None,
            },
        )
        await self.counters.forum_post_created(forum_id)

        logger.info(
            "forum_post_created",
            post_id=record["id"],
            forum_id=forum_id,
            user_id=caller.id,
        )
        return ForumPost.from_record(record)

    async def _set_post_flags(self, post_id: str, **flags: bool) -> ForumPost:
        caller = await self._require_caller()
        await self._get_record(FORUM_POSTS, post_id, "Post")
        record = await self.store.update(FORUM_POSTS, post_id, flags)
        logger.info(
            "forum_post_flags_updated", post_id=post_id, user_id=caller.id, **flags
        )
        return ForumPost.from_record(record)

    @operation
    async def close_forum_post(self, post_id: str) -> ForumPost:
        """Close a post to new replies. Reserved to the post author."""
        caller = await self._require_caller()
        post = ForumPost.from_record(
            await self._get_record(FORUM_POSTS, post_id, "Post")
        )
        if not can_close(post, caller):
            raise ForbiddenError("Only the author can close this post")

        record = await self.store.update(FORUM_POSTS, post_id, {"is_closed": True})
        logger.info("forum_post_closed", post_id=post_id, user_id=caller.id)
        return ForumPost.from_record(record)

    @operation
    async def pin_post(self, post_id: str, pinned: bool = True) -> ForumPost:
        return await self._set_post_flags(post_id, is_pinned=pinned)

    @operation
    async def mark_solved(self, post_id: str, solved: bool = True) -> ForumPost:
        return await self._set_post_flags(post_id, is_solved=solved)

    # ==========================================================================
    # Replies
    # ==========================================================================

    async def _reply_records(self, forum_post_id: str) -> list[Record]:
        async def load() -> dict[str, Any]:
            records = await self.store.list(
                FORUM_REPLIES,
                {"forum_post_id": forum_post_id},
                order=[asc("created_at")],
            )
            return {"records": records}

        listing = await self._cached_listing(REPLIES_KIND, forum_post_id, load)
        return listing["records"]

    @operation
    async def list_reply_thread(self, forum_post_id: str) -> list[ForumReply]:
        records = await self._reply_records(forum_post_id)
        replies = [ForumReply.from_record(record) for record in records]
        return build_forest(replies, "parent_reply_id")

    @operation
    async def reply_to_forum_post(
        self,
        forum_post_id: str,
        content: str,
        parent_reply_id: str | None = None,
    ) -> ForumReply:
        caller = await self._require_caller()
        post = ForumPost.from_record(
            await self._get_record(FORUM_POSTS, forum_post_id, "Post")
        )
        if post.is_closed:
            raise ForbiddenError("Post is closed to new replies")
        content = self._clean_text(content)

        if parent_reply_id:
            parent = await self._get_record(
                FORUM_REPLIES, parent_reply_id, "Parent reply"
            )
            if parent.get("forum_post_id") != forum_post_id:
                raise ValidationFailedError("Parent reply belongs to another post")
            await self._check_depth(FORUM_REPLIES, parent, "parent_reply_id")

        record = await self.store.create(
            FORUM_REPLIES,
            {
                "forum_post_id": forum_post_id,
                "user_id": caller.id,
                "user_name": caller.display_name,
                "content": content,
                "is_helpful": False,
                "upvote_count": 0,
                "parent_reply_id": parent_reply_id or None,
            },
        )
        reply = ForumReply.from_record(record)
        await self.counters.reply_created(forum_post_id, reply.created_at or utcnow())
        await self._invalidate(REPLIES_KIND, forum_post_id)

        logger.info(
            "forum_reply_created",
            reply_id=reply.id,
            post_id=forum_post_id,
            parent_reply_id=parent_reply_id,
        )
        return reply

    @operation
    async def edit_reply(self, reply_id: str, content: str) -> ForumReply:
        caller = await self._require_caller()
        reply = ForumReply.from_record(
            await self._get_record(FORUM_REPLIES, reply_id, "Reply")
        )
        if not can_mutate(reply, caller):
            raise ForbiddenError("Only the author can edit this reply")
        content = self._clean_text(content)

        record = await self.store.update(FORUM_REPLIES, reply_id, {"content": content})
        await self._invalidate(REPLIES_KIND, reply.forum_post_id)
        logger.info("forum_reply_updated", reply_id=reply_id, user_id=caller.id)
        return ForumReply.from_record(record)

    @operation
    async def delete_reply(self, reply_id: str) -> Deletion:
        caller = await self._require_caller()
        reply = ForumReply.from_record(
            await self._get_record(FORUM_REPLIES, reply_id, "Reply")
        )
        if not can_mutate(reply, caller):
            raise ForbiddenError("Only the author can delete this reply")

        await self.store.delete(FORUM_REPLIES, reply_id)
        await self.counters.reply_deleted(reply.forum_post_id)
        await self._invalidate(REPLIES_KIND, reply.forum_post_id)

        logger.info("forum_reply_deleted", reply_id=reply_id, user_id=caller.id)
        return Deletion(
            id=reply.id,
            parent_id=reply.parent_reply_id,
            scope_id=reply.forum_post_id,
        )

    @operation
    async def mark_helpful(self, reply_id: str, helpful: bool = True) -> ForumReply:
        caller = await self._require_caller()
        reply = ForumReply.from_record(
            await self._get_record(FORUM_REPLIES, reply_id, "Reply")
        )
        record = await self.store.update(
            FORUM_REPLIES, reply_id, {"is_helpful": helpful}
        )
        await self._invalidate(REPLIES_KIND, reply.forum_post_id)
        logger.info(
            "forum_reply_marked_helpful",
            reply_id=reply_id,
            user_id=caller.id,
            helpful=helpful,
        )
        return ForumReply.from_record(record)

    # ==========================================================================
    # Votes
    # ==========================================================================

    @operation
    async def upvote(self, target_id: str) -> bool:
        """Upvote a post or a reply.

        Returns:
            False if the caller had already voted on the target
        """
        caller = await self._require_caller()
        collection = FORUM_POSTS
        target = await self.store.get(FORUM_POSTS, target_id) if target_id else None
        if target is None and target_id:
            collection = FORUM_REPLIES
            target = await self.store.get(FORUM_REPLIES, target_id)
        if target is None:
            raise NotFoundError("Vote target not found")

        applied = await self.votes.upvote(target_id, caller.id)
        if applied:
            await self.counters.vote_recorded(collection, target_id)
            if collection == FORUM_REPLIES:
                await self._invalidate(REPLIES_KIND, target["forum_post_id"])
            logger.info(
                "vote_recorded",
                target_id=target_id,
                collection=collection,
                user_id=caller.id,
            )
        return applied

    @operation
    async def has_voted(self, target_id: str) -> bool:
        caller = await self.identity.current_user()
        if caller is None:
            return False
        return await self.votes.has_voted(target_id, caller.id)

    # ==========================================================================
    # Reconciliation
    # ==========================================================================

    @operation
    async def recount_counters(
        self,
        forum_post_id: str | None = None,
        forum_id: str | None = None,
    ) -> dict[str, int]:
        """Recompute denormalized counters from the stored rows.

        Repairs drift left by concurrent read-then-write counter updates.
        Restricted to elevated roles.
        """
        caller = await self._require_caller()
        if not is_elevated(caller.role):
            raise ForbiddenError("Recounting requires an elevated role")
        if not forum_post_id and not forum_id:
            raise ValidationFailedError("Nothing to recount")

        counts: dict[str, int] = {}
        if forum_id:
            await self._get_record(FORUMS, forum_id, "Forum")
            counts["post_count"] = await self.counters.recount_forum_posts(forum_id)
        if forum_post_id:
            await self._get_record(FORUM_POSTS, forum_post_id, "Post")
            counts["reply_count"] = await self.counters.recount_replies(forum_post_id)
            counts["upvote_count"] = await self.counters.recount_votes(
                FORUM_POSTS, forum_post_id
            )
            await self._invalidate(REPLIES_KIND, forum_post_id)

        logger.info("counters_recounted", user_id=caller.id, **counts)
        return counts
