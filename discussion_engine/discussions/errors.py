"""Typed failures and results returned by the discussion service."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Generic, TypeVar

from discussion_engine.comments.models import CommentReaction


T = TypeVar("T")


class ErrorKind(str, Enum):
    UNAUTHENTICATED = "unauthenticated"
    FORBIDDEN = "forbidden"
    NOT_FOUND = "not_found"
    VALIDATION_FAILED = "validation_failed"
    STORE_UNAVAILABLE = "store_unavailable"


# ==============================================================================
# Custom Exceptions
# ==============================================================================


class DiscussionError(Exception):
    """Base discussion error."""

    def __init__(self, message: str, kind: ErrorKind):
        self.message = message
        self.kind = kind
        super().__init__(message)


class UnauthenticatedError(DiscussionError):
    def __init__(self, message: str = "Authentication required"):
        super().__init__(message, ErrorKind.UNAUTHENTICATED)


class ForbiddenError(DiscussionError):
    """Caller lacks the rights for the operation."""

    def __init__(self, message: str = "Permission denied"):
        super().__init__(message, ErrorKind.FORBIDDEN)


class NotFoundError(DiscussionError):
    def __init__(self, message: str = "Not found"):
        super().__init__(message, ErrorKind.NOT_FOUND)


class ValidationFailedError(DiscussionError):
    """Input rejected (empty content, depth cap, parent on another thread)."""

    def __init__(self, message: str = "Validation failed"):
        super().__init__(message, ErrorKind.VALIDATION_FAILED)


# ==============================================================================
# Results
# ==============================================================================


@dataclass(frozen=True)
class Failure:
    kind: ErrorKind
    message: str


@dataclass(frozen=True)
class Result(Generic[T]):
    """Outcome of a service operation: either ``value`` or ``error`` is set."""

    ok: bool
    value: T | None = None
    error: Failure | None = None

    @classmethod
    def success(cls, value: T) -> "Result[T]":
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, kind: ErrorKind, message: str) -> "Result[T]":
        return cls(ok=False, error=Failure(kind, message))

    @classmethod
    def from_error(cls, error: DiscussionError) -> "Result[T]":
        return cls.failure(error.kind, error.message)

    def unwrap(self) -> T:
        """Return the value, raising the matching DiscussionError on failure."""
        if self.ok:
            return self.value  # type: ignore[return-value]
        assert self.error is not None
        raise DiscussionError(self.error.message, self.error.kind)


@dataclass(frozen=True)
class Deletion:
    """What a client needs to drop a node from its cached thread.

    ``scope_id`` is the article id for comments and the forum post id for
    replies.
    """

    id: str
    parent_id: str | None
    scope_id: str


@dataclass(frozen=True)
class ReactionState:
    """A user's reaction on a comment after a toggle."""

    comment_id: str
    user_id: str
    active: CommentReaction | None
    reactions: list[CommentReaction] = field(default_factory=list)
