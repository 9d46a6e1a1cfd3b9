"""Discussion service.

Composes the record store, ledgers, counters and permission checks into the
comment and forum operations the application calls.

Note: Router is not exported here to avoid circular imports.
Import directly from discussion_engine.discussions.router when needed.
"""

from .cache import COMMENTS_KIND, REPLIES_KIND, ThreadListingCache
from .errors import (
    Deletion,
    DiscussionError,
    ErrorKind,
    Failure,
    ReactionState,
    Result,
)
from .service import DiscussionService


__all__ = [
    "COMMENTS_KIND",
    "REPLIES_KIND",
    "Deletion",
    "DiscussionError",
    "DiscussionService",
    "ErrorKind",
    "Failure",
    "ReactionState",
    "Result",
    "ThreadListingCache",
]
