"""Role-based mutation rights for discussion nodes.

Roles:
- ADMIN: full moderation rights
- AUTHOR: content author (writes articles), same override rights as ADMIN
- USER: registered reader, may only touch their own nodes
"""

from enum import Enum
from typing import TYPE_CHECKING, Any


if TYPE_CHECKING:
    from .identity import Caller


class UserRole(str, Enum):
    """Site roles relevant to the discussion engine."""

    USER = "user"
    AUTHOR = "author"
    ADMIN = "admin"


# Roles allowed to edit or delete other people's comments and replies
ELEVATED_ROLES: frozenset[UserRole] = frozenset({UserRole.ADMIN, UserRole.AUTHOR})


def parse_role(role: UserRole | str | None) -> UserRole:
    """Coerce a role value, treating unknown or missing roles as USER."""
    if isinstance(role, UserRole):
        return role
    try:
        return UserRole(role)
    except ValueError:
        return UserRole.USER


def is_elevated(role: UserRole | str | None) -> bool:
    """Check if role carries override rights.

    Examples:
        >>> is_elevated("admin")
        True
        >>> is_elevated("user")
        False
    """
    return parse_role(role) in ELEVATED_ROLES


def is_owner(node: Any, caller: "Caller") -> bool:
    """Check if caller authored the node."""
    return node.author_id == caller.id


def can_mutate(node: Any, caller: "Caller | None") -> bool:
    """Check if caller may edit or delete a comment or forum reply.

    True for the node's author and for any elevated role.
    """
    if caller is None:
        return False
    return is_owner(node, caller) or is_elevated(caller.role)


def can_close(post: Any, caller: "Caller | None") -> bool:
    """Check if caller may close a forum post.

    Closing is reserved to the post author; elevated roles get no override.
    """
    if caller is None:
        return False
    return is_owner(post, caller)
