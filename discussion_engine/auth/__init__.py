"""Caller identity and mutation rights."""

from .identity import (
    Caller,
    ContextIdentityProvider,
    IdentityProvider,
    StaticIdentityProvider,
)
from .permissions import (
    ELEVATED_ROLES,
    UserRole,
    can_close,
    can_mutate,
    is_elevated,
)


__all__ = [
    "ELEVATED_ROLES",
    "Caller",
    "ContextIdentityProvider",
    "IdentityProvider",
    "StaticIdentityProvider",
    "UserRole",
    "can_close",
    "can_mutate",
    "is_elevated",
]
