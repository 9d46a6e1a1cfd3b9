"""Identity providers: who is the caller of the current operation."""

from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from discussion_engine.core.context import get_user

from .permissions import UserRole, parse_role


@dataclass(frozen=True)
class Caller:
    """Authenticated user as seen by the discussion engine."""

    id: str
    role: UserRole = UserRole.USER
    display_name: str | None = None

    @classmethod
    def of(
        cls,
        user_id: str,
        role: UserRole | str | None = None,
        display_name: str | None = None,
    ) -> "Caller":
        return cls(id=str(user_id), role=parse_role(role), display_name=display_name)


@runtime_checkable
class IdentityProvider(Protocol):
    """Resolves the caller of the current session."""

    async def current_user(self) -> Caller | None: ...


class StaticIdentityProvider:
    """Identity provider returning a fixed, swappable caller.

    Used by tests and scripts acting on behalf of one user at a time.
    """

    def __init__(self, caller: Caller | None = None):
        self.caller = caller

    def login(
        self,
        user_id: str,
        role: UserRole | str | None = None,
        display_name: str | None = None,
    ) -> Caller:
        self.caller = Caller.of(user_id, role, display_name)
        return self.caller

    def logout(self) -> None:
        self.caller = None

    async def current_user(self) -> Caller | None:
        return self.caller


class ContextIdentityProvider:
    """Identity provider reading the request context variables.

    The HTTP layer decodes the bearer token once per request and stores the
    user in ``discussion_engine.core.context``.
    """

    async def current_user(self) -> Caller | None:
        user_id, role, display_name = get_user()
        if not user_id:
            return None
        return Caller.of(user_id, role, display_name)
