"""Tests for identity providers and access token decoding."""

import pytest
from jose import JWTError

from discussion_engine.auth import (
    Caller,
    ContextIdentityProvider,
    IdentityProvider,
    StaticIdentityProvider,
    UserRole,
)
from discussion_engine.auth.security import (
    caller_from_token,
    create_access_token,
    decode_access_token,
)
from discussion_engine.core.context import RequestContext


class TestStaticIdentityProvider:
    """Tests for the swappable provider."""

    @pytest.mark.asyncio
    async def test_login_and_logout(self) -> None:
        provider = StaticIdentityProvider()
        assert await provider.current_user() is None

        caller = provider.login("u1", "admin", "Aysel")

        assert await provider.current_user() == caller
        assert caller.role is UserRole.ADMIN
        assert caller.display_name == "Aysel"

        provider.logout()
        assert await provider.current_user() is None

    def test_satisfies_protocol(self) -> None:
        assert isinstance(StaticIdentityProvider(), IdentityProvider)
        assert isinstance(ContextIdentityProvider(), IdentityProvider)


class TestContextIdentityProvider:
    """Tests for the provider backed by request context variables."""

    @pytest.mark.asyncio
    async def test_reads_request_context(self) -> None:
        provider = ContextIdentityProvider()

        with RequestContext(user_id="u7", role="author", display_name="Leyla"):
            caller = await provider.current_user()

        assert caller == Caller("u7", UserRole.AUTHOR, "Leyla")

    @pytest.mark.asyncio
    async def test_anonymous_outside_context(self) -> None:
        with RequestContext():
            assert await ContextIdentityProvider().current_user() is None


class TestAccessTokens:
    """Tests for token round trip and rejection."""

    def test_caller_from_token(self) -> None:
        token = create_access_token("u1", role="admin", name="Admin")

        caller = caller_from_token(token)

        assert caller == Caller("u1", UserRole.ADMIN, "Admin")

    def test_unknown_role_claim_is_user(self) -> None:
        token = create_access_token("u1", role="superuser")

        assert caller_from_token(token).role is UserRole.USER

    def test_expired_token_rejected(self) -> None:
        token = create_access_token("u1", expires_minutes=-1)

        with pytest.raises(JWTError):
            decode_access_token(token)

    def test_garbage_token_rejected(self) -> None:
        with pytest.raises(JWTError):
            decode_access_token("not-a-token")
