"""Shared fixtures: in-memory store, switchable caller, service and HTTP client."""

import asyncio
from collections.abc import Callable

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient

from discussion_engine.auth import ContextIdentityProvider, StaticIdentityProvider
from discussion_engine.auth.security import create_access_token
from discussion_engine.config import Settings
from discussion_engine.discussions import DiscussionService
from discussion_engine.forums import FORUMS
from discussion_engine.main import create_app
from discussion_engine.store import InMemoryRecordStore


@pytest.fixture
def settings() -> Settings:
    """Test settings (no Redis, in-memory store, default rules)."""
    return Settings(
        environment="testing",
        store_backend="memory",
        redis_enabled=False,
        max_thread_depth=3,
        counter_mode="read_write",
    )


@pytest.fixture
def store() -> InMemoryRecordStore:
    return InMemoryRecordStore()


class YieldingRecordStore(InMemoryRecordStore):
    """Hands control to the event loop before every read and write.

    Lets concurrent operations interleave between their store calls the way
    they do against a networked backend.
    """

    async def get(self, collection, record_id):
        await asyncio.sleep(0)
        return await super().get(collection, record_id)

    async def list(self, collection, filters=None, order=None, limit=None):
        await asyncio.sleep(0)
        return await super().list(collection, filters, order, limit)

    async def create(self, collection, fields, record_id=None):
        await asyncio.sleep(0)
        return await super().create(collection, fields, record_id)

    async def update(self, collection, record_id, fields):
        await asyncio.sleep(0)
        return await super().update(collection, record_id, fields)

    async def delete(self, collection, record_id):
        await asyncio.sleep(0)
        return await super().delete(collection, record_id)


@pytest.fixture
def yielding_store() -> YieldingRecordStore:
    return YieldingRecordStore()


@pytest.fixture
def identity() -> StaticIdentityProvider:
    """Anonymous until a test calls ``identity.login(...)``."""
    return StaticIdentityProvider()


@pytest.fixture
def service(
    store: InMemoryRecordStore,
    identity: StaticIdentityProvider,
    settings: Settings,
) -> DiscussionService:
    return DiscussionService(store=store, identity=identity, settings=settings)


@pytest_asyncio.fixture
async def forum(store: InMemoryRecordStore) -> dict:
    """An active forum with no posts."""
    return await store.create(
        FORUMS,
        {
            "slug": "pregnancy",
            "name": {"az": "Hamiləlik", "ru": "Беременность"},
            "description": None,
            "is_active": True,
            "order": 1,
            "post_count": 0,
        },
    )


@pytest.fixture
def client(store: InMemoryRecordStore, settings: Settings) -> TestClient:
    """HTTP client over the app, wired to the shared in-memory store.

    The lifespan is not entered, so the service is installed directly.
    """
    app = create_app()
    app.state.discussion_service = DiscussionService(
        store=store,
        identity=ContextIdentityProvider(),
        settings=settings,
    )
    return TestClient(app)


@pytest.fixture
def auth_headers() -> Callable[..., dict[str, str]]:
    """Build an Authorization header for a user id and role."""

    def _headers(user_id: str, role: str = "user") -> dict[str, str]:
        token = create_access_token(user_id, role=role, name=f"User {user_id}")
        return {"Authorization": f"Bearer {token}"}

    return _headers
