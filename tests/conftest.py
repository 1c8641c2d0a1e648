"""
Pytest fixtures for testing.
"""
import pytest
import pytest_asyncio
from typing import AsyncGenerator, Callable

import httpx
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool

# Import database module first so the engine can be swapped
import proconnect.database
from proconnect.database import init_models
from proconnect.schemas.account import Account
from proconnect.services.persistence import KeyValueStorage
from proconnect.services.supabase_client import SupabaseClient
from proconnect.stores import ConnectionsStore, JobsStore, MessagesStore, PostsStore, SessionStore

from fake_backend import FAKE_URL, FakeBackendState, create_fake_backend
import sample_rows


# Test database URL (use in-memory SQLite for fast tests)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture
def backend() -> FakeBackendState:
    """Empty fake backend; tests seed the tables they need."""
    return FakeBackendState()


@pytest_asyncio.fixture
async def remote(backend: FakeBackendState) -> AsyncGenerator[SupabaseClient, None]:
    """
    Real SupabaseClient wired to the fake backend through ASGITransport.
    """
    transport = httpx.ASGITransport(app=create_fake_backend(backend))
    async with httpx.AsyncClient(transport=transport, base_url=FAKE_URL) as http:
        yield SupabaseClient(FAKE_URL, "test-anon-key", http_client=http)


@pytest_asyncio.fixture
async def storage_engine():
    """
    Fresh in-memory database for each test, swapped into proconnect.database.
    """
    # StaticPool keeps one connection alive so every session sees the same DB
    test_engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    await init_models(test_engine)

    original_engine = proconnect.database.engine
    original_sessionmaker = proconnect.database.AsyncSessionLocal

    proconnect.database.engine = test_engine
    proconnect.database.AsyncSessionLocal = async_sessionmaker(
        test_engine, class_=AsyncSession, expire_on_commit=False
    )

    try:
        yield test_engine
    finally:
        proconnect.database.engine = original_engine
        proconnect.database.AsyncSessionLocal = original_sessionmaker
        await test_engine.dispose()


@pytest_asyncio.fixture
async def storage(storage_engine) -> KeyValueStorage:
    return KeyValueStorage()


@pytest.fixture
def member(backend: FakeBackendState) -> dict:
    """
    A registered account with a stored profile row.
    """
    user = backend.add_user(
        sample_rows.MEMBER_EMAIL,
        sample_rows.MEMBER_PASSWORD,
        full_name="Sarah Johnson",
    )
    backend.seed("profiles", [{
        "id": user["id"],
        "email": user["email"],
        "full_name": "Sarah Johnson",
        "headline": "Product Manager at TechCorp",
        "location": "San Francisco, CA",
        "current_position": "Senior Product Manager",
        "connections_count": 487,
    }])
    return user


@pytest.fixture
def session_store(remote: SupabaseClient, storage: KeyValueStorage) -> SessionStore:
    """Signed-out session store backed by the test database."""
    return SessionStore(remote, storage=storage)


@pytest_asyncio.fixture
async def signed_in(session_store: SessionStore, member: dict) -> SessionStore:
    """Session store after a successful login as `member`."""
    assert await session_store.login(sample_rows.MEMBER_EMAIL, sample_rows.MEMBER_PASSWORD)
    return session_store


@pytest.fixture
def make_session(remote: SupabaseClient) -> Callable[..., SessionStore]:
    """
    Factory for sessions holding an account without talking to the backend.

    Several sessions can share one fake backend to act as different viewers.
    """
    def build(account_id: str, **fields) -> SessionStore:
        session = SessionStore(remote)
        session.account = Account(id=account_id, email=f"{account_id}@example.com", **fields)
        session.is_authenticated = True
        return session

    return build


@pytest.fixture
def offline_session(make_session) -> SessionStore:
    return make_session("me", full_name="Test Member")


@pytest.fixture
def posts_store(remote: SupabaseClient, offline_session: SessionStore) -> PostsStore:
    return PostsStore(remote, offline_session)


@pytest.fixture
def jobs_store(remote: SupabaseClient, offline_session: SessionStore) -> JobsStore:
    return JobsStore(remote, offline_session)


@pytest.fixture
def connections_store(remote: SupabaseClient, offline_session: SessionStore) -> ConnectionsStore:
    return ConnectionsStore(remote, offline_session)


@pytest.fixture
def messages_store(remote: SupabaseClient, offline_session: SessionStore) -> MessagesStore:
    return MessagesStore(remote, offline_session)
