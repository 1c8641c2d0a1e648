"""
Application container for the ProConnect client.

The app root builds one AppContainer and hands its stores to the screens:
- Owns the backend client and local storage
- Wires the five stores together (the session store is shared)
- Restores the persisted session on startup, closes connections on shutdown
"""
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

import httpx
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from proconnect.config import Settings, settings as default_settings
from proconnect.database import init_models
from proconnect.services.persistence import KeyValueStorage
from proconnect.services.supabase_client import SupabaseClient
from proconnect.stores import ConnectionsStore, JobsStore, MessagesStore, PostsStore, SessionStore

logger = logging.getLogger(__name__)


def configure_logging(config: Settings = default_settings) -> None:
    """Configure root logging once at application start."""
    level = logging.DEBUG if config.debug else getattr(logging, config.log_level.upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )


class AppContainer:
    """Explicitly constructed owner of every store."""

    def __init__(
        self,
        remote: SupabaseClient,
        storage: Optional[KeyValueStorage] = None,
        config: Settings = default_settings,
    ):
        self.config = config
        self.remote = remote
        self.storage = storage
        self.session = SessionStore(
            remote,
            storage=storage,
            storage_key=config.session_storage_key,
            token_storage_key=config.token_storage_key,
            avatars_bucket=config.avatars_bucket,
        )
        self.posts = PostsStore(remote, self.session, posts_bucket=config.posts_bucket)
        self.jobs = JobsStore(remote, self.session)
        self.connections = ConnectionsStore(remote, self.session)
        self.messages = MessagesStore(remote, self.session)

    @property
    def stores(self):
        return (self.session, self.posts, self.jobs, self.connections, self.messages)


@asynccontextmanager
async def open_container(
    config: Settings = default_settings,
    http_client: Optional[httpx.AsyncClient] = None,
    persist_session: bool = True,
) -> AsyncIterator[AppContainer]:
    """
    Build the container for the lifetime of the app.

    On startup: open the local database at `config.storage_url`, create its
    tables and restore the saved session
    On shutdown: close the backend client and the local database
    """
    # Startup
    logger.info("🚀 Starting ProConnect client...")
    logger.info(f"🌐 Backend: {config.supabase_url}")

    remote = SupabaseClient(
        config.supabase_url,
        config.supabase_anon_key,
        http_client=http_client,
        timeout=config.request_timeout_seconds,
    )
    engine: Optional[AsyncEngine] = None
    storage = None

    try:
        if persist_session:
            engine = create_async_engine(config.storage_url, echo=config.debug)
            await init_models(engine)
            storage = KeyValueStorage(
                session_factory=async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
            )

        container = AppContainer(remote, storage=storage, config=config)
        await container.session.restore()
        yield container
    finally:
        # Shutdown
        logger.info("👋 Shutting down ProConnect client...")
        await remote.aclose()
        if engine is not None:
            await engine.dispose()
