"""
Local database for state that survives process restarts.

Only the session store writes here; everything else is memory-only.
"""
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from proconnect.config import settings


class Base(DeclarativeBase):
    pass


engine = create_async_engine(settings.storage_url, echo=settings.debug)
AsyncSessionLocal = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def init_models(bind: Optional[AsyncEngine] = None) -> None:
    """Create the local tables if they do not exist yet."""
    # Models must be imported so Base.metadata knows about their tables
    from proconnect.models import persisted_state  # noqa: F401

    async with (bind or engine).begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
