"""
Local key-value storage for state that must survive a restart.

Each key holds one JSON document. Backed by the local SQLAlchemy database.
"""
import logging
from typing import Any, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

import proconnect.database
from proconnect.errors import StorageError
from proconnect.models.persisted_state import PersistedState

logger = logging.getLogger(__name__)


class KeyValueStorage:
    """Async get/set/remove of JSON documents by key."""

    def __init__(self, session_factory: Optional[async_sessionmaker[AsyncSession]] = None):
        self._session_factory = session_factory

    def _session(self) -> AsyncSession:
        # Resolved lazily so tests can swap the module-level sessionmaker
        factory = self._session_factory or proconnect.database.AsyncSessionLocal
        return factory()

    async def get_item(self, key: str) -> Optional[Any]:
        try:
            async with self._session() as db:
                result = await db.execute(
                    select(PersistedState).where(PersistedState.key == key)
                )
                row = result.scalar_one_or_none()
                return row.value if row else None
        except SQLAlchemyError as e:
            logger.error(f"Failed to read '{key}' from local storage: {e}")
            raise StorageError(f"Could not read local state '{key}'") from e

    async def set_item(self, key: str, value: Any) -> None:
        try:
            async with self._session() as db:
                row = await db.get(PersistedState, key)
                if row is None:
                    db.add(PersistedState(key=key, value=value))
                else:
                    row.value = value
                await db.commit()
        except SQLAlchemyError as e:
            logger.error(f"Failed to write '{key}' to local storage: {e}")
            raise StorageError(f"Could not save local state '{key}'") from e

    async def remove_item(self, key: str) -> None:
        try:
            async with self._session() as db:
                row = await db.get(PersistedState, key)
                if row is not None:
                    await db.delete(row)
                    await db.commit()
        except SQLAlchemyError as e:
            logger.error(f"Failed to remove '{key}' from local storage: {e}")
            raise StorageError(f"Could not clear local state '{key}'") from e
