from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, String

from proconnect.database import Base
from proconnect.database_types import JSONText


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PersistedState(Base):
    """One named JSON document in local key-value storage."""
    __tablename__ = "persisted_state"
    
    key = Column(String(255), primary_key=True)
    value = Column(JSONText, nullable=True)
    
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False)
