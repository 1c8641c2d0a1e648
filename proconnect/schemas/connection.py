"""Connection-related Pydantic schemas."""
from datetime import datetime
from enum import Enum
from typing import Optional
from pydantic import BaseModel, ConfigDict

from proconnect.schemas.account import Account


class ConnectionStatus(str, Enum):
    """Valid states for a connection"""
    PENDING = "pending"
    ACCEPTED = "accepted"


class Connection(BaseModel):
    """A link between the requester and the target account."""
    id: str
    user_id: str
    connected_user_id: str
    status: ConnectionStatus
    created_at: datetime
    connected_user: Optional[Account] = None
    
    model_config = ConfigDict(frozen=True, extra="ignore")

    def involves(self, account_id: str) -> bool:
        return account_id in (self.user_id, self.connected_user_id)
