"""Messaging Pydantic schemas."""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict

from proconnect.schemas.account import Account


class Message(BaseModel):
    id: str
    sender_id: str
    receiver_id: str
    content: str
    created_at: datetime
    read: bool = False
    conversation_id: Optional[str] = None
    
    model_config = ConfigDict(frozen=True, extra="ignore")


class Conversation(BaseModel):
    """Per-counterpart summary of a message thread."""
    id: str
    user: Account
    last_message: Optional[str] = None
    last_message_time: Optional[datetime] = None
    unread_count: int = 0
    
    model_config = ConfigDict(frozen=True, extra="ignore")
