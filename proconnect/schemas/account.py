"""Account-related Pydantic schemas."""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict


class Account(BaseModel):
    """A member of the network, as stored in the `profiles` table."""
    id: str
    email: Optional[str] = None
    full_name: Optional[str] = None
    avatar_url: Optional[str] = None
    
    # Profile fields
    headline: Optional[str] = None
    location: Optional[str] = None
    about: Optional[str] = None
    current_position: Optional[str] = None
    
    connections_count: int = 0
    created_at: Optional[datetime] = None
    
    model_config = ConfigDict(frozen=True, extra="ignore")


class ProfileUpdateRequest(BaseModel):
    """Partial profile update; unset fields are left alone."""
    full_name: Optional[str] = None
    headline: Optional[str] = None
    location: Optional[str] = None
    about: Optional[str] = None
    current_position: Optional[str] = None
    avatar_url: Optional[str] = None
    
    model_config = ConfigDict(extra="forbid")
