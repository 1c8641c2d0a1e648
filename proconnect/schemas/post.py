"""Post-related Pydantic schemas."""
import time
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict

from proconnect.schemas.account import Account


class Post(BaseModel):
    """A feed post with its denormalized author and per-viewer like flag."""
    id: str
    user_id: str
    content: str = ""
    image_url: Optional[str] = None
    likes_count: int = 0
    comments_count: int = 0
    created_at: datetime
    user: Optional[Account] = None
    liked_by_me: bool = False
    
    model_config = ConfigDict(frozen=True, extra="ignore")


class ImageUpload(BaseModel):
    """Image picked on the device, ready to be sent to object storage."""
    data: bytes
    file_name: str = "image.jpg"
    content_type: str = "image/jpeg"

    @property
    def extension(self) -> str:
        if "." not in self.file_name:
            return "jpg"
        return self.file_name.rsplit(".", 1)[1].lower() or "jpg"

    def object_name(self, owner_id: str, kind: str) -> str:
        """Storage name derived from the owner and the current time in ms."""
        return f"{owner_id}-{kind}-{int(time.time() * 1000)}.{self.extension}"
