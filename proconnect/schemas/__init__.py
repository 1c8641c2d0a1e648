from proconnect.schemas.account import Account, ProfileUpdateRequest
from proconnect.schemas.auth import AuthSession, RegisterRequest
from proconnect.schemas.connection import Connection, ConnectionStatus
from proconnect.schemas.job import Job, JobType
from proconnect.schemas.message import Conversation, Message
from proconnect.schemas.post import ImageUpload, Post

__all__ = [
    "Account",
    "AuthSession",
    "Connection",
    "ConnectionStatus",
    "Conversation",
    "ImageUpload",
    "Job",
    "JobType",
    "Message",
    "Post",
    "ProfileUpdateRequest",
    "RegisterRequest",
]
