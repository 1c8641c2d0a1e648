"""Authentication-related Pydantic schemas."""
from typing import Any, Optional
from pydantic import BaseModel, EmailStr, field_validator


MIN_PASSWORD_LENGTH = 6


class RegisterRequest(BaseModel):
    """Sign-up form, validated before anything is sent to the backend."""
    email: EmailStr
    password: str
    full_name: str
    headline: Optional[str] = None
    location: Optional[str] = None
    current_position: Optional[str] = None

    @field_validator("full_name")
    @classmethod
    def full_name_required(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Full name is required")
        return value

    @field_validator("password")
    @classmethod
    def password_length(cls, value: str) -> str:
        if len(value) < MIN_PASSWORD_LENGTH:
            raise ValueError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
        return value

    def metadata(self) -> dict[str, Any]:
        """Profile fields sent along with sign-up as account metadata."""
        return self.model_dump(exclude={"email", "password"}, exclude_none=True)


class AuthSession(BaseModel):
    """Session issued by the backend after a successful sign-in."""
    access_token: str
    token_type: str = "bearer"
    refresh_token: Optional[str] = None
    user: dict[str, Any]
