from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Client settings loaded from environment variables"""
    
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False
    )
    
    # Backend-as-a-service
    supabase_url: str = "http://127.0.0.1:54321"
    supabase_anon_key: str = ""
    request_timeout_seconds: Optional[float] = None  # None = backend decides
    
    # Object storage buckets
    posts_bucket: str = "posts"
    avatars_bucket: str = "avatars"
    
    # Local persisted state
    storage_url: str = "sqlite+aiosqlite:///proconnect_state.db"
    session_storage_key: str = "auth-storage"
    token_storage_key: str = "auth-token"  # access token, kept apart from the account document
    
    # App
    log_level: str = "INFO"
    debug: bool = False


settings = Settings()
