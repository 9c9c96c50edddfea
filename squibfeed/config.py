"""
Application settings (Pydantic Settings).
"""
from pathlib import Path

from pydantic import field_validator
from pydantic_settings import BaseSettings

from squibfeed.core.constants import DEFAULT_PAGE_SIZE

# .env at the project root (parent of squibfeed/)
_env_path = Path(__file__).resolve().parent.parent / ".env"


class Settings(BaseSettings):
    database_url: str = "sqlite:///./squibfeed.db"
    page_size: int = DEFAULT_PAGE_SIZE
    # Serve a fresh cache on focus and refresh it silently in the background
    background_refresh: bool = False
    log_level: str = "INFO"
    cors_origins: str = ""  # CORS_ORIGINS in .env, comma-separated

    class Config:
        env_file = _env_path
        extra = "ignore"

    @field_validator("log_level", mode="after")
    @classmethod
    def upper_level(cls, v: str) -> str:
        return (v or "INFO").strip().upper()

    @field_validator("page_size", mode="after")
    @classmethod
    def positive_page_size(cls, v: int) -> int:
        return v if v > 0 else DEFAULT_PAGE_SIZE


settings = Settings()
