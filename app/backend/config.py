"""
Application configuration using Pydantic Settings.

Automatically loads environment variables from .env files.
"""

from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # OpenAI
    openai_api_key: str | None = None
    openai_model: str = "gpt-4.1"

    # Rate-limit retry (delay = base * 2**attempt + jitter)
    max_retries: int = 5
    retry_base_delay: float = 2.0

    # Sessions are dropped after this many seconds if never exported
    session_ttl_seconds: float = 3600

    # Page conversion
    pdf_dpi: int = 200
    max_pages: int = 10
    max_image_size: int = 2048

    # Frontend origins allowed to call the API
    cors_origins: list[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
        "http://localhost:5173",
        "http://127.0.0.1:5173",
    ]

    # Debug flags
    debug: bool = False

    model_config = SettingsConfigDict(
        # Load from .env file in the backend directory
        env_file=Path(__file__).parent / ".env",
        env_file_encoding="utf-8",
        extra="ignore",
        # Case insensitive environment variable names
        case_sensitive=False,
    )


@lru_cache
def get_settings() -> Settings:
    """
    Get cached application settings.

    Returns:
        Settings: Application configuration loaded from environment.
    """
    return Settings()
