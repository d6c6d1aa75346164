# ABOUTME: Centralized configuration using Pydantic Settings.
# ABOUTME: Loads database, fetch, sync pool and API key settings from env and .env file.

from functools import lru_cache
from pathlib import Path

from pydantic import SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Database
    db_path: Path = Path("./rss_sync.db")

    # Feed fetching
    feed_timeout: int = 15
    feed_user_agent: str = "rss-sync/0.1 (+https://github.com/rss-sync/rss-sync)"

    # Synchronization
    sync_concurrency: int = 1

    # System endpoints
    system_api_key: SecretStr = SecretStr("change-me-system-api-key")

    # Server
    host: str = "127.0.0.1"
    port: int = 8000

    # Logging
    log_level: str = "INFO"

    @property
    def database_url(self) -> str:
        """Build async SQLite connection URL."""
        return f"sqlite+aiosqlite:///{self.db_path}"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
