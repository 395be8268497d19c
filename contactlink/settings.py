"""Application settings using Pydantic BaseSettings."""

import re

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database (Postgres in deployment, SQLite for local dev and tests)
    database_url: str = "sqlite+aiosqlite:///./contactlink.db"

    # Redis (optional, enables cross-process identify locks)
    redis_url: str = "redis://localhost:6379/0"
    redis_enabled: bool = False

    # Identify serialization
    identify_lock_timeout_seconds: float = 30.0
    identify_lock_blocking_timeout_seconds: float = 10.0

    # Application
    environment: str = "development"
    log_level: str = "INFO"
    cors_allow_origins: list[str] = ["*"]

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


def get_async_database_url(url: str | None = None) -> str:
    """Get database URL converted for the asyncpg driver."""
    if url is None:
        url = settings.database_url
    # Convert postgres:// to postgresql+asyncpg:// for SQLAlchemy async
    if url.startswith("postgres://"):
        url = url.replace("postgres://", "postgresql+asyncpg://", 1)
    elif url.startswith("postgresql://") and "+asyncpg" not in url:
        url = url.replace("postgresql://", "postgresql+asyncpg://", 1)
    # asyncpg doesn't support sslmode, it uses ssl parameter
    if "sslmode=" in url:
        url = re.sub(r'[?&]sslmode=[^&]*', '', url)
        url = url.rstrip('?&')
    return url


def get_sync_database_url(url: str | None = None) -> str:
    """Get database URL with a synchronous driver (used by Alembic)."""
    if url is None:
        url = settings.database_url
    if url.startswith("postgres://"):
        return url.replace("postgres://", "postgresql://", 1)
    return url.replace("+asyncpg", "").replace("+aiosqlite", "")


settings = Settings()
