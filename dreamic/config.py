"""Application configuration management."""
from functools import lru_cache
from pathlib import Path
from typing import List, Literal, Optional

from pydantic import AnyUrl, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Global application settings loaded from environment variables."""

    PROJECT_NAME: str = "Dreamic"
    API_V1_STR: str = "/api/v1"

    PREFERENCES_BACKEND: Literal["memory", "redis", "sql"] = Field(
        "memory", description="Key-value store backing permission tracking state"
    )
    PREFERENCES_NAMESPACE: str = Field(
        "dreamic", description="Prefix applied to every stored preference key"
    )

    DATABASE_URL: str = Field(
        "sqlite:///./dreamic.db",
        description="SQLAlchemy database URL for the sql preferences backend",
    )

    REDIS_URL: Optional[AnyUrl] = Field(
        "redis://localhost:6379/0", description="Redis connection string for the redis backend"
    )

    BACKEND_CORS_ORIGINS: List[str] = Field(
        default_factory=lambda: ["http://localhost", "http://localhost:3000"],
        description="Allowed CORS origins",
    )

    NOTIFICATION_ASK_AGAIN_DAYS: int = Field(
        7, ge=0, description="Days to wait before asking again after the first denial"
    )
    NOTIFICATION_ASK_AGAIN_MULTIPLIER: float = Field(
        3.0, ge=1.0, description="Growth factor applied to the wait for each further denial"
    )
    NOTIFICATION_MAX_ASK_COUNT: int = Field(
        3, ge=0, description="Denials after which the app stops asking (0 = never ask again)"
    )
    NOTIFICATION_REMINDER_INTERVAL_DAYS: int = Field(
        30, ge=0, description="Days between periodic notification reminders"
    )

    model_config = SettingsConfigDict(
        env_file=Path(__file__).resolve().parent.parent / ".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


@lru_cache()
def get_settings() -> Settings:
    """Return cached application settings instance."""

    return Settings()


settings = get_settings()
