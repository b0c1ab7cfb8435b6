"""
Nexus PM - Configuration
========================

All application settings loaded from environment variables.
Uses pydantic-settings for validation and type conversion.
"""

from functools import lru_cache
from typing import Literal

from pydantic import computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ==========================================================================
    # Application
    # ==========================================================================
    APP_NAME: str = "Nexus PM"
    APP_VERSION: str = "0.1.0"
    ENVIRONMENT: Literal["development", "staging", "production", "test"] = "development"

    # ==========================================================================
    # API
    # ==========================================================================
    API_V1_PREFIX: str = "/api/v1"
    CORS_ORIGINS: list[str] = ["http://localhost:3000", "http://localhost:5173"]

    # ==========================================================================
    # Key-value storage (SQLite by default)
    # ==========================================================================
    DATABASE_URL: str = "sqlite+aiosqlite:///./nexus.db"
    DATABASE_ECHO: bool = False
    STORAGE_QUOTA_BYTES: int = 5 * 1024 * 1024  # per stored value

    @computed_field  # type: ignore[misc]
    @property
    def is_sqlite(self) -> bool:
        return "sqlite" in self.DATABASE_URL

    # ==========================================================================
    # Authentication
    # ==========================================================================
    SECRET_KEY: str = "CHANGE-ME-IN-PRODUCTION-USE-LONG-RANDOM-STRING"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 12

    PASSWORD_MIN_LENGTH: int = 6
    AVATAR_URL_TEMPLATE: str = "https://api.dicebear.com/7.x/avataaars/svg?seed={seed}"

    # ==========================================================================
    # Deadlines & Reminders
    # ==========================================================================
    REMINDER_SCAN_INTERVAL_SECONDS: float = 30.0
    REMINDER_WINDOW_SECONDS: float = 60.0
    DUE_SOON_DAYS: int = 2

    # ==========================================================================
    # Desktop notifications (best-effort side channel)
    # ==========================================================================
    DESKTOP_NOTIFICATIONS_ENABLED: bool = False
    DESKTOP_NOTIFY_URL: str | None = None
    DESKTOP_NOTIFY_API_KEY: str | None = None

    # ==========================================================================
    # AI Generator (Gemini)
    # ==========================================================================
    GEMINI_API_KEY: str | None = None
    GEMINI_API_URL: str = "https://generativelanguage.googleapis.com/v1beta"
    GEMINI_FAST_MODEL: str = "gemini-2.5-flash"
    GEMINI_PRO_MODEL: str = "gemini-2.5-pro"
    GEMINI_TIMEOUT_SECONDS: float = 120.0

    # ==========================================================================
    # Seeding
    # ==========================================================================
    SEED_DEMO_DATA: bool = True

    # ==========================================================================
    # Computed Properties
    # ==========================================================================
    @computed_field  # type: ignore[misc]
    @property
    def is_development(self) -> bool:
        return self.ENVIRONMENT == "development"

    @computed_field  # type: ignore[misc]
    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT == "production"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Convenience export
settings = get_settings()
