"""
VCSFlow - Configuration
=======================

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
    APP_NAME: str = "VCSFlow"
    APP_VERSION: str = "0.1.0"
    ENVIRONMENT: Literal["development", "staging", "production", "test"] = "development"
    DEBUG: bool = False

    # ==========================================================================
    # Database (supports SQLite and PostgreSQL)
    # ==========================================================================
    DATABASE_URL: str = "sqlite+aiosqlite:///./vcsflow.db"
    DATABASE_POOL_SIZE: int = 5
    DATABASE_MAX_OVERFLOW: int = 10
    DATABASE_ECHO: bool = False

    @computed_field  # type: ignore[misc]
    @property
    def is_sqlite(self) -> bool:
        return "sqlite" in self.DATABASE_URL

    # ==========================================================================
    # Webhook
    # ==========================================================================
    WEBHOOK_PREFIX: str = "/hook"
    GITLAB_TOKEN_HEADER: str = "X-Gitlab-Token"
    GITLAB_API_TIMEOUT: float = 30.0

    # ==========================================================================
    # Pipeline
    # ==========================================================================
    # Principal used as creator/assignee of generated issues and activities
    SYSTEM_BOT_ID: int = 1
    # Applied when an environment has no pipeline approval policy row
    DEFAULT_PIPELINE_APPROVAL: Literal[
        "MANUAL_APPROVAL_NEVER", "MANUAL_APPROVAL_ALWAYS"
    ] = "MANUAL_APPROVAL_ALWAYS"

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

    @computed_field  # type: ignore[misc]
    @property
    def is_test(self) -> bool:
        return self.ENVIRONMENT == "test"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Convenience export
settings = get_settings()
