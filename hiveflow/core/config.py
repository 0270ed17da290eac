"""Application configuration using Pydantic Settings.

Environment variables are loaded from .env files and system environment.
Webhook URLs and SMTP credentials should be provided via environment variables.
"""

from functools import lru_cache
from typing import Any

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings.

    All settings can be overridden via environment variables.
    Environment variables take precedence over .env file values.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # Application
    PROJECT_NAME: str = "Hive Flow Engine"
    DEBUG: bool = False
    API_V1_PREFIX: str = "/api/v1"

    # CORS
    ALLOWED_ORIGINS: list[str] = ["http://localhost:3000"]

    @field_validator("ALLOWED_ORIGINS", mode="before")
    @classmethod
    def parse_allowed_origins(cls, v: Any) -> list[str]:
        """Parse ALLOWED_ORIGINS from comma-separated string or list."""
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(",") if origin.strip()]
        if isinstance(v, list):
            return v
        return ["http://localhost:3000"]

    # Database
    DATABASE_URL: str = "sqlite+aiosqlite:///./hiveflow.db"

    # Engine
    MAX_PARALLEL_NODES: int = 10
    CONDITION_MAX_DEPTH: int = 32
    LOOP_MAX_ITERATIONS: int = 1000
    SUBWORKFLOW_MAX_DEPTH: int = 10
    DEFAULT_DELAY_MS: int = 1000

    # Task execution
    TASK_POLL_INTERVAL_SECONDS: float = 0.5
    TASK_TIMEOUT_SECONDS: float = 3600.0
    TASK_DEFAULT_COMMAND: str = 'echo "No command specified"'

    # Notifications
    DISCORD_WEBHOOK_URL: str | None = None
    SLACK_WEBHOOK_URL: str | None = None
    NOTIFICATION_TIMEOUT_SECONDS: float = 10.0
    SMTP_HOST: str | None = None
    SMTP_PORT: int = 587
    SMTP_USERNAME: str | None = None
    SMTP_PASSWORD: str | None = None
    SMTP_FROM: str = "hiveflow@localhost"
    SMTP_USE_TLS: bool = True

    # Scheduler
    SCHEDULER_TIMEZONE: str = "UTC"

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FILE: str | None = None  # Defaults to logs/app.log
    LOG_JSON_FORMAT: bool = True


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings.

    Settings are cached after first load for performance.
    """
    return Settings()


# Global settings instance
settings = get_settings()
