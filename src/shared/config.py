"""Application configuration loaded from environment variables."""

from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Environment
    environment: Literal["development", "staging", "production"] = "development"
    log_level: str = "INFO"

    # PostgreSQL
    database_url: str = "postgresql+asyncpg://localhost:5432/exam_practice"

    # Database Pool Settings
    db_pool_size: int = 5
    db_max_overflow: int = 10
    db_pool_timeout: int = 30
    db_pool_recycle: int = 3600  # Recycle connections after 1 hour

    # API Settings
    api_host: str = "0.0.0.0"
    api_port: int = 8000

    # CORS Settings
    # Comma-separated list, e.g. "https://app.example.com,https://www.example.com"
    cors_origins: str = ""

    # Practice sessions
    practice_tick_seconds: float = 1.0
    exam_library_dir: str = "exams"
    client_device: str = "exam-practice"

    # Feature Flags (can also be set via FF_* env vars)
    ff_use_database_persistence: bool = False
    ff_enable_background_scheduler: bool = False

    @property
    def is_development(self) -> bool:
        return self.environment == "development"

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def cors_origins_list(self) -> list[str]:
        """Get CORS origins as a list.

        Returns:
            List of allowed origins. In development, includes localhost.
            In production, only returns explicitly configured origins.
        """
        if self.cors_origins:
            return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]
        if self.is_development:
            return [
                "http://localhost:3000",
                "http://localhost:5173",
                "http://127.0.0.1:3000",
                "http://127.0.0.1:5173",
            ]
        return []


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
