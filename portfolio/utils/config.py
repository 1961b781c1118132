"""
Configuration Management

Uses Pydantic Settings for environment-based configuration.
Loads from .env file automatically.
"""

from typing import List, Optional
from functools import lru_cache
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    # Application Settings
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"
    API_PREFIX: str = "/api/v1"

    # Database (SQLite fallback when unset)
    DATABASE_URL: Optional[str] = None
    SQLITE_PATH: str = "portfolio_dev.db"
    SQL_DEBUG: bool = False

    # Redis
    REDIS_URL: str = "redis://localhost:6379/0"
    REDIS_PASSWORD: Optional[str] = None

    # CORS (comma-separated origins)
    CORS_ORIGINS: str = "http://localhost:3000"

    # View analytics
    VIEW_RETENTION_DAYS: int = 90
    COUNTRY_HEADER: str = "cf-ipcountry"
    CITY_HEADER: str = "cf-ipcity"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"  # Ignore extra fields in .env file
        case_sensitive = False  # Allow both UPPERCASE and lowercase

    @property
    def cors_origins(self) -> List[str]:
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]

    @property
    def database_url(self) -> str:
        """
        Resolved database URL.

        Hosted PostgreSQL URLs often use postgres:// but SQLAlchemy needs postgresql://
        """
        url = self.DATABASE_URL
        if url:
            if url.startswith("postgres://"):
                url = url.replace("postgres://", "postgresql://", 1)
            return url
        return f"sqlite:///{self.SQLITE_PATH}"


@lru_cache
def get_settings() -> Settings:
    """Get or create cached settings instance."""
    return Settings()
