"""Application configuration"""

from typing import Optional
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

    # API
    API_PREFIX: str = "/api"
    PROJECT_NAME: str = "AgencyOS API"
    VERSION: str = "0.1.0"
    DEBUG: bool = False

    # Security
    JWT_SECRET: str = "change-me-in-production"
    JWT_ALGORITHM: str = "HS256"
    JWT_EXPIRATION_MINUTES: int = 1440  # 24 hours

    # Database
    DATABASE_URL: str = "sqlite+aiosqlite:///./agencyos.db"

    # URLs
    FRONTEND_URL: str = "http://localhost:3000"

    # Invitations
    INVITATION_EXPIRY_DAYS: int = 7

    # Rate limiting
    # WHY: "memory" keeps counters in-process; "redis" shares them between workers
    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMIT_BACKEND: str = "memory"
    RATE_LIMIT_WINDOW_SECONDS: int = 60
    RATE_LIMIT_READ_PER_MINUTE: int = 120
    RATE_LIMIT_MUTATION_PER_MINUTE: int = 60
    RATE_LIMIT_AUTH_PER_MINUTE: int = 10
    RATE_LIMIT_STRICT_PER_MINUTE: int = 5

    # Redis
    REDIS_URL: str = "redis://localhost:6379/0"

    # Email
    RESEND_API_KEY: Optional[str] = None
    EMAIL_FROM: str = "AgencyOS <noreply@agencyos.local>"

    # Background jobs
    SCHEDULER_ENABLED: bool = False
    DUE_DATE_CHECK_INTERVAL_SECONDS: int = 900

    # CORS
    CORS_ORIGINS: list[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]

    @property
    def async_database_url(self) -> str:
        """Get async database URL"""
        return self.DATABASE_URL.replace("postgresql://", "postgresql+asyncpg://")

    @property
    def is_sqlite(self) -> bool:
        """SQLite engines reject the connection pool sizing arguments."""
        return self.async_database_url.startswith("sqlite")


settings = Settings()
