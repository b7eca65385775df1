"""Application configuration via environment variables."""
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """App settings loaded from .env or environment."""

    DATABASE_URL: str = "sqlite:///./partake.db"
    CORS_ORIGINS: str = "http://localhost:3000"
    LOG_LEVEL: str = "INFO"

    # Account lifecycle
    GRACE_PERIOD_DAYS: int = 30

    # Cursor pagination
    CURSOR_SECRET: str = "dev-cursor-secret-change-me"
    DEFAULT_PAGE_SIZE: int = 50
    MAX_PAGE_SIZE: int = 100

    # Scheduler
    CELERY_BROKER_URL: str = "redis://localhost:6379/0"
    PURGE_SCHEDULE_HOUR_UTC: int = 0
    PURGE_TIME_LIMIT_SECONDS: int = 300

    class Config:
        env_file = ".env"


settings = Settings()
