from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database (default uses docker-compose service name)
    database_url: str = "postgresql+psycopg2://enrollments:enrollments_dev@db:5432/enrollments"

    # Redis (Celery broker for notification delivery)
    redis_url: str = "redis://redis:6379/0"

    # App settings
    app_name: str = "Enrollment Review Service"
    debug: bool = False
    log_level: str = "INFO"
    cors_origins: list[str] = ["http://localhost:3000"]

    # Notifications: "database" | "celery" | "none"
    notification_backend: str = "database"

    # Request listing
    default_page_size: int = 20
    max_page_size: int = 100

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")


@lru_cache
def get_settings() -> Settings:
    """Cached settings instance."""
    return Settings()
