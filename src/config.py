"""
Configuration for the BOM Costing Service
"""
import os
from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    """Service settings from environment variables."""

    # Database
    database_url: str = os.getenv(
        "DATABASE_URL",
        "sqlite:///./bom_costing.db"
    )

    # Redis for event bus
    redis_url: str = os.getenv("REDIS_URL", "")

    # HTTP fallback for events when Redis has no subscribers
    event_webhook_url: str = os.getenv("EVENT_WEBHOOK_URL", "")

    # Order quantity used when a project is created without one
    default_quantity: int = int(os.getenv("DEFAULT_QUANTITY", "500"))

    # App settings
    debug: bool = os.getenv("DEBUG", "false").lower() == "true"
    log_level: str = os.getenv("LOG_LEVEL", "INFO")

    class Config:
        env_file = ".env"
        case_sensitive = False


@lru_cache()
def get_settings() -> Settings:
    return Settings()
