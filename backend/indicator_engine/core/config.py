"""
Application Configuration

All settings loaded from environment variables.
"""

from functools import lru_cache
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings from environment variables."""

    # Application
    app_name: str = "Indicator Engine"
    app_version: str = "0.1.0"
    debug: bool = False
    environment: str = "development"
    log_level: str = "INFO"

    # Server
    host: str = "0.0.0.0"
    port: int = 8000

    # CORS
    allowed_origins: list[str] = ["http://localhost:3000"]

    # Lookback estimation
    lookback_safety_margin: int = 50  # Added on top of structural warmup
    default_lookback: int = 100  # Used for keys absent from the registry

    # Request windowing
    min_candles: int = 50  # Floor for fetched series
    max_fetch_limit: int = 5000

    # Worker pool (1 = compute sequentially)
    max_workers: int = 4

    # Market data
    default_source: str = "mock"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
