"""
Application configuration using Pydantic Settings.

Centralizes the auto-proposal configuration with environment variable support.
"""

from functools import lru_cache

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings with environment variable support."""

    # Auto-proposal (intervals in seconds)
    auto_propose_enabled: bool = True
    auto_propose_check_interval: float = 1.0
    auto_propose_max_interval: float = 5.0
    auto_propose_max_count: int = 10

    # Environment
    environment: str = "development"
    log_level: str = "INFO"
    log_to_file: bool = False

    # Metrics endpoint auth
    metrics_api_secret: str = ""

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"  # Ignore extra env vars


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
