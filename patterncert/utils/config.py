"""
Configuration Management

Uses Pydantic Settings for environment-based configuration.
Loads from .env file automatically.
"""

import logging
from typing import Optional
from functools import lru_cache
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    # Application Settings
    LOG_LEVEL: str = "INFO"

    # Structural validation
    MIN_WORD_COUNT: int = 300
    MIN_STEP_COUNT: int = 3

    # Sample execution
    MIN_OUTPUT_TOKENS: int = 50
    CASE_PASS_SCORE: int = 60
    SUITE_PASS_FRACTION: float = 0.7
    MAX_EXECUTION_TIME_MS: int = 5000
    SAMPLE_TIMEOUT_SECONDS: float = 30.0

    # Batch assessment
    MAX_CONCURRENCY: int = 4

    # History persistence (Optional - in-memory when unset)
    HISTORY_PATH: Optional[str] = None
    HISTORY_COMPRESS: bool = False

    # Remote execution provider (Optional - simulated when unset)
    EXECUTION_PROVIDER_URL: Optional[str] = None
    EXECUTION_PROVIDER_API_KEY: Optional[str] = None
    EXECUTION_PROVIDER_TIMEOUT: float = 60.0

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"  # Ignore extra fields in .env file
        case_sensitive = False  # Allow both UPPERCASE and lowercase


@lru_cache
def get_settings() -> Settings:
    """Get or create cached settings instance."""
    return Settings()


def configure_logging(settings: Optional[Settings] = None):
    """Apply LOG_LEVEL with the standard log line format."""
    settings = settings or get_settings()
    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )
