"""
Library configuration.

Centralized configuration management with environment variables.
"""

from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Library settings"""

    # Precision
    DEFAULT_PRECISION: int = 34
    DEFAULT_ROUNDING: str = "ROUND_HALF_EVEN"
    FALLBACK_PRECISION: int = 50  # used for irrational results under UNLIMITED

    # Feature flags (initial values; see numtower.numerics.context.NumericFlags)
    EXTENDED_COMPLEX: bool = False
    REDUCE_FOR_EQUALITY: bool = True
    REPEAT_IN_BRACKETS: bool = False

    # Continued fractions
    GOSPER_INGEST_LIMIT: int = 2000
    CF_CACHE_SIZE: int = 10

    # Logging
    LOG_LEVEL: str = "WARNING"
    LOG_FORMAT: str = "text"  # json or text
    LOG_FILE: Optional[str] = None

    model_config = SettingsConfigDict(
        env_prefix="NUMTOWER_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()
