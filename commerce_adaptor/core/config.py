from functools import lru_cache
from typing import Optional
import logging
import os

from dotenv import load_dotenv
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Library configuration settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    PROJECT_NAME: str = "Commerce Adaptor"
    DEBUG: bool = False

    # Logging settings
    LOG_LEVEL: str = "INFO"
    ENABLE_STRUCTURED_LOGGING: bool = True

    # External API timeout settings
    DEFAULT_TIMEOUT: float = 10.0  # seconds

    # OAuth settings
    OAUTH_REFRESH_RATIO: float = 0.999  # refresh at 99.9% of the token lifetime
    DEFAULT_TOKEN_LIFETIME: int = 3600  # used when the token response has no expires_in

    # Rate limit settings
    RATE_LIMIT_BACKOFF_SECONDS: float = 1.0
    RATE_LIMIT_MAX_RETRIES: Optional[int] = None  # None retries indefinitely

    # Registry settings
    ADAPTOR_CACHE_MAX_ENTRIES: Optional[int] = None  # None keeps every instance

    # Pagination settings
    DEFAULT_PAGE_SIZE: int = 20

    @field_validator("OAUTH_REFRESH_RATIO")
    @classmethod
    def check_refresh_ratio(cls, v: float) -> float:
        """Refresh must happen strictly before the token expires."""
        if not 0 < v < 1:
            raise ValueError("OAUTH_REFRESH_RATIO must be between 0 and 1 (exclusive)")
        return v

    @field_validator("RATE_LIMIT_MAX_RETRIES", "ADAPTOR_CACHE_MAX_ENTRIES")
    @classmethod
    def check_optional_positive(cls, v: Optional[int]) -> Optional[int]:
        if v is not None and v < 1:
            raise ValueError("must be a positive integer or unset")
        return v

    @field_validator("DEFAULT_PAGE_SIZE", "DEFAULT_TOKEN_LIFETIME")
    @classmethod
    def check_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("must be a positive integer")
        return v

    @field_validator("RATE_LIMIT_BACKOFF_SECONDS", "DEFAULT_TIMEOUT")
    @classmethod
    def check_non_negative(cls, v: float) -> float:
        if v < 0:
            raise ValueError("must not be negative")
        return v


def load_env_file(env_file: str = ".env") -> bool:
    """
    Load environment variables from specified .env file.

    Args:
        env_file: Path to the .env file. Defaults to ".env".

    Returns:
        True if the file was found and loaded
    """
    env_path = os.path.join(os.getcwd(), env_file)
    if os.path.exists(env_path):
        load_dotenv(env_path)
        get_settings.cache_clear()
        return True

    logger.warning(f"Environment file {env_path} not found")
    return False


@lru_cache()
def get_settings() -> Settings:
    """
    Get library settings with caching for efficiency.

    Returns:
        Settings: Library settings instance
    """
    return Settings()
