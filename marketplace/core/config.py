# marketplace/core/config.py

import os
from functools import lru_cache
from typing import List
from pydantic import ConfigDict
from pydantic_settings import BaseSettings


def _parse_origin_list(value):
    if value in (None, "", []):
        return []
    if isinstance(value, str):
        return [origin.strip() for origin in value.split(",") if origin.strip()]
    if isinstance(value, (list, tuple, set)):
        return [str(origin).strip() for origin in value if str(origin).strip()]
    return []


class Settings(BaseSettings):
    """
    Application settings.
    Loads values from environment variables (.env file)
    """
    # Database settings
    DATABASE_URL: str = "sqlite+aiosqlite:///./marketplace.db"

    # Security - signs the bearer tokens issued by the auth service
    SECRET_KEY: str

    # Environment
    ENVIRONMENT: str = "development"
    DEBUG: bool = False

    # Comma separated frontend origins allowed by CORS
    CORS_ORIGINS: str = "http://localhost:5173"

    # Checkout attempt ledger
    CHECKOUT_ATTEMPT_TTL_SECONDS: int = 300
    CHECKOUT_RATE_LIMIT: int = 10
    CHECKOUT_RATE_WINDOW_SECONDS: int = 300
    DUPLICATE_MESSAGE_WINDOW_SECONDS: int = 30

    # Display-name cache
    NAME_CACHE_TTL_SECONDS: int = 300
    NAME_CACHE_SWEEP_SECONDS: int = 60

    # Background jobs
    SCHEDULER_ENABLED: bool = True
    ATTEMPT_PURGE_INTERVAL_SECONDS: int = 60

    # Client-side caching of the thread list
    CHAT_LIST_MAX_AGE_SECONDS: int = 30

    model_config = ConfigDict(
        env_file=os.environ.get('ENV_FILE', '.env') if os.path.exists('.env') else None,
        case_sensitive=True,
        extra="ignore",
    )

    @property
    def cors_origins(self) -> List[str]:
        return _parse_origin_list(self.CORS_ORIGINS)


@lru_cache()
def get_settings():
    """Cached settings to avoid loading .env file for every request"""
    return Settings()

