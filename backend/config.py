import logging
from enum import Enum
from functools import lru_cache
from typing import List

from pydantic_settings import BaseSettings


logger = logging.getLogger(__name__)

_DEV_ORIGINS = [
    "http://localhost:3000",
    "http://localhost:5173",
    "http://127.0.0.1:3000",
    "http://127.0.0.1:5173",
]


class AppMode(str, Enum):
    DEV = "dev"
    PROD = "prod"


class Settings(BaseSettings):
    # Application mode - defaults to DEV
    APP_MODE: AppMode = AppMode.DEV

    # Debug mode - MUST be False in production
    DEBUG: bool = False

    # Server configuration
    HOST: str = "0.0.0.0"
    PORT: int = 8000

    LOG_LEVEL: str = "INFO"

    # Google Gemini API key. Required: the app refuses to start without it.
    GOOGLE_API_KEY: str = ""

    # Upload limit for images sent to /edit
    MAX_UPLOAD_SIZE_BYTES: int = 10 * 1024 * 1024

    CORS_ALLOWED_ORIGINS: str = ""  # Comma-separated list of allowed origins

    @property
    def CORS_ORIGINS(self) -> List[str]:
        """
        Get allowed CORS origins.

        Dev mode always allows the local frontend dev servers. Production only
        allows what CORS_ALLOWED_ORIGINS lists explicitly.
        """
        origins: List[str] = list(_DEV_ORIGINS) if self.APP_MODE == AppMode.DEV else []

        if self.CORS_ALLOWED_ORIGINS:
            origins.extend(
                o.strip() for o in self.CORS_ALLOWED_ORIGINS.split(",") if o.strip()
            )

        if not origins:
            logger.warning(
                "No CORS_ALLOWED_ORIGINS configured in production. "
                "Cross-origin requests will be blocked."
            )
        return origins

    @property
    def has_api_key(self) -> bool:
        return bool(self.GOOGLE_API_KEY.strip())

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"  # Ignore extra env variables


def _validate_settings(settings: Settings) -> Settings:
    """
    Validate settings and fail fast on dangerous production configuration.

    A missing GOOGLE_API_KEY only warns here; the hard failure happens where
    the transform client is built (app startup, CLI edit).
    """
    if settings.APP_MODE == AppMode.PROD and settings.DEBUG:
        error_msg = (
            "CRITICAL SECURITY ERROR: DEBUG=True in production! "
            "Set DEBUG=False or remove the DEBUG environment variable."
        )
        logger.critical(error_msg)
        raise ValueError(error_msg)

    if not settings.has_api_key:
        logger.warning(
            "GOOGLE_API_KEY is not set. The API server will refuse to start "
            "and `edit` will exit with code 2."
        )

    return settings


@lru_cache()
def get_settings() -> Settings:
    """Get application settings (cached, validated on first access)."""
    settings = Settings()
    return _validate_settings(settings)
