"""
Excel Upload Client - Configuration Management

All settings come from environment variables (or a local .env file):
- backend location, auth token and timeout
- client-side upload limit and export directory
- logging and Sentry
"""

import logging
from functools import lru_cache
from typing import List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class Settings(BaseSettings):
    """
    Client settings loaded from environment variables.
    Uses pydantic-settings for validation and type coercion.
    """

    ENVIRONMENT: str = Field(
        default="development",
        description="Runtime environment: development, staging, production"
    )
    DEBUG: bool = Field(default=False, description="Must be off in production")

    # ==================== BACKEND API ====================
    API_BASE_URL: str = Field(
        default="http://localhost:8080/api/excel-upload",
        description="Base URL of the excel upload REST API"
    )
    API_TIMEOUT_SECONDS: float = Field(
        default=30.0,
        gt=0,
        description="Per-request timeout in seconds"
    )
    API_AUTH_TOKEN: str = Field(
        default="",
        description="Bearer token sent with every request (optional)"
    )

    # ==================== UPLOAD ====================
    UPLOAD_MAX_SIZE_MB: int = Field(
        default=50,
        description="Maximum upload file size in MB (mirrors the backend limit)"
    )
    EXPORT_DIR: str = Field(
        default="exports",
        description="Directory where error reports and templates are saved"
    )

    # ==================== LOGGING / SENTRY ====================
    LOG_LEVEL: str = Field(default="INFO", description="One of DEBUG, INFO, WARNING, ERROR, CRITICAL")
    LOG_JSON: bool = Field(default=True, description="JSON lines on stderr; plain text when False")
    SENTRY_DSN: str = Field(default="", description="Sentry DSN; empty disables error tracking")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    @field_validator("API_BASE_URL")
    @classmethod
    def _http_url(cls, value: str) -> str:
        value = value.strip()
        if not value.lower().startswith(("http://", "https://")):
            raise ValueError("API_BASE_URL must be an http(s) URL")
        return value

    @field_validator("LOG_LEVEL")
    @classmethod
    def _known_level(cls, value: str) -> str:
        value = value.upper()
        if value not in LOG_LEVELS:
            raise ValueError(f"LOG_LEVEL must be one of {', '.join(LOG_LEVELS)}")
        return value

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT.lower() == "production"

    @property
    def upload_max_size_bytes(self) -> int:
        return self.UPLOAD_MAX_SIZE_MB * 1024 * 1024

    def validate_production_config(self) -> List[str]:
        """Problems that make these settings unfit to run; empty when fine."""
        errors = []

        if self.UPLOAD_MAX_SIZE_MB <= 0:
            errors.append("UPLOAD_MAX_SIZE_MB must be positive")

        if not self.is_production:
            return errors

        url = self.API_BASE_URL.lower()
        if not url.startswith("https://"):
            errors.append("API_BASE_URL must use https in production")
        if "localhost" in url or "127.0.0.1" in url:
            errors.append("API_BASE_URL cannot point to localhost in production")
        if self.DEBUG:
            errors.append("DEBUG should be False in production")

        return errors


@lru_cache()
def get_settings() -> Settings:
    """
    Settings for this process, loaded once.

    Raises ValueError in production when validate_production_config()
    reports problems.
    """
    settings = Settings()
    logger.debug(f"Loaded settings for {settings.ENVIRONMENT}, backend {settings.API_BASE_URL}")

    errors = settings.validate_production_config()
    if errors and settings.is_production:
        for error in errors:
            logger.error(f"Configuration error: {error}")
        raise ValueError(f"Production configuration invalid: {', '.join(errors)}")

    return settings
