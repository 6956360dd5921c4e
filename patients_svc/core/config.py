"""
Configuration module for Patients Service API.
Uses Pydantic BaseSettings for validation - app fails fast if required config is missing.
"""
import logging
from functools import lru_cache
from typing import List

from pydantic import Field, ValidationError, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """
    Application settings with validation.
    Required fields will cause the app to fail fast if not provided.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Database Configuration
    db_path: str = Field(
        ...,  # Required - no default means fail fast if missing
        description="Path to the SQLite database file",
        min_length=1,
    )
    db_busy_timeout: int = Field(default=5000, ge=0, description="SQLite busy timeout in milliseconds")

    # Connection Pool Configuration
    pool_min: int = Field(default=2, ge=0, description="Connections opened when the pool starts")
    pool_max: int = Field(default=10, ge=1, description="Maximum number of pooled connections")
    pool_increment: int = Field(default=2, description="Connections opened each time the pool grows")
    pool_timeout: float = Field(default=60.0, gt=0, description="Seconds to wait for a free connection")

    # API Configuration
    host: str = Field(default="0.0.0.0", description="API host")
    port: int = Field(default=3000, description="API port")
    reload: bool = Field(default=False, description="Enable hot reload")
    environment: str = Field(default="development", description="Deployment environment name")
    api_prefix: str = Field(default="/api", description="Common root for all API routes")

    # HTTP Safety Configuration
    allowed_origins: str = Field(
        default="http://localhost:4200",
        description="CORS allowed origins (comma-separated)"
    )
    rate_limit_max_requests: int = Field(default=100, ge=1, description="Requests allowed per window and client")
    rate_limit_window_seconds: int = Field(default=900, ge=1, description="Rate limit window size in seconds")
    max_body_bytes: int = Field(default=1048576, ge=1, description="Max request body size in bytes (1MB)")

    # Logging Configuration
    log_level: str = Field(default="INFO", description="Root log level (DEBUG, INFO, WARNING, ...)")
    log_format: str = Field(default="json", description="Log line format: json or text")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.strip().upper()
        if level not in ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"):
            raise ValueError(f"Unknown LOG_LEVEL: {v}")
        return level

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        fmt = v.strip().lower()
        if fmt not in ("json", "text"):
            raise ValueError("LOG_FORMAT must be json or text")
        return fmt

    @model_validator(mode="after")
    def validate_pool(self) -> "Settings":
        """Reject pool sizes that could never be satisfied."""
        if self.pool_min > self.pool_max:
            raise ValueError(
                f"POOL_MIN ({self.pool_min}) cannot be greater than POOL_MAX ({self.pool_max})"
            )
        if self.pool_increment < 1:
            raise ValueError("POOL_INCREMENT must be at least 1")
        return self

    @property
    def allowed_origins_list(self) -> List[str]:
        """Get the CORS allowed origins as a list."""
        return [o.strip() for o in self.allowed_origins.split(",") if o.strip()]


@lru_cache
def get_settings() -> Settings:
    """Get the cached settings instance."""
    return Settings()


def validate_settings() -> Settings:
    """
    Load settings at startup and fail fast with a clear error message.

    Returns:
        Settings: The validated settings.

    Raises:
        ValidationError: If a required variable is missing or a value is invalid.
    """
    try:
        settings = get_settings()
    except ValidationError as e:
        missing = [
            str(err["loc"][0]).upper()
            for err in e.errors()
            if err["type"] == "missing" and err["loc"]
        ]
        if missing:
            logger.critical(
                "Missing required environment variables: %s. Please check your .env file.",
                ", ".join(missing)
            )
        else:
            logger.critical("Configuration validation failed", extra={"errors": e.errors()})
        raise

    logger.info(
        "Environment variables validated",
        extra={"environment": settings.environment, "db_path": settings.db_path}
    )
    return settings
