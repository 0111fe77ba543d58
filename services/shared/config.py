"""Shared configuration management for the invoice tracker.

Based on Pydantic Settings v2 best practices:
https://docs.pydantic.dev/latest/concepts/pydantic_settings/
"""

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings with environment variable support.

    All settings can be overridden via environment variables with the prefix 'APP_'.
    Example: APP_FX_PROVIDER=static
    """

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    environment: Literal["development", "staging", "production"] = Field(
        default="development",
        description="Deployment environment",
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Logging level",
    )

    # Service configuration
    service_name: str = Field(
        default="fx-invoice-tracker",
        description="Service identifier for metrics and logs",
    )
    service_version: str = Field(
        default="0.1.0",
        description="Service version",
    )

    # FX conversion
    reporting_currency: str = Field(
        default="USD",
        description="Currency every invoice amount is converted to",
    )
    fx_provider: Literal["frankfurter", "static"] = Field(
        default="frankfurter",
        description="Rate provider: frankfurter (ECB historical API), static (offline table)",
    )
    frankfurter_base_url: str = Field(
        default="https://api.frankfurter.app",
        description="Frankfurter API base URL",
    )
    fx_request_timeout: float = Field(
        default=10.0,
        gt=0,
        description="Upper bound in seconds for a single rate lookup, retries included",
    )
    fx_retry_attempts: int = Field(
        default=3,
        ge=1,
        description="Attempts per rate request on transport errors",
    )
    fx_max_concurrency: int = Field(
        default=8,
        ge=1,
        description="Maximum concurrent rate lookups per batch",
    )

    # Upload limits
    max_upload_bytes: int = Field(
        default=5 * 1024 * 1024,
        description="Maximum accepted CSV upload size in bytes",
    )

    # Background queue (arq + Redis)
    queue_enabled: bool = Field(
        default=False,
        description="Enable background batch processing through arq",
    )
    redis_url: str = Field(
        default="redis://localhost:6379/0",
        description="Redis connection URL for the job queue",
    )
    queue_max_jobs: int = Field(
        default=10,
        description="Maximum concurrent jobs per worker",
    )
    queue_job_timeout: int = Field(
        default=300,
        description="Job timeout in seconds",
    )
    job_result_ttl: int = Field(
        default=86400,
        description="Seconds a finished job result is kept in Redis",
    )


def get_settings() -> Settings:
    """Factory function to get settings instance.

    Returns:
        Configured Settings instance
    """
    return Settings()
