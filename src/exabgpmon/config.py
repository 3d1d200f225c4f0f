"""Application configuration using Pydantic Settings."""

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables or .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Mode
    exporter_mode: Literal["standalone", "stream"] = Field(
        default="standalone",
        description="standalone (poll exabgpcli) or stream (read JSON events on stdin)",
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )

    # exabgpcli (standalone mode)
    exabgp_cli_command: str = Field(
        default="exabgpcli", description="exabgpcli command"
    )
    exabgp_root: str = Field(
        default="/etc/exabgp", description="Value of --root passed to exabgpcli"
    )
    exabgp_cli_timeout: float = Field(
        default=10.0, gt=0.0, description="Seconds to wait for exabgpcli"
    )
    scrape_interval: float = Field(
        default=15.0, gt=0.0, description="Seconds between RIB scrapes"
    )

    # Event stream (stream mode)
    stream_line_limit: int = Field(
        default=16 * 1024 * 1024,
        ge=64 * 1024,
        description="Maximum length in bytes of one JSON event line",
    )

    # Statistics
    stats_log_interval: float = Field(
        default=10.0, gt=0.0, description="Seconds between statistics reports"
    )

    # Sentry (optional)
    sentry_dsn: str | None = Field(
        default=None, description="Sentry DSN (leave empty to disable)"
    )
    sentry_environment: str = Field(
        default="development", description="Sentry environment"
    )
    sentry_traces_sample_rate: float = Field(
        default=0.1, ge=0.0, le=1.0, description="Sentry traces sample rate"
    )


# Global settings instance
settings = Settings()
