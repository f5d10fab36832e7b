"""Application settings for jobfit."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Annotated

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    All settings have sensible defaults and can be overridden via
    environment variables with the ``JOBFIT_`` prefix or a .env file.
    """

    model_config = SettingsConfigDict(
        env_prefix="JOBFIT_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        enable_decoding=False,
        extra="ignore",
    )

    # Storage
    db_path: Path = Field(
        default=Path("./data/jobfit.db"),
        description="Path to the SQLite profile database",
    )

    # HTTP service
    host: str = Field(default="127.0.0.1", description="Bind address for `serve`")
    port: Annotated[int, Field(gt=0, lt=65536)] = Field(
        default=8000,
        description="Bind port for `serve`",
    )
    rate_limit: str = Field(
        default="10/minute",
        description="Per-client rate limit for the analysis endpoint (slowapi syntax)",
    )
    rate_limit_enabled: bool = Field(
        default=True,
        description="Enable request rate limiting on the analysis endpoint",
    )
    cors_origins: list[str] = Field(
        default_factory=list,
        description="Allowed CORS origins (JSON list or comma-separated)",
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level: DEBUG, INFO, WARNING, ERROR",
    )

    @field_validator("cors_origins", mode="before")
    @classmethod
    def parse_cors_origins(cls, v: object) -> list[str]:
        """Parse CORS origins from a JSON list or comma/newline separated string."""
        if v is None:
            return []

        if isinstance(v, list):
            return [str(item).strip() for item in v if str(item).strip()]

        raw = str(v).strip()
        if not raw:
            return []

        if raw.startswith("["):
            try:
                parsed = json.loads(raw)
            except json.JSONDecodeError:
                parsed = None
            else:
                if isinstance(parsed, list):
                    return [str(item).strip() for item in parsed if str(item).strip()]

        return [item.strip() for item in raw.replace("\n", ",").split(",") if item.strip()]

    @field_validator("log_level", mode="before")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is a known level."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if str(v).upper() not in valid_levels:
            raise ValueError(f"Invalid log level: {v}. Must be one of {valid_levels}")
        return str(v).upper()


_settings: Settings | None = None


def get_settings() -> Settings:
    """Get the application settings singleton."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reset_settings() -> None:
    """Reset the settings singleton (useful for testing)."""
    global _settings
    _settings = None
