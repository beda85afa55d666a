"""Configuration management for lens_mcp.

Loads settings from environment variables with sensible defaults.
"""

import os

from pydantic import BaseModel, Field

DEFAULT_BASE_URL = "https://fluffy-spork-gx4747wpjpwcvx4w-3001.app.github.dev/api/"


def _default_timeout() -> float:
    """Parse timeout from environment, falling back to 30s on empty values."""
    raw = os.getenv("LENS_TIMEOUT_S")
    if raw is None or raw.strip() == "":
        return 30.0
    try:
        return float(raw)
    except ValueError as exc:
        raise ValueError("LENS_TIMEOUT_S must be numeric") from exc


def _default_port() -> int:
    """Parse listening port from PORT, falling back to 3000."""
    raw = os.getenv("PORT")
    if raw is None or raw.strip() == "":
        return 3000
    try:
        return int(raw)
    except ValueError as exc:
        raise ValueError("PORT must be an integer") from exc


class Settings(BaseModel):
    """Application settings loaded from environment variables."""

    base_url: str = Field(
        default_factory=lambda: os.getenv("LENS_BASE_URL") or DEFAULT_BASE_URL,
        description="Base URL of the LENS data API",
    )
    timeout_seconds: float = Field(
        default_factory=_default_timeout,
        description="Upstream HTTP request timeout in seconds",
    )
    port: int = Field(
        default_factory=_default_port,
        description="Port the HTTP transport listens on",
    )

    model_config = {"frozen": True}


def get_settings() -> Settings:
    """Create settings instance from current environment.

    Returns:
        Settings instance with values from environment variables.
    """
    return Settings()
