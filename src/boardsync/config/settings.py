"""Application settings."""

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings."""

    api_base_url: str = Field(
        default="http://localhost:3000",
        description="Root URL of the board application",
    )

    api_token: str | None = Field(
        default=None,
        description="Optional bearer token for the board API",
    )

    request_timeout: float = Field(
        default=10.0,
        gt=0,
        description="Timeout in seconds for board API requests",
    )

    refresh_interval: float = Field(
        default=30.0,
        ge=0,
        description="Seconds between background board refreshes (0 disables polling)",
    )

    verbose: int = Field(
        default=0,
        description="Verbosity level (0=off, 1=INFO, 2+=DEBUG)",
    )

    log_file: Path | None = Field(
        default=None,
        description="Optional path to write logs to file",
    )

    model_config = {
        "env_prefix": "BOARDSYNC_",
    }
