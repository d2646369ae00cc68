"""Configuration management for dfx-upgrade."""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_RELEASE_ROOT = "https://sdk.dfinity.org"


class Settings(BaseSettings):
    """Application settings loaded from ``DFX_*`` environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="DFX_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Release server
    release_root: str = Field(
        default=DEFAULT_RELEASE_ROOT,
        description="Base URL under which the manifest and release archives are published",
    )
    manifest_timeout: float | None = Field(
        default=None, gt=0, description="Manifest request timeout in seconds (unbounded if unset)"
    )
    download_timeout: float | None = Field(
        default=None, gt=0, description="Archive download timeout in seconds (unbounded if unset)"
    )

    # Installation
    install_path: Path | None = Field(
        default=None, description="Executable to replace; defaults to the running program"
    )
    installed_version: str | None = Field(
        default=None, description="Version reported for the installed executable"
    )

    # Logging
    log_level: str = Field(default="INFO", description="Logging level")
    log_format: Literal["console", "json"] = Field(
        default="console", description="Renderer for log output"
    )

    @property
    def is_json_logging(self) -> bool:
        """Check whether logs are rendered as JSON lines."""
        return self.log_format == "json"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
