"""API configuration via pydantic-settings."""

from __future__ import annotations

from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    model_config = SettingsConfigDict(
        env_prefix="PERMIT_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Server configuration
    host: str = "0.0.0.0"
    port: int = 8000
    debug: bool = False
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    # API configuration
    api_title: str = "Permit Decision API"
    api_version: str = "1.0.0"

    # Subject headers, set by the upstream identity proxy
    role_header: str = "X-User-Role"
    membership_header: str = "X-User-Membership"
    user_header: str = "X-User-ID"

    # Paths the subject middleware leaves untouched
    exclude_paths: list[str] = ["/docs", "/redoc", "/openapi.json"]

    @property
    def docs_enabled(self) -> bool:
        """Interactive docs are served only in debug mode."""
        return self.debug
