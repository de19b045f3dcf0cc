"""Application configuration loaded from environment variables."""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """TubeSync application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Core
    debug: bool = False
    expose_docs: bool = False

    # Database
    database_url: str = "sqlite+aiosqlite:///data/db/tubesync.db"

    # Server
    host: str = "0.0.0.0"
    port: int = Field(default=8000, ge=1, le=65535)

    # YouTube Data API
    youtube_api_base_url: str = "https://www.googleapis.com/youtube/v3"
    youtube_api_key: str = ""
    youtube_access_token: str = ""
    youtube_timeout_seconds: float = Field(default=15.0, gt=0)

    # Sync
    sync_batch_size: int = Field(default=100, ge=1, le=1000)
    unknown_video_chunk_size: int = Field(default=50, ge=1, le=50)

    # Listings
    video_page_size_default: int = Field(default=30, ge=1, le=100)
    video_page_size_max: int = Field(default=100, ge=1, le=100)
    reply_page_size_default: int = Field(default=30, ge=1, le=100)
    reply_page_size_max: int = Field(default=100, ge=1, le=100)

    def validate_runtime_security(self) -> None:
        """Validate settings that must hold outside debug mode."""
        violations: list[str] = []
        if self.video_page_size_default > self.video_page_size_max:
            violations.append("VIDEO_PAGE_SIZE_DEFAULT must not exceed VIDEO_PAGE_SIZE_MAX")
        if self.reply_page_size_default > self.reply_page_size_max:
            violations.append("REPLY_PAGE_SIZE_DEFAULT must not exceed REPLY_PAGE_SIZE_MAX")
        if not self.debug and not (self.youtube_api_key or self.youtube_access_token):
            violations.append("YOUTUBE_API_KEY or YOUTUBE_ACCESS_TOKEN must be configured")

        if violations:
            joined = "; ".join(violations)
            raise ValueError(f"Invalid configuration: {joined}")
