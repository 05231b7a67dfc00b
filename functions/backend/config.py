"""
Configuration and settings for the studio backend.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment-backed settings for the FastAPI service and functions."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    api_prefix: str = Field(default="/api")

    # Firebase project (Firestore + Storage + Auth)
    firebase_project_id: Optional[str] = Field(
        default=None, validation_alias="FIREBASE_PROJECT_ID"
    )
    storage_bucket: Optional[str] = Field(
        default=None, validation_alias="FIREBASE_STORAGE_BUCKET"
    )

    # Development toggles
    use_in_memory_backends: bool = Field(
        default=False, validation_alias="STUDIO_USE_IN_MEMORY_BACKENDS"
    )

    # Signed PUT URLs handed to the admin dashboard for uploads.
    upload_url_expires_seconds: int = Field(
        default=3600, validation_alias="STUDIO_UPLOAD_URL_EXPIRES_SECONDS"
    )
    # Signed read URLs handed to the public site.
    signed_url_ttl_seconds: int = Field(
        default=6 * 60 * 60, validation_alias="STUDIO_SIGNED_URL_TTL_SECONDS"
    )

    # Waiting for the storage triggers to create/process media.
    media_wait_timeout_seconds: float = Field(
        default=120.0, validation_alias="STUDIO_MEDIA_WAIT_TIMEOUT_SECONDS"
    )
    media_wait_poll_seconds: float = Field(
        default=1.0, validation_alias="STUDIO_MEDIA_WAIT_POLL_SECONDS"
    )

    # Media pipeline
    functions_region: str = Field(
        default="europe-west3", validation_alias="STUDIO_FUNCTIONS_REGION"
    )
    tmp_dir: str = Field(default="/tmp", validation_alias="STUDIO_TMP_DIR")
    ffmpeg_path: str = Field(default="ffmpeg", validation_alias="FFMPEG_PATH")
    ffprobe_path: str = Field(default="ffprobe", validation_alias="FFPROBE_PATH")

    # CORS for the admin dashboard and public site
    cors_origins: list[str] = Field(
        default_factory=list, validation_alias="STUDIO_CORS_ORIGINS"
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()
