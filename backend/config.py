"""
Configuration and settings for the Bebek AI backend.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_CHAT_MODEL = "gemini-2.5-pro"
DEFAULT_SUMMARY_MODEL = "gemini-2.5-flash"
DEFAULT_IMAGE_MODEL = "gemini-2.5-flash-image"


class Settings(BaseSettings):
    """Environment-backed settings for the FastAPI service and worker."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    api_prefix: str = Field(default="/api")
    environment: str = Field(default="development")
    log_level: str = Field(default="INFO")

    # LLM / Gemini
    gemini_api_key: Optional[str] = Field(default=None)
    gemini_model: Optional[str] = Field(default=None)
    gemini_chat_model: Optional[str] = Field(default=None)
    gemini_summary_model: Optional[str] = Field(default=None)
    gemini_image_model: Optional[str] = Field(default=None)

    # Image/video marketplace (Replicate-compatible predictions API)
    replicate_api_token: Optional[str] = Field(default=None)
    replicate_base_url: str = Field(default="https://api.replicate.com/v1")
    face_swap_model: str = Field(default="cdingram/face-swap")
    image_to_video_model: str = Field(default="kwaivgi/kling-v2.1")
    video_person_swap_model: str = Field(
        default="wan-video/wan-2.2-animate-replace"
    )
    video_background_model: str = Field(default="lucataco/video-background-swap")
    prediction_poll_interval_seconds: float = Field(default=3.0)
    prediction_timeout_seconds: float = Field(default=900.0)

    # Firebase (Firestore + Storage + Auth)
    firebase_project_id: Optional[str] = Field(default=None)
    firebase_storage_bucket: Optional[str] = Field(default=None)
    firebase_credentials_path: Optional[str] = Field(default=None)

    # S3-compatible storage (Tencent COS, MinIO, ...)
    cos_endpoint: Optional[str] = Field(default=None)
    cos_region: Optional[str] = Field(default=None)
    cos_bucket: Optional[str] = Field(default=None)
    aws_access_key_id: Optional[str] = Field(default=None)
    aws_secret_access_key: Optional[str] = Field(default=None)

    # Queue (Redis)
    redis_url: Optional[str] = Field(default=None)
    redis_queue_key: str = Field(default="bebek:video-jobs")

    # Development toggles
    use_in_memory_backends: bool = Field(
        default=False, validation_alias="BEBEK_USE_IN_MEMORY_BACKENDS"
    )
    run_video_jobs_inline: bool = Field(default=False)
    auth_disabled: bool = Field(default=False)

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"

    @property
    def dispatch_video_jobs_inline(self) -> bool:
        """True when jobs run in the API process instead of a Redis-fed worker."""
        return self.run_video_jobs_inline or not self.redis_url

    @property
    def chat_model(self) -> str:
        return self.gemini_chat_model or self.gemini_model or DEFAULT_CHAT_MODEL

    @property
    def summary_model(self) -> str:
        return (
            self.gemini_summary_model or self.gemini_model or DEFAULT_SUMMARY_MODEL
        )

    @property
    def image_model(self) -> str:
        return self.gemini_image_model or DEFAULT_IMAGE_MODEL


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()
