"""Application configuration."""

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

_MIB = 1024 * 1024


class Settings(BaseSettings):
    """Runtime configuration loaded from environment variables."""

    artifacts_root: str = ".artifacts"
    job_ttl_seconds: int = Field(default=86_400, gt=0)
    stale_lock_seconds: int = Field(default=300, gt=0)

    ai_mode: Literal["disabled", "stub", "real"] = "disabled"
    openai_api_key: str | None = None
    openai_base_url: str = "https://api.openai.com/v1"
    transcription_model: str = "whisper-1"
    transcription_language: str = "en"
    anthropic_api_key: str | None = None
    anthropic_base_url: str = "https://api.anthropic.com/v1"
    drafting_model: str = "claude-sonnet-4-5"
    drafting_max_tokens: int = Field(default=2000, gt=0)

    transcription_timeout_seconds: float = Field(default=120.0, gt=0)
    chunk_timeout_seconds: float = Field(default=120.0, gt=0)
    drafting_timeout_seconds: float = Field(default=90.0, gt=0)

    chunk_threshold_bytes: int = Field(default=25 * _MIB, gt=0)
    chunk_minutes: float = Field(default=10, gt=0)
    chunk_overlap_seconds: float = Field(default=10, ge=0)

    max_upload_bytes: int = Field(default=500 * _MIB, gt=0)
    max_transcript_chars: int = Field(default=50_000, gt=0)
    allow_session_autocreate: bool = False

    pipeline_workers: int = Field(default=2, gt=0)
    runner_token: str | None = None

    model_config = SettingsConfigDict(env_prefix="SCRIBE_", extra="ignore")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
