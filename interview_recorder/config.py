from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # ── Storage ─────────────────────────────────────────────────────────
    uploads_root: str = "uploads"
    timezone: str = "Asia/Bangkok"

    # ── Access ──────────────────────────────────────────────────────────
    # Shared secret gating every session-mutating endpoint.
    access_token: str = "12345"

    # ── Uploads ─────────────────────────────────────────────────────────
    accepted_mime_type: str = "video/webm"
    max_upload_bytes: int = 50 * 1024 * 1024
    # "overwrite" replaces an earlier answer for the same question,
    # "reject" answers 409 instead.
    duplicate_upload_policy: Literal["overwrite", "reject"] = "overwrite"

    # ── OpenAI Whisper (speech-to-text) ─────────────────────────────────
    openai_api_key: str = ""
    whisper_model: str = "whisper-1"
    transcription_language: str = "vi"
    transcription_attempts: int = 3
    transcription_retry_delay: float = 2.0

    # ── Background work ─────────────────────────────────────────────────
    background_workers: int = 2
    # 0 = finish never waits for transcription jobs still in flight
    finish_wait_seconds: float = 0.0

    # ── Webhook ─────────────────────────────────────────────────────────
    webhook_url: str = ""
    webhook_timeout: float = 10.0

    # ── General ─────────────────────────────────────────────────────────
    cors_origins: list[str] = ["*"]
    log_level: str = "INFO"


@lru_cache
def get_settings() -> Settings:
    return Settings()
