"""API settings resolved from the environment."""

from __future__ import annotations

import os
from functools import lru_cache
from typing import List

from pydantic import BaseModel, Field


class APISettings(BaseModel):
    app_name: str = Field(default="Meeting Listener API")
    version: str = Field(default="1.0.0")
    host: str = Field(default=os.getenv("HOST", "0.0.0.0"))
    port: int = Field(default=int(os.getenv("PORT", "8787")))
    log_level: str = Field(default=os.getenv("LOG_LEVEL", "INFO"))
    api_keys: List[str] = Field(default_factory=lambda: _split_keys())
    data_dir: str = Field(default=os.getenv("DATA_DIR", "data"))
    transcribe_interval_ms: int = Field(
        default=int(os.getenv("TRANSCRIBE_INTERVAL_MS", "8000"))
    )
    summary_interval_ms: int = Field(
        default=int(os.getenv("SUMMARY_INTERVAL_MS", "60000"))
    )
    speaker_ledger_capacity: int = Field(
        default=int(os.getenv("SPEAKER_LEDGER_CAPACITY", "512"))
    )
    ffmpeg_path: str = Field(default=os.getenv("FFMPEG_PATH", "ffmpeg"))
    transcode_sample_rate: int = Field(
        default=int(os.getenv("TRANSCODE_SAMPLE_RATE", "16000"))
    )
    openai_api_key: str | None = Field(default=os.getenv("OPENAI_API_KEY"))
    whisper_model: str = Field(default=os.getenv("WHISPER_MODEL", "whisper-1"))
    whisper_language: str | None = Field(default=os.getenv("WHISPER_LANGUAGE", "tr") or None)
    whisper_use_openai: bool = Field(
        default=os.getenv("WHISPER_USE_OPENAI", "true").lower() in {"1", "true", "yes"}
    )
    whisper_mock_transcriber: bool = Field(
        default=os.getenv("WHISPER_USE_MOCK", "false").lower() in {"1", "true", "yes"}
    )
    local_whisper_model: str = Field(default=os.getenv("LOCAL_WHISPER_MODEL", "tiny"))
    whisper_device: str = Field(default=os.getenv("WHISPER_DEVICE", "cpu"))
    whisper_compute_type: str = Field(
        default=os.getenv("WHISPER_COMPUTE_TYPE", "int8")
    )
    summary_model: str = Field(default=os.getenv("SUMMARY_MODEL", "gpt-4o-mini"))
    summary_temperature: float = Field(
        default=float(os.getenv("SUMMARY_TEMPERATURE", "0.2"))
    )
    summary_deadline_sentinel: str = Field(
        default=os.getenv("SUMMARY_DEADLINE_SENTINEL", "Not specified")
    )
    redis_url: str | None = Field(default=os.getenv("REDIS_URL"))
    redis_stream: str = Field(
        default=os.getenv("REDIS_STREAM", "meetinglistener:patches")
    )


def _split_keys() -> List[str]:
    raw = os.getenv("API_KEYS") or os.getenv("API_KEY") or ""
    return [key.strip() for key in raw.split(",") if key.strip()]


@lru_cache()
def get_settings() -> APISettings:
    return APISettings()
