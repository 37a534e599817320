"""Per-app wiring of the transcoder, transcriber and summarizer."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from fastapi.requests import HTTPConnection

from src.stream_core.registry import SessionRegistry
from src.stream_core.session import SessionConfig

from ..services.summarizer import build_summarizer
from ..services.transcoder import FfmpegTranscoder
from ..services.whisper_engine import build_transcriber
from ..settings import APISettings


@dataclass(slots=True)
class Collaborators:
    transcoder: Any
    transcriber: Any
    summarizer: Optional[Any] = None


def build_collaborators(settings: APISettings) -> Collaborators:
    return Collaborators(
        transcoder=FfmpegTranscoder(settings),
        transcriber=build_transcriber(settings),
        summarizer=build_summarizer(settings),
    )


def session_config(settings: APISettings) -> SessionConfig:
    return SessionConfig(
        transcribe_interval_ms=settings.transcribe_interval_ms,
        summary_interval_ms=settings.summary_interval_ms,
        speaker_capacity=settings.speaker_ledger_capacity,
        language=settings.whisper_language,
    )


def get_collaborators(connection: HTTPConnection) -> Collaborators:
    return connection.app.state.collaborators


def get_registry(connection: HTTPConnection) -> SessionRegistry:
    return connection.app.state.registry
