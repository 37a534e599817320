"""Transcription engines: OpenAI Whisper, lazy local faster-whisper, mock."""

from __future__ import annotations

import asyncio
import logging
import threading
from typing import Any, Iterable, List, Optional

from openai import AsyncOpenAI

try:  # pragma: no cover - optional heavy dependency
    from faster_whisper import WhisperModel  # type: ignore
except Exception:  # pragma: no cover
    WhisperModel = None  # type: ignore

from src.stream_core.models import RawSegment

from ..settings import APISettings
from .transcoder import DecodedAudio

LOGGER = logging.getLogger("meetinglistener.whisper")


class TranscriptionError(RuntimeError):
    pass


class OpenAITranscriber:
    """Send decoded WAV files to the OpenAI transcription endpoint."""

    def __init__(self, settings: APISettings, client: Optional[AsyncOpenAI] = None) -> None:
        if client is None:
            if not settings.openai_api_key:
                raise RuntimeError("WHISPER_USE_OPENAI=1 but OPENAI_API_KEY is missing")
            client = AsyncOpenAI(api_key=settings.openai_api_key)
        self._client = client
        self.model = settings.whisper_model

    async def transcribe(
        self, audio: DecodedAudio, language: str | None = None
    ) -> List[RawSegment]:
        kwargs: dict[str, Any] = {
            "model": self.model,
            "response_format": "verbose_json",
            "temperature": 0,
        }
        if language:
            kwargs["language"] = language
        with audio.path.open("rb") as handle:
            transcript = await self._client.audio.transcriptions.create(
                file=(audio.path.name, handle, "audio/wav"),
                **kwargs,
            )
        return _to_raw_segments(_field(transcript, "segments") or [])


class LocalWhisperTranscriber:
    """Thin wrapper that loads faster-whisper on first use."""

    def __init__(self, settings: APISettings) -> None:
        if WhisperModel is None:
            raise RuntimeError(
                "Local transcription requires faster-whisper (pip install '.[local]')"
            )
        self.settings = settings
        self._lock = threading.Lock()
        self._model = None

    def _load_model(self) -> WhisperModel:
        if self._model is None:
            with self._lock:
                if self._model is None:
                    try:
                        self._model = WhisperModel(
                            self.settings.local_whisper_model,
                            device=self.settings.whisper_device,
                            compute_type=self.settings.whisper_compute_type,
                        )
                    except Exception as exc:  # pragma: no cover - hardware/env dep
                        LOGGER.error(
                            "Failed to load Whisper model '%s': %s",
                            self.settings.local_whisper_model,
                            exc,
                        )
                        raise
        return self._model

    async def transcribe(
        self, audio: DecodedAudio, language: str | None = None
    ) -> List[RawSegment]:
        return await asyncio.to_thread(self._transcribe_sync, audio, language)

    def _transcribe_sync(self, audio: DecodedAudio, language: str | None) -> List[RawSegment]:
        model = self._load_model()
        segments, _info = model.transcribe(str(audio.path), language=language, beam_size=5)
        # segments is a lazy generator; consume it on this worker thread
        return _to_raw_segments(list(segments))


class MockTranscriber:
    """Deterministic stand-in that reports one segment spanning the audio."""

    async def transcribe(
        self, audio: DecodedAudio, language: str | None = None
    ) -> List[RawSegment]:
        text = f"[mock transcript {audio.duration:.1f}s {language or 'auto'}]"
        return [RawSegment(text=text, start=0.0, end=float(audio.duration))]


def build_transcriber(settings: APISettings):
    if settings.whisper_mock_transcriber:
        LOGGER.warning(
            "Whisper mock mode enabled (set WHISPER_USE_MOCK=0 to enable real transcription)."
        )
        return MockTranscriber()
    if settings.whisper_use_openai:
        return OpenAITranscriber(settings)
    return LocalWhisperTranscriber(settings)


def _field(item: Any, name: str, default: Any = None) -> Any:
    if isinstance(item, dict):
        return item.get(name, default)
    return getattr(item, name, default)


def _to_raw_segments(segments: Iterable[Any]) -> List[RawSegment]:
    raw: List[RawSegment] = []
    for segment in segments:
        try:
            start = float(_field(segment, "start", 0.0) or 0.0)
            end = float(_field(segment, "end", start) or start)
        except (TypeError, ValueError) as exc:
            raise TranscriptionError(f"Malformed segment timing: {segment!r}") from exc
        text = str(_field(segment, "text", "") or "").strip()
        raw.append(RawSegment(text=text, start=start, end=max(start, end)))
    return raw
