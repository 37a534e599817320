"""ffmpeg-backed conversion of browser audio blobs into 16 kHz mono WAV."""

from __future__ import annotations

import asyncio
import logging
import shutil
import tempfile
from contextlib import asynccontextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import AsyncIterator

import soundfile as sf

from ..settings import APISettings

LOGGER = logging.getLogger("meetinglistener.transcoder")


class TranscodeError(RuntimeError):
    pass


@dataclass(slots=True)
class DecodedAudio:
    """Decoded WAV on disk, valid only inside the ``transcode`` block."""

    path: Path
    duration: float
    sample_rate: int


class FfmpegTranscoder:
    """Run ffmpeg over a temp copy of the blob and expose the decoded WAV."""

    def __init__(self, settings: APISettings) -> None:
        self.ffmpeg_path = settings.ffmpeg_path
        self.sample_rate = settings.transcode_sample_rate
        self.tmp_root = Path(settings.data_dir) / "tmp"

    @asynccontextmanager
    async def transcode(self, blob: bytes) -> AsyncIterator[DecodedAudio]:
        self.tmp_root.mkdir(parents=True, exist_ok=True)
        tmp_dir = Path(tempfile.mkdtemp(prefix="meetinglistener-", dir=self.tmp_root))
        try:
            input_path = tmp_dir / "chunk.webm"
            output_path = tmp_dir / "chunk.wav"
            input_path.write_bytes(blob)
            await self._run_ffmpeg(input_path, output_path)
            try:
                info = sf.info(str(output_path))
            except RuntimeError as exc:
                raise TranscodeError(f"ffmpeg produced unreadable audio: {exc}") from exc
            yield DecodedAudio(
                path=output_path,
                duration=float(info.duration),
                sample_rate=int(info.samplerate),
            )
        finally:
            shutil.rmtree(tmp_dir, ignore_errors=True)

    async def _run_ffmpeg(self, input_path: Path, output_path: Path) -> None:
        cmd = [
            self.ffmpeg_path,
            "-y",
            "-loglevel",
            "error",
            "-i",
            str(input_path),
            "-ac",
            "1",
            "-ar",
            str(self.sample_rate),
            str(output_path),
        ]
        try:
            proc = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except FileNotFoundError as exc:
            raise TranscodeError(f"ffmpeg not found at '{self.ffmpeg_path}'") from exc
        _, stderr = await proc.communicate()
        if proc.returncode != 0:
            detail = (stderr or b"").decode("utf-8", errors="ignore").strip()[-300:]
            LOGGER.debug("ffmpeg stderr: %s", detail)
            raise TranscodeError(f"ffmpeg exited with code {proc.returncode}: {detail}")
