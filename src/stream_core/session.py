"""Per-meeting orchestration of buffering, transcription and summaries."""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import (
    Any,
    AsyncContextManager,
    Awaitable,
    Callable,
    Dict,
    Iterable,
    List,
    Optional,
    Protocol,
    Sequence,
    Set,
)

from .audio_buffer import AudioBuffer, Clock, wall_clock_ms
from .metrics import PATCHES_SENT, TRANSCRIBE_CYCLE_DURATION, TRANSCRIBE_CYCLES
from .models import RawSegment, SpeakerSnapshot, TranscriptSegment
from .speaker_ledger import SpeakerLedger
from .summary_gate import Summarizer, SummaryGate
from .timeline import TimelineClock, cycle_duration_ms
from .transcript_store import TranscriptStore

LOGGER = logging.getLogger("meetinglistener.session")

PatchSink = Callable[[Dict[str, Any]], Awaitable[None]]


class Transcoder(Protocol):
    def transcode(self, blob: bytes) -> AsyncContextManager[Any]:
        ...


class Transcriber(Protocol):
    async def transcribe(self, audio: Any, language: Optional[str] = None) -> List[RawSegment]:
        ...


class SessionState(str, Enum):
    IDLE = "idle"
    CAPTURING = "capturing"
    CLOSING = "closing"
    CLOSED = "closed"


@dataclass(slots=True)
class SessionConfig:
    transcribe_interval_ms: int = 8000
    summary_interval_ms: int = 60000
    speaker_capacity: int = 512
    language: Optional[str] = None


class MeetingSession:
    """Coordinator for one meeting connection.

    Audio ingestion never blocks on the external services: windows are handed
    to the transcoder/transcriber in a background cycle, and each completed
    cycle with text produces one ``append`` patch for every registered sink.
    """

    def __init__(
        self,
        meeting_id: str,
        *,
        transcoder: Transcoder,
        transcriber: Transcriber,
        summarizer: Optional[Summarizer] = None,
        sinks: Iterable[PatchSink] = (),
        config: Optional[SessionConfig] = None,
        clock: Clock = wall_clock_ms,
    ) -> None:
        self.meeting_id = meeting_id
        self.config = config or SessionConfig()
        self._transcoder = transcoder
        self._transcriber = transcriber
        self._sinks: List[PatchSink] = list(sinks)
        self._clock = clock
        self.state = SessionState.IDLE
        self.timeline = TimelineClock()
        self.ledger = SpeakerLedger(self.config.speaker_capacity)
        self.transcript = TranscriptStore()
        self.buffer = AudioBuffer(
            self.config.transcribe_interval_ms, self._run_cycle, clock=clock
        )
        self.summary_gate = SummaryGate(
            summarizer, self.config.summary_interval_ms, clock=clock
        )
        self.completed_cycles = 0
        self._emit_lock = asyncio.Lock()
        self._emissions: Set[asyncio.Task] = set()
        self._teardown_task: Optional[asyncio.Task] = None

    @property
    def closed(self) -> bool:
        return self.state is SessionState.CLOSED

    def on_audio(self, chunk: bytes) -> None:
        if self.state in (SessionState.CLOSING, SessionState.CLOSED):
            return
        if self.state is SessionState.IDLE:
            self.timeline.anchor(self._clock())
            self.state = SessionState.CAPTURING
            LOGGER.info(
                "Meeting %s started capturing at %d",
                self.meeting_id,
                self.timeline.capture_start_ms,
            )
        self.buffer.ingest(chunk)

    def on_speaker_snapshot(self, snapshot: SpeakerSnapshot) -> None:
        if self.state is SessionState.CLOSED:
            return
        self.ledger.record(snapshot)

    async def close(self) -> None:
        if self.state is SessionState.CLOSED:
            return
        if self._teardown_task is None:
            self.state = SessionState.CLOSING
            self._teardown_task = asyncio.ensure_future(self._teardown())
        await asyncio.shield(self._teardown_task)

    async def drain(self) -> None:
        """Wait until no cycle or patch emission is outstanding."""
        await self.buffer.wait_idle()
        while self._emissions:
            await asyncio.gather(*list(self._emissions))

    async def _teardown(self) -> None:
        try:
            await self.buffer.flush(force=True)
            await self.drain()
        finally:
            self.buffer.discard()
            self.ledger.clear()
            self.state = SessionState.CLOSED
            LOGGER.info(
                "Closed meeting session %s (%d cycles, %d segments)",
                self.meeting_id,
                self.completed_cycles,
                len(self.transcript),
            )

    async def _run_cycle(self, blob: bytes) -> None:
        started = time.perf_counter()
        cycle_offset = self.timeline.cycle_start_offset()
        try:
            async with self._transcoder.transcode(blob) as audio:
                raw = await self._transcriber.transcribe(audio, language=self.config.language)
        except Exception as exc:
            TRANSCRIBE_CYCLES.labels(status="error").inc()
            # a dropped window still occupies its span of the meeting
            self.timeline.advance(cycle_duration_ms(self.buffer.interval_ms, ()))
            LOGGER.error(
                "Transcription failed for meeting %s; dropping %d bytes: %s",
                self.meeting_id,
                len(blob),
                exc,
            )
            return
        finally:
            TRANSCRIBE_CYCLE_DURATION.observe(time.perf_counter() - started)

        ordered = sorted(raw, key=lambda segment: segment.start)
        self.timeline.advance(cycle_duration_ms(self.buffer.interval_ms, ordered))
        self.completed_cycles += 1
        segments = self._attribute(cycle_offset, ordered)
        if not segments:
            TRANSCRIBE_CYCLES.labels(status="empty").inc()
            LOGGER.debug("Cycle for meeting %s produced no text", self.meeting_id)
            return
        self.transcript.append(segments)
        TRANSCRIBE_CYCLES.labels(status="success").inc()
        LOGGER.info(
            "Transcribed %d segments for meeting %s in %dms",
            len(segments),
            self.meeting_id,
            int((time.perf_counter() - started) * 1000),
        )
        task = asyncio.ensure_future(self._emit(segments))
        self._emissions.add(task)
        task.add_done_callback(self._emissions.discard)

    def _attribute(
        self, cycle_offset: int, raw: Sequence[RawSegment]
    ) -> List[TranscriptSegment]:
        segments: List[TranscriptSegment] = []
        for item in raw:
            text = item.text.strip()
            if not text:
                continue
            timestamp = self.timeline.absolute(cycle_offset, item.start)
            segments.append(
                TranscriptSegment(
                    speaker_label=self.ledger.resolve(timestamp),
                    text=text,
                    relative_start=float(item.start),
                    relative_end=float(item.end),
                    absolute_timestamp=timestamp,
                )
            )
        return segments

    async def _emit(self, segments: Sequence[TranscriptSegment]) -> None:
        async with self._emit_lock:
            patch: Dict[str, Any] = {
                "type": "append",
                "segments": [segment.to_wire() for segment in segments],
            }
            summary = await self.summary_gate.maybe_summarize(self.transcript.snapshot())
            if summary is not None:
                patch["summary"] = summary.to_wire()
            await self._deliver(patch)

    async def _deliver(self, patch: Dict[str, Any]) -> None:
        for sink in list(self._sinks):
            try:
                await sink(patch)
            except Exception as exc:
                PATCHES_SENT.labels(status="error").inc()
                LOGGER.warning(
                    "Failed to deliver patch for meeting %s: %s", self.meeting_id, exc
                )
            else:
                PATCHES_SENT.labels(status="sent").inc()
