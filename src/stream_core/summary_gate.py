"""Rate-gated summary regeneration with last-good fallback."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Protocol, Sequence

from .audio_buffer import Clock, wall_clock_ms
from .metrics import SUMMARY_REQUESTS
from .models import Summary, TranscriptSegment

LOGGER = logging.getLogger("meetinglistener.summary")


class Summarizer(Protocol):
    async def summarize(self, transcript: Sequence[TranscriptSegment]) -> Summary:
        ...


@dataclass(slots=True, frozen=True)
class SummaryState:
    """Last successfully generated summary and when it was produced."""

    summary: Optional[Summary] = None
    generated_at: Optional[float] = None


class SummaryGate:
    """Decide on every transcript update whether to regenerate the summary.

    ``maybe_summarize`` returns ``None`` when no regeneration is due. When one
    is due it returns the fresh summary, or on any failure the previous good
    one (which may itself be ``None``). It never raises.
    """

    def __init__(
        self,
        summarizer: Optional[Summarizer],
        interval_ms: int,
        *,
        clock: Clock = wall_clock_ms,
    ) -> None:
        self._summarizer = summarizer
        self.interval_ms = int(interval_ms)
        self._clock = clock
        self._opened_at = clock()
        self._state = SummaryState()

    @property
    def enabled(self) -> bool:
        return self._summarizer is not None

    @property
    def state(self) -> SummaryState:
        return self._state

    @property
    def last_good(self) -> Optional[Summary]:
        return self._state.summary

    def due(self, now: Optional[float] = None) -> bool:
        now = self._clock() if now is None else now
        reference = self._state.generated_at
        if reference is None:
            reference = self._opened_at
        return now - reference >= self.interval_ms

    async def maybe_summarize(
        self, transcript: Sequence[TranscriptSegment]
    ) -> Optional[Summary]:
        if not self.enabled or not transcript:
            return None
        if not self.due():
            return None
        try:
            summary = await self._summarizer.summarize(transcript)
            if not isinstance(summary, Summary):
                raise TypeError(f"summarizer returned {type(summary).__name__}")
        except Exception as exc:
            SUMMARY_REQUESTS.labels(status="error").inc()
            LOGGER.warning(
                "Summary generation failed (%s: %s); reusing last good summary",
                type(exc).__name__,
                exc,
            )
            return self._state.summary
        self._state = SummaryState(summary=summary, generated_at=self._clock())
        SUMMARY_REQUESTS.labels(status="success").inc()
        return summary
