"""Absolute meeting timeline reconstructed from per-cycle offsets."""

from __future__ import annotations

from typing import Iterable, Optional

from .models import RawSegment


def cycle_duration_ms(interval_ms: int, segments: Iterable[RawSegment]) -> int:
    """Elapsed audio attributed to one cycle: the flush interval or the
    furthest reported segment end, whichever is longer."""
    reported = max((segment.end for segment in segments), default=0.0)
    return max(int(interval_ms), int(round(reported * 1000)))


class TimelineClock:
    """Monotonic elapsed-audio counter anchored at the capture start."""

    def __init__(self) -> None:
        self._elapsed_ms = 0
        self._capture_start_ms: Optional[int] = None

    @property
    def elapsed_ms(self) -> int:
        return self._elapsed_ms

    @property
    def capture_start_ms(self) -> Optional[int]:
        return self._capture_start_ms

    def anchor(self, wall_clock_ms: float) -> None:
        """Fix the capture start; later calls are ignored."""
        if self._capture_start_ms is None:
            self._capture_start_ms = int(wall_clock_ms)

    def cycle_start_offset(self) -> int:
        return self._elapsed_ms

    def advance(self, cycle_duration: int) -> int:
        self._elapsed_ms += max(0, int(cycle_duration))
        return self._elapsed_ms

    def absolute(self, cycle_offset_ms: int, relative_seconds: float) -> int:
        base = self._capture_start_ms or 0
        return base + int(cycle_offset_ms) + int(round(relative_seconds * 1000))
