"""Append-only transcript log for one meeting."""

from __future__ import annotations

from typing import Iterable, List, Tuple

from .models import TranscriptSegment


class TranscriptStore:
    """Ordered, strictly additive list of attributed segments."""

    def __init__(self) -> None:
        self._segments: List[TranscriptSegment] = []

    def __len__(self) -> int:
        return len(self._segments)

    def append(self, segments: Iterable[TranscriptSegment]) -> int:
        batch = list(segments)
        self._segments.extend(batch)
        return len(batch)

    def snapshot(self) -> Tuple[TranscriptSegment, ...]:
        return tuple(self._segments)

    def lines(self) -> List[str]:
        return [segment.as_line() for segment in self._segments]


__all__ = ["TranscriptStore"]
