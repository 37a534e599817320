"""Domain types shared by the session coordinator."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple

from pydantic import BaseModel, Field

UNASSIGNED_OWNER = "Unassigned"


@dataclass(slots=True, frozen=True)
class RawSegment:
    """Segment as reported by a transcriber (seconds relative to the cycle blob)."""

    text: str
    start: float
    end: float


@dataclass(slots=True, frozen=True)
class TranscriptSegment:
    """Attributed segment placed on the absolute meeting timeline."""

    speaker_label: Optional[str]
    text: str
    relative_start: float
    relative_end: float
    absolute_timestamp: int

    def to_wire(self) -> Dict[str, Any]:
        return {
            "speaker": self.speaker_label,
            "text": self.text,
            "start": self.relative_start,
            "end": self.relative_end,
            "timestamp": self.absolute_timestamp,
        }

    def as_line(self) -> str:
        return f"{self.speaker_label or '?'}: {self.text}"


@dataclass(slots=True, frozen=True)
class SpeakerSnapshot:
    """Best-effort observation of who was speaking at ``absolute_timestamp``."""

    absolute_timestamp: int
    speakers: Tuple[str, ...] = ()

    @classmethod
    def of(cls, timestamp: int, speakers: Sequence[str]) -> "SpeakerSnapshot":
        return cls(int(timestamp), tuple(str(name) for name in speakers))

    @property
    def primary(self) -> Optional[str]:
        return self.speakers[0] if self.speakers else None


class ActionItem(BaseModel):
    text: str
    deadline: str


class Assignment(BaseModel):
    owner: str
    items: List[ActionItem] = Field(default_factory=list)


class Summary(BaseModel):
    """Narrative plus owner-grouped action items."""

    text: str = ""
    assignments: List[Assignment] = Field(default_factory=list)

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump()
