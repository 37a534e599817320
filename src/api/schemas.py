"""Pydantic schemas for API and websocket contracts."""

from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import BaseModel, Field

from src.stream_core.models import SpeakerSnapshot, Summary


class HealthResponse(BaseModel):
    ok: bool
    time: int
    active_sessions: int


class ControlMessage(BaseModel):
    type: str
    payload: dict = Field(default_factory=dict)


class SpeakerSnapshotPayload(BaseModel):
    timestamp: int
    speakers: List[str] = Field(default_factory=list)

    def to_snapshot(self) -> SpeakerSnapshot:
        return SpeakerSnapshot.of(self.timestamp, self.speakers)


class SpeakerSnapshotMessage(BaseModel):
    type: Literal["speaker-snapshot"]
    payload: SpeakerSnapshotPayload


class PatchSegment(BaseModel):
    speaker: Optional[str] = None
    text: str
    start: float
    end: float
    timestamp: int


class TranscriptPatch(BaseModel):
    type: Literal["append"] = "append"
    segments: List[PatchSegment]
    summary: Optional[Summary] = None
