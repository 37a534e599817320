"""Streaming session coordinator: buffering, timeline, attribution, summaries."""

from .audio_buffer import AudioBuffer
from .models import (
    ActionItem,
    Assignment,
    RawSegment,
    SpeakerSnapshot,
    Summary,
    TranscriptSegment,
)
from .registry import SessionConflictError, SessionRegistry
from .session import MeetingSession, SessionConfig, SessionState
from .speaker_ledger import SpeakerLedger
from .summary_gate import SummaryGate, SummaryState
from .timeline import TimelineClock, cycle_duration_ms
from .transcript_store import TranscriptStore

__all__ = [
    "ActionItem",
    "Assignment",
    "AudioBuffer",
    "MeetingSession",
    "RawSegment",
    "SessionConfig",
    "SessionConflictError",
    "SessionRegistry",
    "SessionState",
    "SpeakerLedger",
    "SpeakerSnapshot",
    "Summary",
    "SummaryGate",
    "SummaryState",
    "TimelineClock",
    "TranscriptSegment",
    "TranscriptStore",
    "cycle_duration_ms",
]
