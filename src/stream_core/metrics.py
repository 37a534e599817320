"""Prometheus collectors for the session coordinator."""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram

TRANSCRIBE_CYCLES = Counter(
    "transcription_cycles_total",
    "Completed transcription cycles",
    labelnames=("status",),
)

TRANSCRIBE_CYCLE_DURATION = Histogram(
    "transcription_cycle_seconds",
    "Time spent transcoding and transcribing one buffered window",
)

SUMMARY_REQUESTS = Counter(
    "summary_requests_total",
    "Summary regeneration attempts",
    labelnames=("status",),
)

PATCHES_SENT = Counter(
    "transcript_patches_total",
    "Outgoing transcript patches per sink delivery",
    labelnames=("status",),
)

ACTIVE_SESSIONS = Gauge(
    "meeting_sessions_active",
    "Meeting sessions currently registered",
)
