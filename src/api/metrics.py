"""Websocket transport collectors and the Prometheus exposition route."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Response
from prometheus_client import CONTENT_TYPE_LATEST, Counter, generate_latest

from .deps.auth import get_api_key

STREAM_CONNECTIONS = Counter(
    "stream_connections_total",
    "Websocket stream handshakes by outcome",
    labelnames=("outcome",),
)

STREAM_FRAMES = Counter(
    "stream_frames_total",
    "Inbound websocket frames by kind",
    labelnames=("kind",),
)

# handshake outcomes
ACCEPTED = "accepted"
REJECTED_AUTH = "rejected_auth"
REJECTED_CONFLICT = "rejected_conflict"

# frame kinds
AUDIO_FRAME = "audio"
SNAPSHOT_FRAME = "speaker_snapshot"
IGNORED_FRAME = "ignored"

router = APIRouter(tags=["metrics"])


def record_connection(outcome: str) -> None:
    STREAM_CONNECTIONS.labels(outcome=outcome).inc()


def record_frame(kind: str) -> None:
    STREAM_FRAMES.labels(kind=kind).inc()


@router.get("/metrics")
async def metrics_endpoint(_: str = Depends(get_api_key)) -> Response:
    """Expose session, cycle, summary and stream collectors."""
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
