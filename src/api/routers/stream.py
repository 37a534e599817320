"""Websocket endpoint carrying meeting audio in and transcript patches out."""

from __future__ import annotations

import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends, Query, WebSocket, WebSocketDisconnect, status
from pydantic import ValidationError
from starlette.websockets import WebSocketState

from src.stream_core.registry import SessionConflictError, SessionRegistry
from src.stream_core.session import MeetingSession, PatchSink

from ..deps.auth import key_is_valid
from ..deps.pipeline import Collaborators, get_collaborators, get_registry, session_config
from ..metrics import (
    ACCEPTED,
    AUDIO_FRAME,
    IGNORED_FRAME,
    REJECTED_AUTH,
    REJECTED_CONFLICT,
    SNAPSHOT_FRAME,
    record_connection,
    record_frame,
)
from ..schemas import ControlMessage, SpeakerSnapshotMessage
from ..settings import APISettings, get_settings

LOGGER = logging.getLogger("meetinglistener.stream")

router = APIRouter(tags=["stream"])

SPEAKER_SNAPSHOT = "speaker-snapshot"


def socket_sink(websocket: WebSocket) -> PatchSink:
    async def _send(patch: Dict[str, Any]) -> None:
        if (
            websocket.client_state != WebSocketState.CONNECTED
            or websocket.application_state != WebSocketState.CONNECTED
        ):
            raise ConnectionError("websocket is no longer connected")
        await websocket.send_json(patch)

    return _send


def handle_control(session: MeetingSession, text: str) -> bool:
    """Apply a control frame; returns False when it was ignored."""
    try:
        control = ControlMessage.model_validate_json(text)
    except ValidationError as exc:
        LOGGER.warning(
            "Ignoring malformed control frame for meeting %s: %s",
            session.meeting_id,
            exc.errors()[0].get("msg") if exc.errors() else exc,
        )
        return False
    if control.type != SPEAKER_SNAPSHOT:
        LOGGER.debug("Ignoring control frame of type %s", control.type)
        return False
    try:
        message = SpeakerSnapshotMessage.model_validate(control.model_dump())
    except ValidationError as exc:
        LOGGER.warning(
            "Ignoring invalid speaker snapshot for meeting %s: %s", session.meeting_id, exc
        )
        return False
    session.on_speaker_snapshot(message.payload.to_snapshot())
    return True


@router.websocket("/stream")
async def stream_meeting(
    websocket: WebSocket,
    meeting_id: str | None = Query(default=None, alias="meetingId"),
    api_key: str | None = Query(default=None, alias="apiKey"),
    settings: APISettings = Depends(get_settings),
    collaborators: Collaborators = Depends(get_collaborators),
    registry: SessionRegistry = Depends(get_registry),
):
    if not key_is_valid(settings, api_key or websocket.headers.get("x-api-key")):
        LOGGER.warning("Rejected stream connection with invalid API key")
        record_connection(REJECTED_AUTH)
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    publisher = getattr(websocket.app.state, "publisher", None)

    def factory(resolved_id: str) -> MeetingSession:
        sinks = [socket_sink(websocket)]
        if publisher is not None:
            sinks.append(publisher.sink_for(resolved_id))
        return MeetingSession(
            resolved_id,
            transcoder=collaborators.transcoder,
            transcriber=collaborators.transcriber,
            summarizer=collaborators.summarizer,
            sinks=sinks,
            config=session_config(settings),
        )

    try:
        session = registry.open(meeting_id, factory)
    except SessionConflictError as exc:
        LOGGER.warning("Rejected stream connection: %s", exc)
        record_connection(REJECTED_CONFLICT)
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await websocket.accept()
    record_connection(ACCEPTED)
    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                break
            data = message.get("bytes")
            if data is not None:
                record_frame(AUDIO_FRAME)
                session.on_audio(data)
                continue
            text = message.get("text")
            if text is not None:
                record_frame(SNAPSHOT_FRAME if handle_control(session, text) else IGNORED_FRAME)
    except WebSocketDisconnect:
        pass
    except Exception:
        LOGGER.exception("Meeting session %s stream error", session.meeting_id)
    finally:
        await registry.close(session.meeting_id)
