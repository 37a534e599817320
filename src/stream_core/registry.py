"""Explicit registry of live meeting sessions."""

from __future__ import annotations

import asyncio
import logging
import uuid
from typing import Callable, Dict, List, Optional

from .metrics import ACTIVE_SESSIONS
from .session import MeetingSession

LOGGER = logging.getLogger("meetinglistener.registry")

SessionFactory = Callable[[str], MeetingSession]


class SessionConflictError(RuntimeError):
    """Raised when a meeting identifier is already bound to a live session."""


class SessionRegistry:
    """Map of meeting identifier to its independently owned session."""

    def __init__(self) -> None:
        self._sessions: Dict[str, MeetingSession] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, meeting_id: object) -> bool:
        return meeting_id in self._sessions

    def ids(self) -> List[str]:
        return list(self._sessions)

    def get(self, meeting_id: str) -> Optional[MeetingSession]:
        return self._sessions.get(meeting_id)

    def open(self, meeting_id: Optional[str], factory: SessionFactory) -> MeetingSession:
        meeting_id = meeting_id or str(uuid.uuid4())
        if meeting_id in self._sessions:
            raise SessionConflictError(f"meeting {meeting_id} already has a live session")
        session = factory(meeting_id)
        self._sessions[meeting_id] = session
        ACTIVE_SESSIONS.set(len(self._sessions))
        LOGGER.info("Opened meeting session %s", meeting_id)
        return session

    async def close(self, meeting_id: str) -> None:
        session = self._sessions.get(meeting_id)
        if session is None:
            return
        try:
            await session.close()
        finally:
            # a newer session may have claimed the id while this one was closing
            if self._sessions.get(meeting_id) is session:
                del self._sessions[meeting_id]
            ACTIVE_SESSIONS.set(len(self._sessions))

    async def close_all(self) -> None:
        if not self._sessions:
            return
        await asyncio.gather(*(self.close(meeting_id) for meeting_id in self.ids()))
