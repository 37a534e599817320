"""Optional Redis stream fan-out of transcript patches."""

from __future__ import annotations

import json
import logging
from typing import Any, Dict

from redis import asyncio as redis_asyncio

LOGGER = logging.getLogger("meetinglistener.publisher")


class RedisPatchPublisher:
    """Append every outgoing patch to a Redis stream, tagged by meeting."""

    def __init__(self, url: str, stream: str, client: Any = None) -> None:
        self.stream = stream
        self._client = client or redis_asyncio.from_url(url)

    def sink_for(self, meeting_id: str):
        async def _sink(patch: Dict[str, Any]) -> None:
            await self.publish(meeting_id, patch)

        return _sink

    async def publish(self, meeting_id: str, patch: Dict[str, Any]) -> None:
        try:
            await self._client.xadd(
                self.stream,
                {"meeting_id": meeting_id, "payload": json.dumps(patch, ensure_ascii=False)},
            )
        except Exception as exc:
            LOGGER.warning("Redis publish failed for meeting %s: %s", meeting_id, exc)

    async def close(self) -> None:
        await self._client.aclose()
