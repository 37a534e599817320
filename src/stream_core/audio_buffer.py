"""Audio accumulation window plus the single-flight flush scheduler."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Awaitable, Callable, List, Optional

LOGGER = logging.getLogger("meetinglistener.buffer")

FlushHandler = Callable[[bytes], Awaitable[None]]
Clock = Callable[[], float]


def wall_clock_ms() -> float:
    return time.time() * 1000.0


class AudioBuffer:
    """Accumulate raw chunks and hand merged windows to ``on_flush``.

    At most one flush cycle runs at a time. The window is exchanged before the
    cycle starts, so chunks ingested meanwhile land in a fresh window.
    """

    def __init__(
        self,
        interval_ms: int,
        on_flush: FlushHandler,
        *,
        clock: Clock = wall_clock_ms,
    ) -> None:
        self.interval_ms = int(interval_ms)
        self._on_flush = on_flush
        self._clock = clock
        self._chunks: List[bytes] = []
        self._received = 0
        self._last_flush_at: Optional[float] = None
        self._inflight: Optional[asyncio.Task] = None

    @property
    def in_flight(self) -> bool:
        return self._inflight is not None

    @property
    def pending_bytes(self) -> int:
        return sum(len(chunk) for chunk in self._chunks)

    @property
    def received(self) -> int:
        """Number of chunks ingested over the buffer's lifetime."""
        return self._received

    def ingest(self, chunk: bytes) -> None:
        if not chunk:
            return
        now = self._clock()
        if self._last_flush_at is None:
            self._last_flush_at = now
        self._chunks.append(bytes(chunk))
        self._received += 1
        if self._inflight is None and self._interval_elapsed(now):
            self._launch()

    async def flush(self, force: bool = False) -> None:
        if self._inflight is not None:
            if not force:
                return
            await self.wait_idle()
        if not self._chunks:
            return
        if not force and not self._interval_elapsed(self._clock()):
            return
        await self._launch()

    async def wait_idle(self) -> None:
        # a new cycle may start between one completing and this coroutine resuming
        while self._inflight is not None:
            await asyncio.shield(self._inflight)

    def discard(self) -> None:
        self._chunks = []

    def _interval_elapsed(self, now: float) -> bool:
        if self._last_flush_at is None:
            return False
        return now - self._last_flush_at >= self.interval_ms

    def _launch(self) -> asyncio.Task:
        window, self._chunks = self._chunks, []
        self._last_flush_at = self._clock()
        task = asyncio.ensure_future(self._run(b"".join(window)))
        self._inflight = task
        return task

    async def _run(self, blob: bytes) -> None:
        try:
            await self._on_flush(blob)
        except Exception:
            LOGGER.exception("Flush cycle failed; dropping %d buffered bytes", len(blob))
        finally:
            self._inflight = None
