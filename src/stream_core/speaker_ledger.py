"""Bounded log of speaker snapshots used for transcript attribution."""

from __future__ import annotations

from collections import deque
from typing import Deque, List, Optional

from .models import SpeakerSnapshot


class SpeakerLedger:
    """Answer "who was likely speaking at T" from out-of-band snapshots.

    Snapshots may arrive out of timestamp order; lookups depend on the
    snapshot timestamps only. When full, the oldest recorded entry is evicted.
    """

    def __init__(self, capacity: int = 512) -> None:
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        self._entries: Deque[SpeakerSnapshot] = deque(maxlen=capacity)

    @property
    def capacity(self) -> int:
        return self._entries.maxlen or 0

    def __len__(self) -> int:
        return len(self._entries)

    def record(self, snapshot: SpeakerSnapshot) -> None:
        self._entries.append(snapshot)

    def entries(self) -> List[SpeakerSnapshot]:
        return list(self._entries)

    def lookup(self, absolute_timestamp: int) -> Optional[SpeakerSnapshot]:
        best: Optional[SpeakerSnapshot] = None
        for snapshot in reversed(self._entries):
            if snapshot.absolute_timestamp > absolute_timestamp:
                continue
            # strict comparison keeps the most recently recorded one on ties
            if best is None or snapshot.absolute_timestamp > best.absolute_timestamp:
                best = snapshot
        return best

    def resolve(self, absolute_timestamp: int) -> Optional[str]:
        snapshot = self.lookup(absolute_timestamp)
        if snapshot is None:
            return None
        return snapshot.primary

    def clear(self) -> None:
        self._entries.clear()
