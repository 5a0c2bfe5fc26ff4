"""
In-memory holder for the latest published result set.
"""

import threading
from datetime import datetime
from typing import Generic, Iterable, Optional

from llm_news.models.domain import ItemT, Snapshot, utcnow


class SnapshotStore(Generic[ItemT]):
    """
    Holds one immutable Snapshot and swaps it atomically.

    The owning pipeline is the only writer. Readers get whichever snapshot
    was current at the time of the call, never a partially built one.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._snapshot: Snapshot[ItemT] = Snapshot()

    def current(self) -> Snapshot[ItemT]:
        with self._lock:
            return self._snapshot

    def publish(self, items: Iterable[ItemT], at: Optional[datetime] = None) -> Snapshot[ItemT]:
        snapshot = Snapshot(items=tuple(items), last_updated=at or utcnow())
        with self._lock:
            self._snapshot = snapshot
        return snapshot

    @property
    def last_updated(self) -> Optional[datetime]:
        return self.current().last_updated
