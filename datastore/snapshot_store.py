from __future__ import annotations

from functools import lru_cache
from threading import Lock
from typing import Dict, Iterable, Optional

from app.schemas import SensorSnapshot


class SnapshotStore:
    """Keeps the last known snapshot of every dashboard sensor in memory."""

    def __init__(self, name: str = "dashboard") -> None:
        self.name = name
        self._items: Dict[str, SensorSnapshot] = {}
        self._lock = Lock()

    def put_many(self, snapshots: Iterable[SensorSnapshot]) -> None:
        """Replace several snapshots under a single lock acquisition."""
        batch = [snapshot.model_copy(deep=True) for snapshot in snapshots]
        with self._lock:
            for snapshot in batch:
                self._items[snapshot.key] = snapshot

    def get(self, key: str) -> Optional[SensorSnapshot]:
        with self._lock:
            item = self._items.get(key)
            if item is None:
                return None
            return item.model_copy(deep=True)

    def scan(self) -> list[SensorSnapshot]:
        """Return deep copies of all snapshots ordered by field number."""

        with self._lock:
            items = [item.model_copy(deep=True) for item in self._items.values()]
        return sorted(items, key=lambda item: item.field_number)

    def clear(self) -> None:
        with self._lock:
            self._items.clear()


@lru_cache
def build_default_store(name: Optional[str] = None) -> SnapshotStore:
    return SnapshotStore(name=name or "dashboard")
