import asyncio
import threading
from typing import Dict


class LockRegistry:
    """Per-event `asyncio.Lock`s, created on first use and kept for the process lifetime.

    One registry is built by the application and handed to every
    coordinator that should share refresh serialization. Alongside each
    lock it counts completed refreshes, so a request that waited on the
    lock can tell that another holder already stored a new snapshot.
    """

    def __init__(self):
        self._locks: Dict[int, asyncio.Lock] = {}
        self._generations: Dict[int, int] = {}
        self._guard = threading.Lock()

    def lock_for(self, event_id: int) -> asyncio.Lock:
        with self._guard:
            lock = self._locks.get(event_id)
            if lock is None:
                lock = asyncio.Lock()
                self._locks[event_id] = lock
            return lock

    def generation(self, event_id: int) -> int:
        with self._guard:
            return self._generations.get(event_id, 0)

    def mark_refreshed(self, event_id: int) -> int:
        with self._guard:
            self._generations[event_id] = self._generations.get(event_id, 0) + 1
            return self._generations[event_id]

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)
