"""Single-slot response cache for a rate-limited provider.

The happy path consults ``is_fresh`` and skips the network entirely on a
hit.  The failure path reads ``get`` with no freshness gate at all, so a
degraded upstream is answered with whatever was last fetched.
"""
from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from typing import Callable, List, Optional

from ..models.schemas import Article


@dataclass(frozen=True)
class CacheEntry:
    timestamp: float
    data: List[Article]


class ResponseCache:
    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._entry: Optional[CacheEntry] = None
        # Guards ``_entry``; the feed service may be driven from worker threads.
        self._lock = threading.Lock()

    def get(self) -> Optional[CacheEntry]:
        with self._lock:
            return self._entry

    def set(self, data: List[Article]) -> CacheEntry:
        entry = CacheEntry(timestamp=self._clock(), data=list(data))
        with self._lock:
            self._entry = entry
        return entry

    def is_fresh(self, max_age: float) -> bool:
        """True if an entry exists and is younger than ``max_age`` seconds."""
        with self._lock:
            entry = self._entry
        if entry is None:
            return False
        return (self._clock() - entry.timestamp) < max_age

    def age(self) -> Optional[float]:
        entry = self.get()
        if entry is None:
            return None
        return self._clock() - entry.timestamp

    def clear(self) -> None:
        with self._lock:
            self._entry = None
