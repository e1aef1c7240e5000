"""In-memory, bounded host → AnalysisResult store with last-write-wins semantics."""

import itertools
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Iterable, List, Optional

from .models import AnalysisResult

DEFAULT_CAPACITY = 512


@dataclass(frozen=True)
class _Slot:
    result: AnalysisResult
    generation: int
    updated_at: float


class HostStateStore:
    """
    Thread-safe mapping from lowercase hostname to its most recent AnalysisResult.

    Every write replaces the previous entry for that host (no merge, no history)
    and is stamped with a process-wide generation number. Observations arrive
    unordered, so whichever set() runs last wins, even if it carries an older
    network event. When capacity is exceeded the least recently updated host is
    evicted; reads do not refresh recency.
    """

    def __init__(self, capacity: int = DEFAULT_CAPACITY):
        if capacity < 1:
            raise ValueError("capacity must be a positive integer")
        self.capacity = capacity
        self._slots: "OrderedDict[str, _Slot]" = OrderedDict()
        self._lock = threading.Lock()
        self._generations = itertools.count(1)
        self._evicted = 0

    @staticmethod
    def _key(host: str) -> str:
        return host.strip().lower()

    def set(self, host: str, result: AnalysisResult) -> int:
        """Store result for host, replacing any existing entry. Returns its generation."""
        key = self._key(host)
        with self._lock:
            generation = next(self._generations)
            self._slots.pop(key, None)
            self._slots[key] = _Slot(result, generation, time.time())
            while len(self._slots) > self.capacity:
                self._slots.popitem(last=False)
                self._evicted += 1
            return generation

    def get(self, host: str) -> Optional[AnalysisResult]:
        """Return the latest result for host, or None if nothing is recorded."""
        slot = self._slots.get(self._key(host))
        return slot.result if slot else None

    def generation(self, host: str) -> Optional[int]:
        """Generation stamp of the entry currently stored for host."""
        slot = self._slots.get(self._key(host))
        return slot.generation if slot else None

    def evict(self, host: str) -> bool:
        """Drop the entry for host. Returns True if one existed."""
        with self._lock:
            return self._slots.pop(self._key(host), None) is not None

    def retain(self, hosts: Iterable[str]) -> int:
        """Keep only the given hosts (e.g. those with an open tab). Returns the number removed."""
        keep = {self._key(h) for h in hosts}
        with self._lock:
            stale = [k for k in self._slots if k not in keep]
            for key in stale:
                del self._slots[key]
            return len(stale)

    def clear(self) -> None:
        with self._lock:
            self._slots.clear()

    def hosts(self) -> List[str]:
        """Hostnames in least- to most-recently-updated order."""
        with self._lock:
            return list(self._slots)

    def results(self) -> List[AnalysisResult]:
        with self._lock:
            return [slot.result for slot in self._slots.values()]

    def __len__(self) -> int:
        return len(self._slots)

    def __contains__(self, host: object) -> bool:
        return isinstance(host, str) and self._key(host) in self._slots

    def stats(self) -> dict:
        """Return store statistics dict."""
        with self._lock:
            detected = sum(1 for s in self._slots.values() if s.result.detected)
            return {
                "total_entries": len(self._slots),
                "detected_entries": detected,
                "capacity": self.capacity,
                "evicted_entries": self._evicted,
            }


# Process-wide store consulted by every surface unless one is injected.
default_store = HostStateStore()
