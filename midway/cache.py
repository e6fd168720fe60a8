"""In-memory response cache for the maps HTTP layer. Only GoogleMapsService uses it."""

import json
import threading
import time
from collections import OrderedDict
from typing import Any, Callable, Dict, Tuple

# seconds
CACHE_TTL = {
    'geocode': 24 * 60 * 60,
    'directions': 60 * 60,
    'places_nearby': 30 * 60,
    'distance_matrix': 10 * 60,
}

MISS = object()


def make_key(endpoint: str, params: Dict[str, Any]) -> str:
    return endpoint + ':' + json.dumps(params, sort_keys=True, default=str)


class ResponseCache:
    """Thread-safe TTL cache with least-recently-used eviction"""

    def __init__(self, max_entries: int = 2048, clock: Callable[[], float] = time.monotonic):
        self.max_entries = max_entries
        self._clock = clock
        self._entries: "OrderedDict[str, Tuple[float, Any]]" = OrderedDict()
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0

    def get(self, key: str, ttl: float) -> Any:
        """Cached value stored less than `ttl` seconds ago, else MISS"""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self.misses += 1
                return MISS
            stored_at, value = entry
            if self._clock() - stored_at > ttl:
                del self._entries[key]
                self.misses += 1
                return MISS
            self._entries.move_to_end(key)
            self.hits += 1
            return value

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            self._entries[key] = (self._clock(), value)
            self._entries.move_to_end(key)
            while len(self._entries) > self.max_entries:
                self._entries.popitem(last=False)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self.hits = 0
            self.misses = 0

    def __len__(self) -> int:
        return len(self._entries)

    def stats(self) -> Dict[str, int]:
        return {'entries': len(self._entries), 'hits': self.hits, 'misses': self.misses}
