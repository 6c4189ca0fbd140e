"""
In-memory result cache: TTL per entry, bounded size, least recently used
entries evicted first.
"""
import time
from collections import OrderedDict
from typing import Any, Dict, List, Optional, Tuple


class MemoryCache:
    """
    Maps cache keys to (value, expiry) pairs.

    Args:
        ttl: Default time-to-live for entries in seconds.
        max_entries: Entry limit; None means unbounded.
    """

    def __init__(self, ttl: int = 300, max_entries: Optional[int] = None):
        self._entries: "OrderedDict[str, Tuple[Any, float]]" = OrderedDict()
        self.default_ttl = ttl
        self.max_entries = max_entries
        self.hits = 0
        self.misses = 0
        self.evictions = 0

    def get(self, key: str) -> Optional[Any]:
        """Cached value, or None when absent or expired."""
        entry = self._entries.get(key)
        if entry is None or entry[1] < time.time():
            self._entries.pop(key, None)
            self.misses += 1
            return None

        self._entries.move_to_end(key)
        self.hits += 1
        return entry[0]

    def set(self, key: str, value: Any, ttl: Optional[int] = None):
        lifetime = self.default_ttl if ttl is None else ttl
        self._entries[key] = (value, time.time() + lifetime)
        self._entries.move_to_end(key)

        if self.max_entries is not None:
            while len(self._entries) > self.max_entries:
                self._entries.popitem(last=False)
                self.evictions += 1

    def delete(self, key: str):
        self._entries.pop(key, None)

    def clear(self):
        self._entries.clear()

    def get_all_keys(self) -> List[str]:
        """Live keys, oldest use first. Expired entries are dropped."""
        now = time.time()
        for key in [k for k, (_, expiry) in self._entries.items() if expiry < now]:
            del self._entries[key]
        return list(self._entries)

    def stats(self) -> Dict[str, int]:
        return {
            "entries": len(self._entries),
            "hits": self.hits,
            "misses": self.misses,
            "evictions": self.evictions,
        }

    def __len__(self) -> int:
        return len(self._entries)
