"""
Process-local TTL cache for restriction lookups.
"""

import time
from typing import Callable, Dict, Optional, Tuple

from accessgate.config import RULE_CACHE_MAX_ENTRIES, RULE_CACHE_TTL_SECONDS


class RuleCache:
    """
    Key -> serialized value store with per-entry expiry.

    Values are opaque strings; decoding is the caller's job so a corrupt entry
    can be treated as a miss. Entries are replaced wholesale, never mutated,
    so concurrent readers always see a complete value.

    The map never holds more than *max_entries* keys: once full, expired
    entries are swept and then the oldest writes are evicted.
    """

    def __init__(
        self,
        ttl_seconds: float = RULE_CACHE_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
        max_entries: int = RULE_CACHE_MAX_ENTRIES,
    ):
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self._clock = clock
        self._entries: Dict[str, Tuple[str, float]] = {}

    def get(self, key: str) -> Optional[str]:
        """Return the cached value, or None when absent or expired."""
        entry = self._entries.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if expires_at <= self._clock():
            self._entries.pop(key, None)
            return None
        return value

    def set(self, key: str, value: str, ttl: Optional[float] = None) -> None:
        ttl = self.ttl_seconds if ttl is None else ttl
        # Re-inserting moves the key to the young end of the eviction order.
        self._entries.pop(key, None)
        if len(self._entries) >= self.max_entries:
            self._sweep_expired()
        while len(self._entries) >= self.max_entries:
            del self._entries[next(iter(self._entries))]
        self._entries[key] = (value, self._clock() + ttl)

    def _sweep_expired(self) -> None:
        now = self._clock()
        expired = [key for key, (_, expires_at) in self._entries.items() if expires_at <= now]
        for key in expired:
            del self._entries[key]

    def invalidate(self, key: Optional[str] = None) -> None:
        """Drop one key, or everything when *key* is None."""
        if key is None:
            self._entries.clear()
        else:
            self._entries.pop(key, None)

    def __len__(self) -> int:
        return len(self._entries)
