"""In-process query cache keyed by caller-chosen strings.

One QueryCache lives for the lifetime of the application process (created
at startup and stored on ``app.state``). It is handed to table queries
explicitly rather than living in a module global. Entries are only removed
by explicit invalidation; an expired entry simply stops being returned.
"""

from __future__ import annotations

import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Any

from app.core.logging import get_logger

logger = get_logger(__name__)


@dataclass
class CacheEntry:
    """Last fetched row set for a key and when it was stored."""

    rows: list[Any]
    timestamp: float


class QueryCache:
    """Keyed row-set cache with per-read TTL."""

    def __init__(
        self,
        default_ttl: float = 300.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.default_ttl = default_ttl
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}

    def get(self, key: str, ttl: float | None = None) -> list[Any] | None:
        """Return cached rows for ``key`` if younger than ``ttl`` seconds."""
        entry = self._entries.get(key)
        if entry is None:
            return None
        max_age = self.default_ttl if ttl is None else ttl
        if self._clock() - entry.timestamp >= max_age:
            return None
        return entry.rows

    def set(self, key: str, rows: Sequence[Any]) -> None:
        self._entries[key] = CacheEntry(rows=list(rows), timestamp=self._clock())

    def invalidate(self, key: str) -> bool:
        """Drop one entry. Returns True if it existed."""
        return self._entries.pop(key, None) is not None

    def invalidate_prefix(self, prefix: str) -> int:
        """Drop every entry whose key starts with ``prefix``."""
        keys = [k for k in self._entries if k.startswith(prefix)]
        for k in keys:
            del self._entries[k]
        if keys:
            logger.debug("query_cache_prefix_invalidated", prefix=prefix, count=len(keys))
        return len(keys)

    def clear(self) -> None:
        self._entries.clear()

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)
