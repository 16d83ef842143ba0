"""
TemplateCache - memoization of compiled template artifacts.

Entries are keyed by absolute file path and expire after the TTL given
to the constructor: ``None`` keeps an entry for the life of the process
(production), a short TTL such as ``0.1`` forces a recompute once the
entry is stale (development, hot editing).

One cache is constructed per Application and shared by every binding
and request. Two concurrent first accesses for the same key may both
compute; the last write wins. Compilation is deterministic so this only
costs duplicated work.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, Optional

from .utils import maybe_await

logger = logging.getLogger("aerie.cache")

DEVELOPMENT_TTL = 0.1


# ============================================================================
# Cache Entry
# ============================================================================

@dataclass
class CacheEntry:
    """Single cache entry with expiry metadata."""

    key: str
    value: Any
    created_at: float = field(default_factory=time.monotonic)
    expires_at: Optional[float] = None
    access_count: int = 0

    @property
    def is_expired(self) -> bool:
        if self.expires_at is None:
            return False
        return time.monotonic() >= self.expires_at

    def touch(self) -> None:
        self.access_count += 1

    def __repr__(self) -> str:
        return f"<CacheEntry key={self.key!r} hits={self.access_count}>"


@dataclass
class CacheStats:
    hits: int = 0
    misses: int = 0
    sets: int = 0


# ============================================================================
# TemplateCache
# ============================================================================

class TemplateCache:
    """
    Key/value memo with a per-cache TTL.

    Args:
        ttl: Seconds an entry stays fresh; ``None`` never expires.
    """

    def __init__(self, ttl: Optional[float] = None):
        if ttl is not None and ttl < 0:
            raise ValueError("ttl must be >= 0 or None")
        self.ttl = ttl
        self._entries: Dict[str, CacheEntry] = {}
        self.stats = CacheStats()

    def get(self, key: str) -> Any:
        """Fresh value for ``key`` or ``None``."""
        entry = self._entries.get(key)
        if entry is None or entry.is_expired:
            return None
        entry.touch()
        return entry.value

    def set(self, key: str, value: Any) -> None:
        expires_at = None if self.ttl is None else time.monotonic() + self.ttl
        self._entries[key] = CacheEntry(key=key, value=value, expires_at=expires_at)
        self.stats.sets += 1

    async def get_or_compute(self, key: str, factory: Callable[[], Awaitable[Any]]) -> Any:
        """
        Return the cached value for ``key``, computing it on miss or expiry.

        ``factory`` may be a coroutine function or a plain callable.
        """
        entry = self._entries.get(key)
        if entry is not None and not entry.is_expired:
            entry.touch()
            self.stats.hits += 1
            return entry.value

        self.stats.misses += 1
        logger.debug(f"Template cache miss for {key}")
        value = await maybe_await(factory())
        self.set(key, value)
        return value

    def invalidate(self, key: Optional[str] = None) -> None:
        """Drop one entry, or every entry when ``key`` is None."""
        if key is None:
            self._entries.clear()
        else:
            self._entries.pop(key, None)

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None

    def __len__(self) -> int:
        return len(self._entries)
