"""In-process memoization cache shared by the calculators to avoid recomputing identical calls."""

from __future__ import annotations

import logging
import numbers
import threading
from collections import OrderedDict
from enum import Enum
from typing import Any, Dict, Iterable, Optional

from .config import settings

logger = logging.getLogger(__name__)

KEY_SEPARATOR = "|"


def _render_part(part: Any) -> str:
    """Render one key component deterministically."""
    if part is None:
        return "None"
    if isinstance(part, Enum):
        return _render_part(part.value)
    if isinstance(part, bool):
        return "true" if part else "false"
    if isinstance(part, numbers.Integral):
        return str(int(part))
    if isinstance(part, numbers.Real):
        return repr(float(part))
    if isinstance(part, str):
        # Quoted so separators inside a string cannot split it into two parts
        return repr(part)
    if hasattr(part, "isoformat"):
        return part.isoformat()
    if isinstance(part, Iterable):
        return "[" + ",".join(_render_part(p) for p in part) + "]"
    return repr(part)


def make_key(namespace: str, *parts: Any) -> str:
    """
    Build a canonical cache key from a calculator name and its inputs.

    Args:
        namespace: Calculator/operation name, keeps calculators apart in a shared cache
        *parts: Numeric, string, enum, date or sequence inputs of the call

    Returns:
        Deterministic key string
    """
    return KEY_SEPARATOR.join([namespace] + [_render_part(p) for p in parts])


class MemoizationCache:
    """Least-recently-used key/value store for calculator results."""

    def __init__(self, max_entries: Optional[int] = None) -> None:
        """
        Initialize the cache.

        Args:
            max_entries: Maximum number of entries kept. None or 0 disables eviction.
        """
        self.max_entries = max_entries or None
        self._entries: "OrderedDict[str, Any]" = OrderedDict()
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0
        self._evictions = 0

    def get(self, key: str, default: Any = None) -> Any:
        """Return the cached value for key, or default on a miss."""
        with self._lock:
            if key in self._entries:
                self._entries.move_to_end(key)
                self._hits += 1
                logger.debug("Cache hit for %s", key)
                return self._entries[key]
            self._misses += 1
            return default

    def set(self, key: str, value: Any) -> None:
        """Store value under key, evicting the least recently used entry if full."""
        with self._lock:
            self._entries[key] = value
            self._entries.move_to_end(key)
            if self.max_entries is not None:
                while len(self._entries) > self.max_entries:
                    evicted, _ = self._entries.popitem(last=False)
                    self._evictions += 1
                    logger.debug("Evicted cache entry %s", evicted)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def clear(self) -> None:
        """Drop every cached entry and reset the counters."""
        with self._lock:
            self._entries.clear()
            self._hits = 0
            self._misses = 0
            self._evictions = 0

    def stats(self) -> Dict[str, Any]:
        """Return hit/miss/eviction counters."""
        with self._lock:
            return {
                "entries": len(self._entries),
                "max_entries": self.max_entries,
                "hits": self._hits,
                "misses": self._misses,
                "evictions": self._evictions,
            }


def create_cache(max_entries: Optional[int] = None) -> MemoizationCache:
    """
    Create a cache sized from settings unless max_entries is given.

    Args:
        max_entries: Explicit size limit (overrides settings)

    Returns:
        MemoizationCache instance
    """
    if max_entries is None:
        max_entries = settings.cache.max_entries
    return MemoizationCache(max_entries)


# Global cache instance
default_cache = create_cache()
