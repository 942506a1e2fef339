"""
Tender listing caches: TTL result stores, in-flight request registry and query fingerprints
"""
import asyncio
import json
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Sequence

from pydantic import BaseModel

from config.settings import (
    FILTER_OPTIONS_CACHE_TTL_SECONDS,
    RESULTS_CACHE_TTL_SECONDS,
)
from utils.logging_config import get_logger

logger = get_logger(__name__, "app")

KEYWORDS_KEY_PREFIX = "keywords:"


def fingerprint(query: BaseModel) -> str:
    """Deterministic cache key for a query descriptor.

    Every field takes part, nested date ranges and the acting user id included,
    so equal descriptors always map to the same key and per-user result sets
    never collide.
    """
    payload = query.model_dump(mode="json")
    return json.dumps(payload, sort_keys=True, separators=(",", ":"))


@dataclass(frozen=True)
class CacheEntry:
    rows: tuple
    total_count: int
    created_at: float


class CacheStore:
    """In-memory keyed store whose entries expire after a fixed TTL.

    There is no size bound; entries live until they expire and are
    overwritten, or until the whole store is cleared.
    """

    def __init__(self, ttl_seconds: float, clock: Callable[[], float] = time.monotonic, name: str = "cache"):
        self.ttl_seconds = ttl_seconds
        self.name = name
        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {}

    def get(self, key: str) -> Optional[CacheEntry]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self._clock() - entry.created_at > self.ttl_seconds:
            return None
        return entry

    def put(self, key: str, rows: Sequence[Any], total_count: int) -> CacheEntry:
        entry = CacheEntry(rows=tuple(rows), total_count=total_count, created_at=self._clock())
        self._entries[key] = entry
        return entry

    def clear(self) -> None:
        if self._entries:
            logger.debug(f"Clearing {self.name} cache ({len(self._entries)} entries)")
        self._entries.clear()

    def stats(self) -> Dict[str, int]:
        now = self._clock()
        fresh = sum(1 for e in self._entries.values() if now - e.created_at <= self.ttl_seconds)
        return {"entries": len(self._entries), "fresh": fresh}

    def __len__(self) -> int:
        return len(self._entries)


class InFlightRegistry:
    """Pending backend calls keyed by fingerprint.

    The registry owns the pending handles; callers only attach to and await them.
    """

    def __init__(self):
        self._pending: Dict[str, asyncio.Future] = {}

    def attach(self, key: str) -> Optional[asyncio.Future]:
        handle = self._pending.get(key)
        if handle is None or handle.done():
            return None
        return handle

    def register(self, key: str, handle: asyncio.Future) -> None:
        self._pending[key] = handle

    def release(self, key: str, handle: Optional[asyncio.Future] = None) -> None:
        # A settling call must not evict a newer registration made after a flush
        if handle is not None and self._pending.get(key) is not handle:
            return
        self._pending.pop(key, None)

    def clear(self) -> None:
        self._pending.clear()

    def discard_prefix(self, prefix: str) -> None:
        for key in [k for k in self._pending if k.startswith(prefix)]:
            del self._pending[key]

    def __contains__(self, key: str) -> bool:
        return key in self._pending

    def __len__(self) -> int:
        return len(self._pending)


class TenderCaches:
    """Cache bundle owned by the application (or a test) and injected into fetchers."""

    def __init__(
        self,
        results_ttl_seconds: float = RESULTS_CACHE_TTL_SECONDS,
        options_ttl_seconds: float = FILTER_OPTIONS_CACHE_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.results = CacheStore(results_ttl_seconds, clock, name="results")
        self.filter_options = CacheStore(options_ttl_seconds, clock, name="filter_options")
        self.keywords = CacheStore(options_ttl_seconds, clock, name="keywords")
        self.in_flight = InFlightRegistry()
        # Bumped on every flush; calls started before a flush do not write back
        self.generation = 0
        self.keyword_generation = 0

    def clear_results(self) -> None:
        """Flush result pages and filter options (explicit refetch)."""
        self.generation += 1
        self.results.clear()
        self.filter_options.clear()
        self.in_flight.clear()

    def clear_keywords(self) -> None:
        """Flush keyword flags, including lookups still running (keywords saved)."""
        self.keyword_generation += 1
        self.keywords.clear()
        self.in_flight.discard_prefix(KEYWORDS_KEY_PREFIX)

    def clear_all(self) -> None:
        """Flush everything (identity change)."""
        logger.info("Invalidating all tender caches")
        self.clear_results()
        self.clear_keywords()

    def get_cache_stats(self) -> Dict[str, Any]:
        return {
            "results": self.results.stats(),
            "filter_options": self.filter_options.stats(),
            "keywords": self.keywords.stats(),
            "in_flight": len(self.in_flight),
            "generation": self.generation,
            "keyword_generation": self.keyword_generation,
        }
