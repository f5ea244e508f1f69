"""In-process caches.

Two deliberately separate policies live here:

- ``AnalysisCache`` holds expensive analysis results indefinitely, keyed by the
  order-independent set of participating document ids. Entries leave only when
  overwritten by a forced regeneration or purged by ``invalidate``.
- ``TTLCache`` is a small bounded memo with per-entry expiry and oldest-first
  eviction, used for lightweight memoization such as query embeddings.
"""

import asyncio
import copy
import time
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from docintel.core.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class AnalysisKey:
    """Canonical cache key: sorted, de-duplicated document ids plus an analysis type."""

    document_ids: tuple[str, ...]
    analysis_type: str

    @property
    def canonical(self) -> str:
        return f"{self.analysis_type}:{','.join(self.document_ids)}"

    def involves(self, document_ids: Iterable[str]) -> bool:
        return not set(self.document_ids).isdisjoint(document_ids)


def analysis_key(document_ids: Iterable[str], analysis_type: str = "within") -> AnalysisKey:
    """Build the cache key for a set of documents, independent of their order."""
    return AnalysisKey(tuple(sorted(set(document_ids))), analysis_type)


class AnalysisCache:
    """Indefinite result cache with document-scoped invalidation.

    Values are deep-copied on the way in and out so callers can flip read-time
    flags (``cached=True``) without mutating the stored entry.
    """

    def __init__(self):
        self._entries: dict[AnalysisKey, Any] = {}
        self._locks: dict[AnalysisKey, asyncio.Lock] = {}
        self._generation = 0

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, key: AnalysisKey) -> Any | None:
        if key not in self._entries:
            return None
        return copy.deepcopy(self._entries[key])

    def set(self, key: AnalysisKey, value: Any) -> None:
        self._entries[key] = copy.deepcopy(value)

    def invalidate(self, document_ids: Iterable[str] | None = None) -> int:
        """
        Remove every entry whose document set intersects ``document_ids``.

        Args:
            document_ids: Ids of deleted or changed documents; None clears everything

        Returns:
            Number of entries removed
        """
        self._generation += 1

        if document_ids is None:
            removed = len(self._entries)
            self._entries.clear()
            self._locks.clear()
            logger.info(f"Cleared analysis cache ({removed} entries)")
            return removed

        ids = set(document_ids)
        stale = [key for key in self._entries if key.involves(ids)]
        for key in stale:
            del self._entries[key]
            self._locks.pop(key, None)

        if stale:
            logger.info(f"Invalidated {len(stale)} cached analyses for {len(ids)} document(s)")
        return len(stale)

    async def get_or_compute(
        self,
        key: AnalysisKey,
        compute: Callable[[], Awaitable[T]],
        force: bool = False,
    ) -> tuple[T, bool]:
        """
        Return the cached value for key, computing and storing it on a miss.

        Concurrent callers for the same key share a single computation. A result
        whose documents were invalidated mid-computation is returned but not stored.

        Returns:
            Tuple of (value, served_from_cache)
        """
        lock = self._locks.setdefault(key, asyncio.Lock())
        async with lock:
            if not force:
                cached = self.get(key)
                if cached is not None:
                    logger.debug(f"Analysis cache hit: {key.canonical}")
                    return cached, True

            generation = self._generation
            value = await compute()

            if generation == self._generation:
                self.set(key, value)
            else:
                logger.info(f"Skipped caching {key.canonical}: invalidated during computation")

            return value, False


class TTLCache(Generic[T]):
    """Bounded cache with per-entry time-to-live and oldest-first eviction."""

    def __init__(
        self,
        max_size: int = 100,
        default_ttl: float = 3600,
        clock: Callable[[], float] = time.monotonic,
    ):
        if max_size < 1:
            raise ValueError(f"max_size must be at least 1, got {max_size}")
        self.max_size = max_size
        self.default_ttl = default_ttl
        self._clock = clock
        self._entries: dict[str, tuple[T, float]] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, key: str) -> T | None:
        entry = self._entries.get(key)
        if entry is None:
            return None

        value, expires_at = entry
        if self._clock() >= expires_at:
            del self._entries[key]
            return None
        return value

    def set(self, key: str, value: T, ttl: float | None = None) -> None:
        if key in self._entries:
            del self._entries[key]
        elif len(self._entries) >= self.max_size:
            oldest = next(iter(self._entries))
            del self._entries[oldest]

        expires_at = self._clock() + (self.default_ttl if ttl is None else ttl)
        self._entries[key] = (value, expires_at)

    def delete(self, key: str) -> None:
        self._entries.pop(key, None)

    def clear(self) -> None:
        self._entries.clear()
