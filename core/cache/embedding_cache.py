# Path: core/cache/embedding_cache.py
# Purpose: Cache candidate embeddings by image URL across searches.
# Layer: core/cache.
# Details: Single-flight per key so overlapping searches never duplicate a load+embed for the same image.

from __future__ import annotations

import asyncio
import logging
import time
from collections import OrderedDict
from dataclasses import dataclass
from functools import partial
from typing import Awaitable, Callable, Dict, Optional

import numpy as np

from core.models.domain import CacheEntry, FeatureVector

logger = logging.getLogger(__name__)

ComputeFn = Callable[[], Awaitable[FeatureVector]]


@dataclass
class CacheStats:
    """Counters describing cache effectiveness."""

    hits: int = 0
    misses: int = 0
    shared: int = 0
    evictions: int = 0
    size: int = 0


class EmbeddingCache:
    """In-process map from image URL to its most recently computed feature vector.

    Entries live for the process lifetime unless invalidated or, when ``max_entries`` is
    set, evicted least-recently-used first. Failed computations are never stored.
    """

    def __init__(self, max_entries: Optional[int] = None, clock: Callable[[], float] = time.time) -> None:
        if max_entries is not None and max_entries < 1:
            raise ValueError("max_entries must be positive when set.")
        self.max_entries = max_entries
        self._clock = clock
        self._entries: "OrderedDict[str, CacheEntry]" = OrderedDict()
        self._pending: Dict[str, "asyncio.Task[FeatureVector]"] = {}
        self._stats = CacheStats()

    async def get_or_compute(self, url: str, compute: ComputeFn) -> FeatureVector:
        """
        Return the cached vector for ``url`` or compute, store, and return it.

        Concurrent callers for the same uncached URL share one in-flight computation.
        A caller that is cancelled while waiting does not cancel the shared work.
        """

        entry = self._entries.get(url)
        if entry is not None:
            self._entries.move_to_end(url)
            self._stats.hits += 1
            return entry.vector

        task = self._pending.get(url)
        if task is None:
            self._stats.misses += 1
            # No await between the lookup above and this insert.
            task = asyncio.ensure_future(compute())
            self._pending[url] = task
            task.add_done_callback(partial(self._settle, url))
        else:
            self._stats.shared += 1
            logger.debug("Joining in-flight embedding for %s", url)

        return await asyncio.shield(task)

    def _settle(self, url: str, task: "asyncio.Task[FeatureVector]") -> None:
        if task.cancelled():
            self._release(url, task)
            return
        failure = task.exception()
        owned = self._release(url, task)
        if failure is not None or not owned:
            return
        self._store(url, task.result())

    def _release(self, url: str, task: "asyncio.Task[FeatureVector]") -> bool:
        """Drop the pending slot if it still belongs to ``task``; False means it was invalidated."""

        if self._pending.get(url) is task:
            del self._pending[url]
            return True
        return False

    def _store(self, url: str, vector: FeatureVector) -> None:
        if isinstance(vector, np.ndarray) and vector.flags.writeable:
            vector.setflags(write=False)
        self._entries[url] = CacheEntry(image_url=url, vector=vector, computed_at=self._clock())
        self._entries.move_to_end(url)
        if self.max_entries is not None:
            while len(self._entries) > self.max_entries:
                evicted, _ = self._entries.popitem(last=False)
                self._stats.evictions += 1
                logger.debug("Evicted cached embedding for %s", evicted)

    def get(self, url: str) -> Optional[CacheEntry]:
        """Return the stored entry for ``url`` without computing anything."""

        return self._entries.get(url)

    def invalidate(self, url: str) -> bool:
        """Forget ``url``; an in-flight computation for it will finish but not be stored."""

        removed = self._entries.pop(url, None) is not None
        detached = self._pending.pop(url, None) is not None
        if removed or detached:
            logger.info("Invalidated cached embedding for %s", url)
        return removed or detached

    def clear(self) -> None:
        """Drop every entry and detach every pending computation."""

        self._entries.clear()
        self._pending.clear()

    def stats(self) -> CacheStats:
        return CacheStats(
            hits=self._stats.hits,
            misses=self._stats.misses,
            shared=self._stats.shared,
            evictions=self._stats.evictions,
            size=len(self._entries),
        )

    def __contains__(self, url: object) -> bool:
        return url in self._entries

    def __len__(self) -> int:
        return len(self._entries)
