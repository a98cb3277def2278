from __future__ import annotations

import logging
import threading
from collections import OrderedDict

from page_organizer.domain.models import RenderKey, Thumbnail

logger = logging.getLogger(__name__)


class ThumbnailCache:
    """LRU cache capped by entry count and total byte cost."""

    def __init__(self, count_limit: int = 100, cost_limit: int = 50 * 1024 * 1024) -> None:
        self.count_limit = count_limit
        self.cost_limit = cost_limit
        self._lock = threading.Lock()
        self._store: OrderedDict[RenderKey, tuple[Thumbnail, int]] = OrderedDict()
        self._total_cost = 0
        self._hits = 0
        self._misses = 0
        self._evictions = 0

    def __len__(self) -> int:
        with self._lock:
            return len(self._store)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._store

    @property
    def total_cost(self) -> int:
        with self._lock:
            return self._total_cost

    def get(self, key: RenderKey) -> Thumbnail | None:
        with self._lock:
            item = self._store.get(key)
            if item is None:
                self._misses += 1
                return None
            self._store.move_to_end(key, last=True)
            self._hits += 1
            return item[0]

    def put(self, key: RenderKey, thumbnail: Thumbnail, cost: int | None = None) -> None:
        size = thumbnail.cost if cost is None else max(0, int(cost))
        with self._lock:
            if key in self._store:
                _, old_cost = self._store.pop(key)
                self._total_cost -= old_cost
            self._store[key] = (thumbnail, size)
            self._total_cost += size
            self._evict()

    def clear(self) -> None:
        with self._lock:
            self._store.clear()
            self._total_cost = 0
        logger.debug("Thumbnail cache cleared")

    def stats(self) -> dict[str, int]:
        with self._lock:
            return {
                "items": len(self._store),
                "bytes": self._total_cost,
                "hits": self._hits,
                "misses": self._misses,
                "evictions": self._evictions,
                "count_cap": self.count_limit,
                "cost_cap": self.cost_limit,
            }

    def _over_budget(self) -> bool:
        return len(self._store) > self.count_limit or self._total_cost > self.cost_limit

    def _evict(self) -> None:
        # The newest entry sits at the end and always survives.
        while self._over_budget() and len(self._store) > 1:
            key, (_, cost) = self._store.popitem(last=False)
            self._total_cost -= cost
            self._evictions += 1
            logger.debug(f"Evicted thumbnail {key} ({cost} bytes)")
