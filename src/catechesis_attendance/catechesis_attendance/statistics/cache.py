from __future__ import annotations

import logging
import threading
import time
from typing import Any, Callable, Dict, FrozenSet, Hashable, Iterable, Optional, Tuple

from ..core.constants import DEFAULT_STATS_CACHE_TTL_SECONDS

logger = logging.getLogger(__name__)

FILTERS_TAG = ("filters",)


def group_tag(group_id: int) -> tuple:
    return ("group", int(group_id))


def enrollment_tag(enrollment_id: int) -> tuple:
    return ("enrollment", int(enrollment_id))


class StatisticsCache:
    """TTL cache for computed statistics, invalidated by registrations.

    Every invalidation bumps a generation counter; a value computed from reads
    that started under an older generation is discarded instead of stored.
    """

    def __init__(self, *, ttl_seconds: float = DEFAULT_STATS_CACHE_TTL_SECONDS, clock: Callable[[], float] = time.monotonic):
        self._ttl = float(ttl_seconds)
        self._clock = clock
        self._lock = threading.Lock()
        self._entries: Dict[Hashable, Tuple[float, FrozenSet[tuple], Any]] = {}
        self._generation = 0

    @property
    def enabled(self) -> bool:
        return self._ttl > 0

    @property
    def generation(self) -> int:
        with self._lock:
            return self._generation

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def _lookup(self, key: Hashable) -> Tuple[bool, Any]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return False, None
            expires_at, _, value = entry
            if expires_at <= self._clock():
                del self._entries[key]
                return False, None
            return True, value

    def put(self, key: Hashable, value: Any, *, tags: Iterable[tuple], generation: int) -> bool:
        if not self.enabled:
            return False
        with self._lock:
            if generation != self._generation:
                return False
            self._entries[key] = (self._clock() + self._ttl, frozenset(tags), value)
            return True

    def get_or_compute(self, key: Hashable, compute: Callable[[], Any], *, tags: Iterable[tuple]) -> Any:
        if not self.enabled:
            return compute()
        found, value = self._lookup(key)
        if found:
            return value
        generation = self.generation
        value = compute()
        self.put(key, value, tags=tags, generation=generation)
        return value

    def invalidate(
        self,
        *,
        group_id: Optional[int] = None,
        enrollment_ids: Iterable[int] = (),
    ) -> int:
        """Drop entries touching the group or the enrollments, plus every filter-based entry.

        Date-ranged results are always tagged with their group, enrollment or
        the filter tag, so a batch for one date reaches all of them.
        """

        affected = {FILTERS_TAG}
        if group_id is not None:
            affected.add(group_tag(group_id))
        affected.update(enrollment_tag(e) for e in enrollment_ids)

        with self._lock:
            self._generation += 1
            stale = [k for k, (_, tags, _) in self._entries.items() if tags & affected]
            for k in stale:
                del self._entries[k]

        logger.debug("statistics cache invalidated %d entries (group=%s)", len(stale), group_id)
        return len(stale)
