"""In-memory command cache with TTL expiry and least-recently-accessed eviction."""

import logging
import time
from dataclasses import dataclass
from typing import Callable

from commandcore.parser.task_types import Task

logger = logging.getLogger(__name__)


def normalize_command(command: str) -> str:
    """Cache key for a command: case-folded, whitespace collapsed."""
    return " ".join(command.casefold().split())


@dataclass
class CacheEntry:
    """A cached task with access bookkeeping."""

    task: Task
    created_at: float
    last_accessed_at: float
    hit_count: int = 0


@dataclass
class CacheMetrics:
    """Counters for cache behaviour.

    Attributes:
        hits: Lookups that returned a live entry.
        misses: Lookups that found nothing or an expired entry.
        evictions: Entries removed by TTL expiry or by capacity.
        average_response_time: Running mean of hit lookup time in seconds.
    """

    hits: int = 0
    misses: int = 0
    evictions: int = 0
    average_response_time: float = 0.0


class CommandCache:
    """Maps normalized commands to resolved tasks.

    Args:
        max_size: Capacity; the least recently accessed entry goes first.
        ttl_seconds: Entry lifetime measured from insertion.
        clock: Monotonic time source.
    """

    def __init__(
        self,
        max_size: int = 1000,
        ttl_seconds: float = 3600.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.max_size = max_size
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self._metrics = CacheMetrics()

    def get(self, command: str) -> Task | None:
        """Fresh copy of the cached task, with its own id, or None."""
        started = self._clock()
        key = normalize_command(command)
        entry = self._entries.get(key)

        if entry is None:
            self._metrics.misses += 1
            logger.debug(f"Cache miss for '{key}'")
            return None

        now = self._clock()
        if now - entry.created_at > self.ttl_seconds:
            del self._entries[key]
            self._metrics.evictions += 1
            self._metrics.misses += 1
            logger.debug(f"Cache entry for '{key}' expired")
            return None

        entry.hit_count += 1
        entry.last_accessed_at = now
        self._metrics.hits += 1
        elapsed = self._clock() - started
        self._metrics.average_response_time += (
            elapsed - self._metrics.average_response_time
        ) / self._metrics.hits
        logger.debug(f"Cache hit for '{key}' ({entry.hit_count} hits)")
        return entry.task.clone(new_id=True)

    def set(self, command: str, task: Task) -> None:
        key = normalize_command(command)
        if key not in self._entries and len(self._entries) >= self.max_size:
            self._evict_least_recent()

        now = self._clock()
        self._entries[key] = CacheEntry(task=task.clone(), created_at=now, last_accessed_at=now)

    def _evict_least_recent(self) -> None:
        if not self._entries:
            return
        victim = min(self._entries, key=lambda k: self._entries[k].last_accessed_at)
        del self._entries[victim]
        self._metrics.evictions += 1
        logger.debug(f"Evicted least recently accessed cache entry '{victim}'")

    def delete(self, command: str) -> bool:
        return self._entries.pop(normalize_command(command), None) is not None

    def clear(self) -> None:
        self._entries.clear()

    @property
    def size(self) -> int:
        return len(self._entries)

    @property
    def hit_rate(self) -> float:
        lookups = self._metrics.hits + self._metrics.misses
        return self._metrics.hits / lookups if lookups else 0.0

    @property
    def metrics(self) -> CacheMetrics:
        """Copy of the current counters."""
        return CacheMetrics(
            hits=self._metrics.hits,
            misses=self._metrics.misses,
            evictions=self._metrics.evictions,
            average_response_time=self._metrics.average_response_time,
        )
