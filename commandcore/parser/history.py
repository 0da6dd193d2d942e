"""Bounded store of past command resolutions."""

import logging
import time
from dataclasses import dataclass, field
from typing import Callable

from commandcore.parser.task_types import TaskType

logger = logging.getLogger(__name__)

SECONDS_PER_HOUR = 3600.0


@dataclass(frozen=True)
class HistoricalPattern:
    """A recorded command-to-resolution outcome.

    Attributes:
        command: Command text as given.
        resolved_type: Type the command resolved to.
        success: Whether the resolution was confirmed correct.
        timestamp: Epoch seconds when recorded.
        context_factors: Numeric context snapshot at record time.
    """

    command: str
    resolved_type: TaskType
    success: bool
    timestamp: float
    context_factors: dict[str, float] = field(default_factory=dict)


class HistoricalPatternStore:
    """Append-only, capped list of HistoricalPatterns with time decay.

    Relevance of an entry is ``decay_rate ** age_hours``; entries below the
    relevance floor are ignored by queries.

    Args:
        max_size: Cap; the oldest entries by timestamp are dropped first.
        decay_rate: Per-hour relevance multiplier.
        relevance_floor: Minimum relevance to be returned.
        recent_limit: Default number of entries returned by ``recent_relevant``.
        clock: Epoch-seconds time source.
    """

    def __init__(
        self,
        max_size: int = 1000,
        decay_rate: float = 0.95,
        relevance_floor: float = 0.1,
        recent_limit: int = 5,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.max_size = max_size
        self.decay_rate = decay_rate
        self.relevance_floor = relevance_floor
        self.recent_limit = recent_limit
        self._clock = clock
        self._patterns: list[HistoricalPattern] = []

    def __len__(self) -> int:
        return len(self._patterns)

    @property
    def patterns(self) -> list[HistoricalPattern]:
        return list(self._patterns)

    def now(self) -> float:
        return self._clock()

    def add(self, pattern: HistoricalPattern) -> None:
        """Append a pattern, evicting the oldest entries beyond the cap."""
        self._patterns.append(pattern)
        if len(self._patterns) > self.max_size:
            self._patterns.sort(key=lambda p: p.timestamp, reverse=True)
            dropped = len(self._patterns) - self.max_size
            del self._patterns[self.max_size:]
            logger.debug(f"Historical pattern store trimmed {dropped} oldest entries")

    def relevance(self, pattern: HistoricalPattern) -> float:
        age_hours = max(0.0, self.now() - pattern.timestamp) / SECONDS_PER_HOUR
        return self.decay_rate ** age_hours

    def recent_relevant(self, limit: int | None = None) -> list[HistoricalPattern]:
        """Most recent entries at or above the relevance floor, newest first."""
        limit = self.recent_limit if limit is None else limit
        relevant = [p for p in self._patterns if self.relevance(p) >= self.relevance_floor]
        relevant.sort(key=lambda p: p.timestamp, reverse=True)
        return relevant[:limit]

    def clear(self) -> None:
        self._patterns.clear()
