"""Category-specific recovery strategies for parsing errors.

Each ParsingErrorCategory owns a priority-ordered list of RecoveryStrategy
objects. A strategy succeeds by returning RecoveryHints that the task parser
applies on its next attempt; returning None means the strategy could not help.
"""

import asyncio
import logging
import re
import time
from collections import OrderedDict, deque
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

from commandcore.errors.exceptions import ParsingError, ParsingErrorCategory, RecoveryHints
from commandcore.llm.base import TextOracle

logger = logging.getLogger(__name__)

BackoffFunction = Callable[[int], float]
StrategyExecutor = Callable[[ParsingError], Awaitable[RecoveryHints | None]]


@dataclass
class RecoveryStrategy:
    """A named, retry-capped remediation procedure.

    Attributes:
        name: Identifier used in logs and on the ParsingError.
        priority: Higher runs first within a category.
        max_retries: Attempts allowed per (category, task id) key.
        backoff: Maps the attempt number to a delay in seconds.
        execute: Coroutine returning hints on success, None otherwise.
    """

    name: str
    priority: int
    max_retries: int
    backoff: BackoffFunction
    execute: StrategyExecutor


def exponential_backoff(base: float = 1.0, cap: float = 10.0) -> BackoffFunction:
    """Build a capped exponential backoff: min(base * 2^attempt, cap)."""

    def backoff(attempt: int) -> float:
        return min(base * (2 ** attempt), cap)

    return backoff


def no_backoff(attempt: int) -> float:
    return 0.0


# Conversational filler stripped when rephrasing a command
FILLER_PATTERNS = [
    r"^(?:[.!/]?bot)[,:]?\s+",
    r"\b(?:please|pls|kindly)\b",
    r"^(?:hey|hi|ok|okay)[,!]?\s+",
    r"^(?:can|could|would|will)\s+you\s+",
    r"^i\s+(?:want|need)\s+you\s+to\s+",
    r"^go\s+and\s+",
]

# Task types whose quantity defaults to a single unit
COUNTABLE_TYPES = {"mining", "crafting", "gathering", "farming"}


def normalize_command(command: str) -> str:
    """Lower-case a command and strip filler words and punctuation."""
    text = command.strip().lower()
    for pattern in FILLER_PATTERNS:
        text = re.sub(pattern, "", text).strip()
    text = re.sub(r"[?!.,;]+$", "", text)
    return re.sub(r"\s+", " ", text).strip()


class ErrorRecoveryManager:
    """Runs recovery strategies with per-key retry caps and backoff.

    Args:
        oracle: Oracle checked by the reconnect strategy.
        sleep: Awaitable used for backoff waits.
        clock: Time source for the failure history.
        history_window: Seconds of failure history consulted by adaptive backoff.
        max_tracked_keys: Retry counters kept; the least recently used key is
            dropped beyond this.
    """

    def __init__(
        self,
        oracle: TextOracle | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
        history_window: float = 300.0,
        max_tracked_keys: int = 1000,
    ) -> None:
        self._oracle = oracle
        self._sleep = sleep
        self._clock = clock
        self._history_window = history_window
        self.max_tracked_keys = max_tracked_keys
        self._strategies: dict[ParsingErrorCategory, list[RecoveryStrategy]] = {}
        self._retry_counts: OrderedDict[str, int] = OrderedDict()
        self._failures: deque[tuple[float, ParsingErrorCategory]] = deque(maxlen=500)
        self._initialize_strategies()

    def _initialize_strategies(self) -> None:
        self.add_strategy(ParsingErrorCategory.SERVICE_ERROR, RecoveryStrategy(
            name="oracle_reconnect",
            priority=1,
            max_retries=3,
            backoff=exponential_backoff(1.0, 10.0),
            execute=self._reconnect,
        ))
        self.add_strategy(ParsingErrorCategory.RESPONSE_PARSING_ERROR, RecoveryStrategy(
            name="reprompt_strict",
            priority=2,
            max_retries=2,
            backoff=no_backoff,
            execute=self._reprompt_strict,
        ))
        self.add_strategy(ParsingErrorCategory.SCHEMA_VALIDATION_ERROR, RecoveryStrategy(
            name="reprompt_strict",
            priority=2,
            max_retries=1,
            backoff=no_backoff,
            execute=self._reprompt_strict,
        ))
        self.add_strategy(ParsingErrorCategory.INVALID_COMMAND, RecoveryStrategy(
            name="command_rephrasing",
            priority=2,
            max_retries=2,
            backoff=no_backoff,
            execute=self._rephrase_command,
        ))
        self.add_strategy(ParsingErrorCategory.AMBIGUOUS_INTENT, RecoveryStrategy(
            name="context_disambiguation",
            priority=2,
            max_retries=2,
            backoff=no_backoff,
            execute=self._disambiguate_from_context,
        ))
        self.add_strategy(ParsingErrorCategory.MISSING_PARAMETERS, RecoveryStrategy(
            name="parameter_inference",
            priority=2,
            max_retries=2,
            backoff=no_backoff,
            execute=self._infer_parameters,
        ))
        self.add_strategy(ParsingErrorCategory.CONTEXT_MISMATCH, RecoveryStrategy(
            name="context_refresh",
            priority=1,
            max_retries=2,
            backoff=self.history_backoff(ParsingErrorCategory.CONTEXT_MISMATCH),
            execute=self._refresh_context,
        ))

    def add_strategy(self, category: ParsingErrorCategory, strategy: RecoveryStrategy) -> None:
        """Register a strategy and keep the category list ordered by priority."""
        strategies = self._strategies.setdefault(category, [])
        strategies.append(strategy)
        strategies.sort(key=lambda s: s.priority, reverse=True)

    def get_strategies(self, category: ParsingErrorCategory) -> list[RecoveryStrategy]:
        """Strategies for a category, highest priority first."""
        return list(self._strategies.get(category, []))

    def history_backoff(
        self,
        category: ParsingErrorCategory,
        step: float = 0.5,
        cap: float = 5.0,
    ) -> BackoffFunction:
        """Backoff that grows with recent failures of the same category."""

        def backoff(attempt: int) -> float:
            return min(step * (attempt + self.recent_failures(category)), cap)

        return backoff

    def recent_failures(self, category: ParsingErrorCategory) -> int:
        """Count failures of a category inside the history window."""
        cutoff = self._clock() - self._history_window
        return sum(1 for ts, cat in self._failures if cat == category and ts >= cutoff)

    @property
    def tracked_keys(self) -> int:
        """Number of (category, task id) retry counters held."""
        return len(self._retry_counts)

    def get_retry_count(self, category: ParsingErrorCategory, task_id: str | None = None) -> int:
        return self._retry_counts.get(_retry_key(category, task_id), 0)

    async def attempt_recovery(self, error: ParsingError) -> bool:
        """Try each strategy for the error's category in priority order.

        Args:
            error: Classified error. On success its ``hints`` and
                ``recovery_strategy`` are filled in.

        Returns:
            True as soon as one strategy succeeds, False when all are
            exhausted, capped, or absent.
        """
        key = _retry_key(error.category, error.task_id)
        retry_count = self._retry_counts.get(key, 0)
        self._retry_counts[key] = retry_count + 1
        self._retry_counts.move_to_end(key)
        while len(self._retry_counts) > self.max_tracked_keys:
            dropped, _ = self._retry_counts.popitem(last=False)
            logger.debug(f"Dropped retry counter {dropped}")

        for strategy in self._strategies.get(error.category, []):
            if retry_count >= strategy.max_retries:
                logger.warning(
                    f"Max retries ({strategy.max_retries}) exceeded for strategy "
                    f"{strategy.name} on {key}"
                )
                continue

            delay = strategy.backoff(retry_count)
            if delay > 0:
                await self._sleep(delay)

            logger.info(
                f"Attempting recovery with strategy {strategy.name} "
                f"(attempt {retry_count + 1}) for {key}"
            )
            try:
                hints = await strategy.execute(error)
            except Exception as e:
                logger.warning(f"Recovery failed with strategy {strategy.name}: {e}")
                continue

            if hints is not None:
                error.recovery_strategy = strategy.name
                if error.hints is None:
                    error.hints = hints
                else:
                    error.hints.merge(hints)
                logger.info(f"Recovery successful with strategy {strategy.name}")
                return True

        self._failures.append((self._clock(), error.category))
        return False

    def reset_retry_count(self, category: ParsingErrorCategory, task_id: str | None = None) -> None:
        """Make a (category, task id) pair eligible for recovery again."""
        self._retry_counts.pop(_retry_key(category, task_id), None)

    # =========================================================================
    # Strategy executors
    # =========================================================================

    async def _reconnect(self, error: ParsingError) -> RecoveryHints | None:
        if self._oracle is None:
            return None
        await self._oracle.check_availability()
        return RecoveryHints()

    async def _reprompt_strict(self, error: ParsingError) -> RecoveryHints | None:
        return RecoveryHints(strict_json=True)

    async def _rephrase_command(self, error: ParsingError) -> RecoveryHints | None:
        if not error.command:
            return None
        normalized = normalize_command(error.command)
        if not normalized or normalized == error.command.strip().lower():
            return None
        return RecoveryHints(normalized_command=normalized)

    async def _disambiguate_from_context(self, error: ParsingError) -> RecoveryHints | None:
        candidates = list((error.parsed_task or {}).get("candidates") or [])
        if len(candidates) == 1:
            return RecoveryHints(preferred_type=str(candidates[0]))
        if error.context is None or not candidates:
            return None
        # Most recent matching task wins
        for recent in reversed(error.context.recent_tasks):
            if recent.type.value in candidates:
                return RecoveryHints(preferred_type=recent.type.value)
        return None

    async def _infer_parameters(self, error: ParsingError) -> RecoveryHints | None:
        task = error.parsed_task or {}
        task_type = str(task.get("type", ""))
        parameters = task.get("parameters") or {}
        inferred: dict[str, Any] = {}

        if task_type in COUNTABLE_TYPES and "quantity" not in parameters:
            inferred["quantity"] = 1

        if error.context is not None:
            blocks = error.context.nearby_blocks
            if task_type == "mining" and not parameters.get("block"):
                ores = [b for b in blocks if b.name.endswith("_ore")]
                if ores:
                    inferred["block"] = min(ores, key=lambda b: b.distance).name
            if task_type == "gathering" and not parameters.get("resource"):
                logs = [b for b in blocks if b.name.endswith("_log")]
                if logs:
                    inferred["resource"] = min(logs, key=lambda b: b.distance).name

        if not inferred:
            return None
        return RecoveryHints(extra_parameters=inferred)

    async def _refresh_context(self, error: ParsingError) -> RecoveryHints | None:
        return RecoveryHints(refresh_context=True)


def _retry_key(category: ParsingErrorCategory, task_id: str | None) -> str:
    return f"{category.value}-{task_id or 'unknown'}"
