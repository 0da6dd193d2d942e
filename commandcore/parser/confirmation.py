"""Confirmation handshake for low-confidence resolutions."""

import logging
import time
from dataclasses import dataclass, field
from typing import Callable

from commandcore.parser.cache import normalize_command
from commandcore.parser.context import TaskContext
from commandcore.parser.context_disambiguator import ContextDisambiguator, DisambiguationResult
from commandcore.parser.task_types import Task, TaskType

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ConfirmationOption:
    """One interpretation offered to the player."""

    type: TaskType
    description: str
    confidence: float


@dataclass
class ConfirmationPrompt:
    """A pending question to the player.

    Attributes:
        command: Command that needs confirming.
        options: Interpretations, most confident first.
        context: Context snapshot the prompt was built from.
        created_at: Epoch seconds.
        expires_at: Epoch seconds after which the prompt is void.
        player_id: Player who issued the command.
        draft_task: Parsed task to finish resolving once confirmed.
    """

    command: str
    options: list[ConfirmationOption]
    context: TaskContext
    created_at: float
    expires_at: float
    player_id: str | None = None
    draft_task: Task | None = field(default=None, repr=False)

    @property
    def offered_types(self) -> list[TaskType]:
        return [option.type for option in self.options]

    def is_expired(self, now: float) -> bool:
        return now >= self.expires_at

    def render(self) -> str:
        """Chat-friendly question listing the options."""
        choices = ", ".join(
            f"{i}) {option.type.value} ({option.confidence:.0%})"
            for i, option in enumerate(self.options, start=1)
        )
        return f"Did you mean: {choices}?"


class UserConfirmationHandler:
    """Builds, stores and resolves confirmation prompts.

    Args:
        disambiguator: Receives a historical pattern for each confirmation.
        threshold: Confidence at or above which no prompt is needed.
        timeout_seconds: Prompt lifetime.
        max_pending: Pending prompt cap; the oldest is evicted first.
        historical_discount: Multiplier for options drawn from history.
        clock: Epoch-seconds time source.
    """

    def __init__(
        self,
        disambiguator: ContextDisambiguator,
        threshold: float = 0.9,
        timeout_seconds: float = 30.0,
        max_pending: int = 10,
        historical_discount: float = 0.8,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.disambiguator = disambiguator
        self.threshold = threshold
        self.timeout_seconds = timeout_seconds
        self.max_pending = max_pending
        self.historical_discount = historical_discount
        self._clock = clock
        self._pending: dict[tuple[str | None, str], ConfirmationPrompt] = {}

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    def handle_ambiguous_command(
        self,
        command: str,
        context: TaskContext,
        disambiguation: DisambiguationResult,
        draft_task: Task | None = None,
        player_id: str | None = None,
        extra_options: list[ConfirmationOption] | None = None,
    ) -> TaskType | ConfirmationPrompt:
        """Accept a confident resolution or open a confirmation prompt.

        Args:
            command: Raw command.
            context: Context snapshot.
            disambiguation: Resolution to confirm.
            draft_task: Task to carry through the handshake.
            player_id: Issuing player.
            extra_options: Additional interpretations to offer.

        Returns:
            The resolved type when confidence meets the threshold, otherwise
            the stored ConfirmationPrompt.
        """
        if disambiguation.confidence >= self.threshold:
            return disambiguation.resolved_type

        now = self._clock()
        prompt = ConfirmationPrompt(
            command=command,
            options=self._build_options(disambiguation, extra_options or []),
            context=context,
            created_at=now,
            expires_at=now + self.timeout_seconds,
            player_id=player_id,
            draft_task=draft_task,
        )
        self._store(prompt)
        logger.info(
            f"Confirmation needed for '{command}' ({disambiguation.confidence:.2f}): "
            + ", ".join(option.type.value for option in prompt.options)
        )
        return prompt

    def _build_options(
        self,
        disambiguation: DisambiguationResult,
        extra_options: list[ConfirmationOption],
    ) -> list[ConfirmationOption]:
        held = [factor.value for factor, value in disambiguation.context_factors.items() if value > 0]
        basis = f"based on {', '.join(held)}" if held else "default option"
        options = [ConfirmationOption(
            type=disambiguation.resolved_type,
            description=f"{disambiguation.resolved_type.value} ({basis})",
            confidence=disambiguation.confidence,
        )]

        for task_type in disambiguation.historical_types:
            options.append(ConfirmationOption(
                type=task_type,
                description=f"{task_type.value} (used before)",
                confidence=disambiguation.confidence * self.historical_discount,
            ))

        for candidate in disambiguation.candidates[1:]:
            options.append(ConfirmationOption(
                type=candidate.task_type,
                description=f"{candidate.task_type.value} (alternative)",
                confidence=candidate.combined_score,
            ))

        options.extend(extra_options)

        # Keep the most confident entry per type
        best: dict[TaskType, ConfirmationOption] = {}
        for option in options:
            if option.type not in best or option.confidence > best[option.type].confidence:
                best[option.type] = option
        return sorted(best.values(), key=lambda o: o.confidence, reverse=True)

    def _store(self, prompt: ConfirmationPrompt) -> None:
        self.cleanup_expired()
        key = (prompt.player_id, normalize_command(prompt.command))
        self._pending.pop(key, None)
        while len(self._pending) >= self.max_pending:
            oldest = min(self._pending, key=lambda k: self._pending[k].created_at)
            logger.warning(f"Evicting oldest pending confirmation '{self._pending[oldest].command}'")
            del self._pending[oldest]
        self._pending[key] = prompt

    def get_pending(self, command: str, player_id: str | None = None) -> ConfirmationPrompt | None:
        """Return the live prompt for a command, dropping it if expired."""
        key = (player_id, normalize_command(command))
        prompt = self._pending.get(key)
        if prompt is not None and prompt.is_expired(self._clock()):
            logger.debug(f"Confirmation for '{command}' expired")
            del self._pending[key]
            return None
        return prompt

    def cleanup_expired(self) -> int:
        """Remove every expired prompt and return how many were removed."""
        now = self._clock()
        expired = [key for key, prompt in self._pending.items() if prompt.is_expired(now)]
        for key in expired:
            del self._pending[key]
        if expired:
            logger.debug(f"Purged {len(expired)} expired confirmation(s)")
        return len(expired)

    def process_confirmation(
        self,
        command: str,
        selected_type: TaskType,
        context: TaskContext | None = None,
        player_id: str | None = None,
    ) -> bool:
        """Resolve a pending prompt with the player's choice.

        Returns:
            True if a live prompt offered ``selected_type``; the prompt is
            removed and one successful historical pattern is recorded.
            False otherwise, with nothing changed.
        """
        key = (player_id, normalize_command(command))
        prompt = self._pending.get(key)
        if prompt is None:
            return False
        if prompt.is_expired(self._clock()):
            logger.warning(f"Confirmation for '{command}' arrived after expiry")
            return False
        if selected_type not in prompt.offered_types:
            logger.info(f"'{selected_type.value}' was not offered for '{command}'")
            return False

        del self._pending[key]
        self.disambiguator.add_historical_pattern(
            command, selected_type, True, context or prompt.context
        )
        logger.info(f"Confirmed '{command}' as {selected_type.value}")
        return True
