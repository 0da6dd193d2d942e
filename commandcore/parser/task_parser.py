"""Command parsing orchestrator.

TaskParser turns a raw chat command into a resolved Task:

    cache -> oracle -> JSON -> payload -> ambiguity detection ->
    disambiguation -> confirmation gate -> type resolution -> fallback -> cache

Every failure is classified once into a ParsingError. A recovery strategy
that succeeds may hand back hints, in which case the pipeline runs once more
with them applied.
"""

import logging
import time
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Callable

from commandcore.errors.exceptions import (
    ContextMismatchError,
    InvalidCommandError,
    ParsingError,
    ParsingErrorCategory,
    RecoveryHints,
)
from commandcore.errors.handler import ParsingErrorHandler
from commandcore.errors.recovery import ErrorRecoveryManager
from commandcore.llm.base import TextOracle
from commandcore.llm.retry import RetryConfig, with_retry
from commandcore.parser.ambiguity_detector import AmbiguityDetector, AmbiguityResult
from commandcore.parser.cache import CommandCache, normalize_command
from commandcore.parser.confirmation import (
    ConfirmationOption,
    ConfirmationPrompt,
    UserConfirmationHandler,
)
from commandcore.parser.context import ContextProvider, TaskContext
from commandcore.parser.context_disambiguator import ContextDisambiguator, DisambiguationResult
from commandcore.parser.prompts import SYSTEM_PROMPT, build_task_prompt
from commandcore.parser.response import (
    PydanticTaskValidator,
    TaskPayload,
    TaskSchemaValidator,
    enrich_item_filters,
    extract_json,
    payload_to_task,
)
from commandcore.parser.task_types import Task, TaskType
from commandcore.parser.type_fallback import TypeAlternative, TypeFallbackSystem
from commandcore.parser.type_resolver import TaskTypeResolver

logger = logging.getLogger(__name__)


class ParseStatus(str, Enum):
    """Outcome kind of a parse."""

    RESOLVED = "resolved"
    NEEDS_CONFIRMATION = "needs_confirmation"


@dataclass
class ParseResult:
    """Result of parsing one command.

    Attributes:
        status: Whether a task was resolved or the player must confirm.
        task: Resolved task (RESOLVED only).
        prompt: Pending confirmation (NEEDS_CONFIRMATION only).
        confidence: Resolution confidence.
        alternatives: Applicable fallback types, most confident first.
        ambiguity: Detector output, absent for cache hits.
        disambiguation: Decision the confidence gate was applied to.
        from_cache: True when served from the command cache.
    """

    status: ParseStatus
    task: Task | None = None
    prompt: ConfirmationPrompt | None = None
    confidence: float = 0.0
    alternatives: list[TypeAlternative] = field(default_factory=list)
    ambiguity: AmbiguityResult | None = None
    disambiguation: DisambiguationResult | None = None
    from_cache: bool = False

    @property
    def needs_confirmation(self) -> bool:
        return self.status == ParseStatus.NEEDS_CONFIRMATION


@dataclass
class ParsingMetrics:
    """Counters across parse calls."""

    total_attempts: int = 0
    successful_parses: int = 0
    confirmations_requested: int = 0
    cache_hits: int = 0
    error_count: int = 0
    average_confidence: float = 0.0
    average_time: float = 0.0


@dataclass
class _Attempt:
    """Mutable state of one pipeline run."""

    command: str
    context: TaskContext
    hints: RecoveryHints | None = None
    parsed_task: dict[str, Any] | None = None


class TaskParser:
    """Resolves chat commands into tasks.

    All collaborators are injectable; defaults are built when omitted.

    Args:
        oracle: Text-generation oracle.
        context_provider: Supplies a TaskContext when the caller passes none.
        detector: Ambiguity detector.
        disambiguator: Context disambiguator (owns the history store).
        resolver: Task type resolver.
        fallback_system: Confidence scoring and fallback chains.
        confirmation_handler: Confirmation gate.
        cache: Command cache; ignored when ``enable_caching`` is False.
        error_handler: Error classifier and recovery driver.
        schema_validator: Gate for raw task JSON.
        retry_config: Transient retry policy around the oracle call.
        enable_caching: Toggle the command cache.
        health_check: Probe the oracle before generating.
        max_alternatives: Alternatives reported per result.
        clock: Monotonic time source for timing metrics.
    """

    def __init__(
        self,
        oracle: TextOracle,
        context_provider: ContextProvider | None = None,
        detector: AmbiguityDetector | None = None,
        disambiguator: ContextDisambiguator | None = None,
        resolver: TaskTypeResolver | None = None,
        fallback_system: TypeFallbackSystem | None = None,
        confirmation_handler: UserConfirmationHandler | None = None,
        cache: CommandCache | None = None,
        error_handler: ParsingErrorHandler | None = None,
        schema_validator: TaskSchemaValidator | None = None,
        retry_config: RetryConfig | None = None,
        enable_caching: bool = True,
        health_check: bool = True,
        max_alternatives: int = 3,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.oracle = oracle
        self.context_provider = context_provider
        self.detector = detector or AmbiguityDetector()
        self.disambiguator = disambiguator or ContextDisambiguator()
        self.resolver = resolver or TaskTypeResolver()
        self.fallback_system = fallback_system or TypeFallbackSystem()
        self.confirmation_handler = confirmation_handler or UserConfirmationHandler(self.disambiguator)
        self.cache = (cache or CommandCache()) if enable_caching else None
        self.error_handler = error_handler or ParsingErrorHandler(ErrorRecoveryManager(oracle=oracle))
        self.schema_validator = schema_validator or PydanticTaskValidator()
        self.retry_config = retry_config or RetryConfig()
        self.health_check = health_check
        self.max_alternatives = max_alternatives
        self._clock = clock
        self._metrics = ParsingMetrics()
        self._total_time = 0.0
        self._total_confidence = 0.0

    # =========================================================================
    # Public API
    # =========================================================================

    async def parse(
        self,
        command: str,
        player_id: str | None = None,
        context: TaskContext | None = None,
    ) -> ParseResult:
        """Parse a command into a task or a confirmation prompt.

        Args:
            command: Raw chat command.
            player_id: Issuing player, passed to the context provider.
            context: Explicit context snapshot; fetched when omitted.

        Returns:
            ParseResult with status RESOLVED or NEEDS_CONFIRMATION.

        Raises:
            ParsingError: The classified failure, after recovery was tried.
        """
        started = self._clock()
        self._metrics.total_attempts += 1
        try:
            if self.cache is not None:
                cached = self.cache.get(command)
                if cached is not None:
                    self._metrics.cache_hits += 1
                    self._record_success(cached.confidence)
                    return ParseResult(
                        status=ParseStatus.RESOLVED,
                        task=cached,
                        confidence=cached.confidence,
                        from_cache=True,
                    )
            return await self._parse_with_recovery(command, player_id, context)
        finally:
            self._total_time += self._clock() - started
            self._metrics.average_time = self._total_time / self._metrics.total_attempts

    async def confirm(
        self,
        command: str,
        selected_type: TaskType,
        player_id: str | None = None,
        context: TaskContext | None = None,
    ) -> ParseResult | None:
        """Complete a pending confirmation with the player's choice.

        Learning happens here: the matching history entry, pattern success
        rates and the fallback rate for the chosen type are updated.

        Returns:
            A RESOLVED ParseResult, or None if no live prompt offered the type.

        Raises:
            ParsingError: If the chosen type's parameters do not validate.
        """
        prompt = self.confirmation_handler.get_pending(command, player_id)
        if prompt is None or prompt.draft_task is None or selected_type not in prompt.offered_types:
            logger.info(f"No pending confirmation of {selected_type.value} for '{command}'")
            return None

        effective_context = context or prompt.context
        draft = prompt.draft_task
        candidate = draft if draft.type == selected_type else draft.with_type(selected_type)
        try:
            task = self.resolver.resolve(candidate, effective_context, allow_overrides=False)
        except Exception as e:
            error = self.error_handler.to_parsing_error(
                e, command=command, context=effective_context, parsed_task=candidate.to_dict()
            )
            self.error_handler.handle_error(error)
            self._metrics.error_count += 1
            raise error from e

        if not self.confirmation_handler.process_confirmation(command, selected_type, context, player_id):
            return None

        ambiguity = self.detector.detect_ambiguity(command, effective_context)
        for score in ambiguity.scores:
            self.detector.update_historical_success(score.pattern_id, score.task_type == selected_type)
        self.fallback_system.update_historical_success_rate(selected_type, True)

        task.confidence = 1.0
        task.metadata["confirmed"] = True
        if self.cache is not None:
            self.cache.set(command, task)
        self._record_success(task.confidence)
        logger.info(f"Resolved '{command}' as {task.type.value} after confirmation")
        return ParseResult(
            status=ParseStatus.RESOLVED,
            task=task,
            confidence=task.confidence,
            ambiguity=ambiguity,
        )

    def report_outcome(
        self,
        command: str,
        task_type: TaskType,
        success: bool,
        context: TaskContext | None = None,
    ) -> None:
        """Feed an execution outcome back into the learners.

        A failed outcome also drops the cached resolution for the command.
        """
        ambiguity = self.detector.detect_ambiguity(command, context or TaskContext())
        for score in ambiguity.scores:
            if score.task_type == task_type:
                self.detector.update_historical_success(score.pattern_id, success)
        self.fallback_system.update_historical_success_rate(task_type, success)
        self.disambiguator.add_historical_pattern(command, task_type, success, context)
        if not success and self.cache is not None:
            self.cache.delete(command)

    def get_metrics(self) -> ParsingMetrics:
        return replace(self._metrics)

    def reset_metrics(self) -> None:
        self._metrics = ParsingMetrics()
        self._total_time = 0.0
        self._total_confidence = 0.0

    # =========================================================================
    # Pipeline
    # =========================================================================

    async def _parse_with_recovery(
        self,
        command: str,
        player_id: str | None,
        context: TaskContext | None,
    ) -> ParseResult:
        task_id = _retry_task_id(command, player_id)
        hints: RecoveryHints | None = None

        while True:
            attempt: _Attempt | None = None
            try:
                if context is None or (hints is not None and hints.refresh_context):
                    context = self._fetch_context(player_id)
                attempt = _Attempt(command=command, context=context, hints=hints)
                result = await self._run_pipeline(attempt, player_id)
            except Exception as e:
                error = await self.error_handler.handle_parsing_error(
                    e,
                    command=command,
                    context=context,
                    task_id=task_id,
                    parsed_task=attempt.parsed_task if attempt else None,
                )
                if error.hints is not None and hints is None:
                    hints = error.hints
                    logger.info(f"Retrying '{command}' after {error.recovery_strategy} recovery")
                    continue
                if error.hints is not None:
                    # Recovered twice without a usable result
                    self.error_handler.handle_error(error)
                self._metrics.error_count += 1
                raise error from e

            for category in ParsingErrorCategory:
                self.error_handler.recovery_manager.reset_retry_count(category, task_id)
            return result

    def _fetch_context(self, player_id: str | None) -> TaskContext:
        if self.context_provider is None:
            return TaskContext()
        try:
            return self.context_provider.get_context(player_id)
        except Exception as e:
            raise ContextMismatchError(f"Context unavailable for player {player_id}: {e}") from e

    async def _run_pipeline(self, attempt: _Attempt, player_id: str | None) -> ParseResult:
        command = attempt.command
        if not command or not command.strip():
            raise InvalidCommandError("Empty command")

        hints = attempt.hints
        prompt_command = hints.normalized_command if hints and hints.normalized_command else command

        if self.health_check:
            await self.oracle.check_availability()

        prompt = build_task_prompt(prompt_command, attempt.context, hints=hints)
        raw = await with_retry(self.oracle.generate, prompt, SYSTEM_PROMPT, config=self.retry_config)

        # No awaits past this point
        data = extract_json(raw)
        attempt.parsed_task = data
        payload = self.schema_validator.validate(data)
        if hints and hints.extra_parameters:
            for key, value in hints.extra_parameters.items():
                payload.parameters.setdefault(key, value)

        draft = payload_to_task(payload, command, preferred_type=hints.preferred_type if hints else None)
        draft = enrich_item_filters(draft, command)
        attempt.parsed_task = {**draft.to_dict(), "candidates": list(payload.candidates)}

        ambiguity = self.detector.detect_ambiguity(command, attempt.context)
        decision = self._decide(command, attempt.context, draft, payload, ambiguity)

        outcome = self.confirmation_handler.handle_ambiguous_command(
            command,
            attempt.context,
            decision,
            draft_task=draft,
            player_id=player_id,
            extra_options=self._extra_options(draft, decision, attempt.context),
        )
        if isinstance(outcome, ConfirmationPrompt):
            self._metrics.confirmations_requested += 1
            return ParseResult(
                status=ParseStatus.NEEDS_CONFIRMATION,
                prompt=outcome,
                confidence=decision.confidence,
                ambiguity=ambiguity,
                disambiguation=decision,
            )

        task, alternatives = self._resolve(command, attempt.context, draft, decision)
        if self.cache is not None:
            self.cache.set(command, task)
        self._record_success(task.confidence)
        logger.info(f"Resolved '{command}' as {task.type.value} ({task.confidence:.2f})")
        return ParseResult(
            status=ParseStatus.RESOLVED,
            task=task,
            confidence=task.confidence,
            alternatives=alternatives,
            ambiguity=ambiguity,
            disambiguation=decision,
        )

    def _decide(
        self,
        command: str,
        context: TaskContext,
        draft: Task,
        payload: TaskPayload,
        ambiguity: AmbiguityResult,
    ) -> DisambiguationResult:
        """Combine pattern scoring with the oracle's type into one decision.

        Without a pattern match the oracle's type is the catch-all and is
        scored by the fallback system. A pattern that agrees with the oracle
        lets the two confidences reinforce each other.
        """
        type_confidence = self.fallback_system.calculate_confidence(draft.type, context)

        if not ambiguity.has_matches:
            return DisambiguationResult(
                resolved_type=draft.type,
                confidence=max(payload.confidence or 0.0, type_confidence),
            )

        decision = self.disambiguator.disambiguate(command, context, ambiguity)
        if not ambiguity.is_ambiguous and decision.resolved_type == draft.type:
            decision.confidence = max(decision.confidence, type_confidence)
        return decision

    def _extra_options(
        self,
        draft: Task,
        decision: DisambiguationResult,
        context: TaskContext,
    ) -> list[ConfirmationOption]:
        """The oracle's reading and its candidates, when they differ from the decision."""
        discount = self.confirmation_handler.historical_discount
        options: list[ConfirmationOption] = []
        if draft.type != decision.resolved_type:
            options.append(ConfirmationOption(
                type=draft.type,
                description=f"{draft.type.value} (interpreted)",
                confidence=min(decision.confidence, self.fallback_system.calculate_confidence(draft.type, context)),
            ))
        for name in draft.metadata.get("candidates", []):
            task_type = TaskType.parse(name)
            options.append(ConfirmationOption(
                type=task_type,
                description=f"{task_type.value} (suggested)",
                confidence=self.fallback_system.calculate_confidence(task_type, context) * discount * decision.confidence,
            ))
        return options

    def _resolve(
        self,
        command: str,
        context: TaskContext,
        draft: Task,
        decision: DisambiguationResult,
    ) -> tuple[Task, list[TypeAlternative]]:
        """Apply the decision, validate the type and consider fallbacks."""
        task = draft
        warnings: list[str] = []
        if decision.resolved_type != draft.type:
            retyped = draft.with_type(decision.resolved_type)
            if self.resolver.check_parameters(retyped).is_valid or not self.resolver.check_parameters(draft).is_valid:
                task = retyped
            else:
                warnings.append(
                    f"Kept {draft.type.value}: parameters do not fit {decision.resolved_type.value}"
                )

        task = self.resolver.resolve(task, context)

        fallback = self.fallback_system.resolve_type(task.type, context, command, warnings)
        if fallback.final_type in self.resolver.disabled_types:
            fallback.warnings.append(f"Fallback to {fallback.final_type.value} skipped: type is disabled")
        elif fallback.final_type != task.type:
            candidate = task.with_type(fallback.final_type)
            if self.resolver.check_parameters(candidate).is_valid:
                logger.info(f"Fallback for '{command}': {task.type.value} -> {fallback.final_type.value}")
                task = candidate
            else:
                fallback.warnings.append(
                    f"Fallback to {fallback.final_type.value} skipped: parameters do not validate"
                )

        task.confidence = decision.confidence
        if fallback.warnings:
            task.metadata["warnings"] = fallback.warnings
        if len(fallback.resolution_path) > 1:
            task.metadata["resolution_path"] = [t.value for t in fallback.resolution_path]
        return task, fallback.alternatives[: self.max_alternatives]

    def _record_success(self, confidence: float) -> None:
        self._metrics.successful_parses += 1
        self._total_confidence += confidence
        self._metrics.average_confidence = self._total_confidence / self._metrics.successful_parses


def _retry_task_id(command: str, player_id: str | None) -> str:
    return f"{player_id or 'anonymous'}:{normalize_command(command)}"
