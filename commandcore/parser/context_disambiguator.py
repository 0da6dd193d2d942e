"""Context-driven disambiguation between competing task types.

When the AmbiguityDetector reports an ambiguous command, each candidate type
is re-scored from finer-grained context signals, recent history and the
bot's current state:

    combined = 0.4 * ambiguity + 0.3 * context + 0.2 * historical + 0.1 * current_state
"""

import logging
from dataclasses import dataclass, field

from commandcore.parser.ambiguity_detector import AmbiguityResult, clamp
from commandcore.parser.context import ContextFactor, TaskContext, evaluate_factor
from commandcore.parser.history import HistoricalPattern, HistoricalPatternStore
from commandcore.parser.task_types import TaskType

logger = logging.getLogger(__name__)

NEUTRAL_HISTORICAL_SCORE = 0.5


@dataclass(frozen=True)
class CandidateScore:
    """Per-type breakdown of the combined score."""

    task_type: TaskType
    ambiguity_score: float
    context_score: float
    historical_score: float
    combined_score: float


@dataclass
class DisambiguationResult:
    """Chosen type and the evidence behind it.

    Attributes:
        resolved_type: Winning type.
        confidence: Combined score of the winner, or the top ambiguity score
            when the command was not ambiguous.
        context_factors: Factor relevance reported by the detector.
        historical_patterns: Commands of the relevant history entries used.
        historical_types: Types seen in the relevant history, newest first.
        current_state_relevance: Urgency of the bot's current state.
        candidates: All candidate scores, best first.
    """

    resolved_type: TaskType
    confidence: float
    context_factors: dict[ContextFactor, float] = field(default_factory=dict)
    historical_patterns: list[str] = field(default_factory=list)
    historical_types: list[TaskType] = field(default_factory=list)
    current_state_relevance: float = 0.0
    candidates: list[CandidateScore] = field(default_factory=list)


class ContextDisambiguator:
    """Resolves ambiguous commands using context and history.

    Args:
        history: Shared historical pattern store; this class is its only writer.
    """

    def __init__(self, history: HistoricalPatternStore | None = None) -> None:
        self.history = history if history is not None else HistoricalPatternStore()

    def disambiguate(
        self,
        command: str,
        context: TaskContext,
        ambiguity_result: AmbiguityResult,
    ) -> DisambiguationResult:
        """Pick the best candidate type for a command.

        Args:
            command: Raw command text.
            context: Context snapshot.
            ambiguity_result: Detector output; must contain at least one score.

        Returns:
            DisambiguationResult for the argmax type.

        Raises:
            ValueError: If the result has no scored candidates.
        """
        if not ambiguity_result.scores:
            raise ValueError("Cannot disambiguate a command without candidate types")

        relevant = self.history.recent_relevant()
        historical_patterns = [p.command for p in relevant]
        historical_types: list[TaskType] = []
        for pattern in relevant:
            if pattern.resolved_type not in historical_types:
                historical_types.append(pattern.resolved_type)

        current_state = self._calculate_current_state_relevance(context)

        if not ambiguity_result.is_ambiguous:
            top = ambiguity_result.scores[0]
            return DisambiguationResult(
                resolved_type=top.task_type,
                confidence=top.total_score,
                context_factors=dict(ambiguity_result.context_factors),
                historical_patterns=historical_patterns,
                historical_types=historical_types,
                current_state_relevance=current_state,
                candidates=[CandidateScore(top.task_type, top.total_score, 0.0, 0.0, top.total_score)],
            )

        # Best ambiguity score per type, in rank order
        ambiguity_by_type: dict[TaskType, float] = {}
        for score in ambiguity_result.scores:
            ambiguity_by_type.setdefault(score.task_type, score.total_score)

        candidates: list[CandidateScore] = []
        for task_type, ambiguity_score in ambiguity_by_type.items():
            context_score = self._calculate_context_score(task_type, context, command)
            historical_score = self._calculate_historical_score(task_type, relevant)
            combined = clamp(
                0.4 * ambiguity_score
                + 0.3 * context_score
                + 0.2 * historical_score
                + 0.1 * current_state
            )
            candidates.append(CandidateScore(
                task_type=task_type,
                ambiguity_score=ambiguity_score,
                context_score=context_score,
                historical_score=historical_score,
                combined_score=combined,
            ))

        candidates.sort(key=lambda c: c.combined_score, reverse=True)
        best = candidates[0]
        logger.debug(
            f"Disambiguated '{command}' -> {best.task_type.value} ({best.combined_score:.2f}) from "
            + ", ".join(f"{c.task_type.value}={c.combined_score:.2f}" for c in candidates)
        )

        return DisambiguationResult(
            resolved_type=best.task_type,
            confidence=best.combined_score,
            context_factors=dict(ambiguity_result.context_factors),
            historical_patterns=historical_patterns,
            historical_types=historical_types,
            current_state_relevance=current_state,
            candidates=candidates,
        )

    def _calculate_context_score(self, task_type: TaskType, context: TaskContext, command: str) -> float:
        """Concrete possession, path and proximity signals for one type."""
        score = 0.0

        if task_type == TaskType.MINING:
            if evaluate_factor(ContextFactor.HAS_PICKAXE, context):
                score += 0.3
            if evaluate_factor(ContextFactor.NEAR_ORE, context):
                score += 0.2
        elif task_type == TaskType.CRAFTING:
            if evaluate_factor(ContextFactor.HAS_MATERIALS, context):
                score += 0.3
        elif task_type in (TaskType.NAVIGATION, TaskType.EXPLORATION):
            if evaluate_factor(ContextFactor.PATH_CLEAR, context):
                score += 0.2
            # Travel only makes sense to somewhere already known
            if task_type == TaskType.NAVIGATION and evaluate_factor(ContextFactor.LANDMARK_KNOWN, context, command):
                score += 0.2
        elif task_type == TaskType.GATHERING:
            if evaluate_factor(ContextFactor.NEAR_TREE, context):
                score += 0.2
        elif task_type == TaskType.FARMING:
            if evaluate_factor(ContextFactor.NEAR_CROPS, context):
                score += 0.2

        if context.recent_tasks and context.recent_tasks[-1].type == task_type:
            score += 0.2

        return clamp(score)

    def _calculate_historical_score(self, task_type: TaskType, relevant: list[HistoricalPattern]) -> float:
        matches = [p for p in relevant if p.resolved_type == task_type]
        if not matches:
            return NEUTRAL_HISTORICAL_SCORE
        return sum(1 for p in matches if p.success) / len(matches)

    def _calculate_current_state_relevance(self, context: TaskContext) -> float:
        """Additive urgency signals, capped at 1."""
        relevance = 0.0
        if context.health < 10:
            relevance += 0.3
        if context.food < 5:
            relevance += 0.2
        if context.inventory.is_nearly_full():
            relevance += 0.2
        if context.is_night:
            relevance += 0.3
        return clamp(relevance)

    def add_historical_pattern(
        self,
        command: str,
        resolved_type: TaskType,
        success: bool,
        context: TaskContext | None = None,
    ) -> HistoricalPattern:
        """Record a confirmed outcome in the shared history."""
        pattern = HistoricalPattern(
            command=command,
            resolved_type=resolved_type,
            success=success,
            timestamp=self.history.now(),
            context_factors=context.snapshot() if context else {},
        )
        self.history.add(pattern)
        logger.info(
            f"Recorded {'successful' if success else 'failed'} resolution "
            f"'{command}' -> {resolved_type.value}"
        )
        return pattern
