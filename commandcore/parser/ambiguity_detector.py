"""Pattern-based ambiguity detection with multi-factor scoring."""

import logging
from dataclasses import dataclass, field

from commandcore.parser.context import FACTOR_WEIGHTS, ContextFactor, TaskContext, evaluate_factor
from commandcore.parser.patterns import DEFAULT_PATTERNS, AmbiguityPattern
from commandcore.parser.task_types import TaskType

logger = logging.getLogger(__name__)

DEFAULT_HISTORICAL_SUCCESS = 0.5
SUGGESTION_THRESHOLD = 0.5


def clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    return max(low, min(high, value))


@dataclass(frozen=True)
class AmbiguityScore:
    """Score of one matched pattern. All fields lie in [0, 1]."""

    pattern_id: str
    task_type: TaskType
    confidence: float
    context_relevance: float
    historical_success: float
    total_score: float


@dataclass
class AmbiguityResult:
    """Outcome of ambiguity detection for one command.

    Attributes:
        is_ambiguous: At least two matches whose top scores are within the margin.
        scores: Matched pattern scores, best first.
        suggested_types: Types of scores above 0.5, best first, deduplicated.
        context_factors: Relevance per evaluated factor (weight if it held, else 0).
    """

    is_ambiguous: bool = False
    scores: list[AmbiguityScore] = field(default_factory=list)
    suggested_types: list[TaskType] = field(default_factory=list)
    context_factors: dict[ContextFactor, float] = field(default_factory=dict)

    @property
    def has_matches(self) -> bool:
        return bool(self.scores)

    @property
    def top(self) -> AmbiguityScore | None:
        return self.scores[0] if self.scores else None

    @property
    def matched_pattern_ids(self) -> list[str]:
        return [score.pattern_id for score in self.scores]

    def best_score_for(self, task_type: TaskType) -> AmbiguityScore | None:
        """Highest-ranked score proposing the type."""
        return next((s for s in self.scores if s.task_type == task_type), None)


class AmbiguityDetector:
    """Scores every pattern that fires on a command.

    total = 0.4 * confidence + 0.4 * context_relevance + 0.2 * historical_success

    Args:
        patterns: Pattern registry (defaults to DEFAULT_PATTERNS).
        margin: Top-two gap under which matches are ambiguous.
    """

    def __init__(
        self,
        patterns: tuple[AmbiguityPattern, ...] | list[AmbiguityPattern] | None = None,
        margin: float = 0.2,
    ) -> None:
        self._patterns: dict[str, AmbiguityPattern] = {
            p.id: p for p in (DEFAULT_PATTERNS if patterns is None else patterns)
        }
        self.margin = margin
        self._historical_success: dict[str, float] = {}

    @property
    def patterns(self) -> list[AmbiguityPattern]:
        return list(self._patterns.values())

    def register_pattern(self, pattern: AmbiguityPattern) -> None:
        """Add or replace a pattern by id."""
        self._patterns[pattern.id] = pattern

    def detect_ambiguity(self, command: str, context: TaskContext) -> AmbiguityResult:
        """Score all matching patterns and apply the margin rule.

        Args:
            command: Raw command text.
            context: Context snapshot.

        Returns:
            AmbiguityResult. No match yields an empty, non-ambiguous result.
        """
        text = command.strip().lower()
        scores: list[AmbiguityScore] = []
        factor_relevance: dict[ContextFactor, float] = {}

        for pattern in self._patterns.values():
            match = pattern.search(text)
            if match is None:
                continue

            confidence = self._calculate_confidence(match.group(0), text, pattern)
            relevance = self._calculate_context_relevance(pattern, context, text, factor_relevance)
            historical = self.get_historical_success(pattern.id)
            total = clamp(0.4 * confidence + 0.4 * relevance + 0.2 * historical)

            scores.append(AmbiguityScore(
                pattern_id=pattern.id,
                task_type=pattern.task_type,
                confidence=confidence,
                context_relevance=relevance,
                historical_success=historical,
                total_score=total,
            ))

        # Stable sort keeps registry order for ties
        scores.sort(key=lambda s: s.total_score, reverse=True)

        is_ambiguous = (
            len(scores) > 1 and (scores[0].total_score - scores[1].total_score) < self.margin
        )

        suggested: list[TaskType] = []
        for score in scores:
            if score.total_score > SUGGESTION_THRESHOLD and score.task_type not in suggested:
                suggested.append(score.task_type)

        if scores:
            logger.debug(
                f"Ambiguity for '{text}': "
                + ", ".join(f"{s.pattern_id}={s.total_score:.2f}" for s in scores)
                + (" (ambiguous)" if is_ambiguous else "")
            )

        return AmbiguityResult(
            is_ambiguous=is_ambiguous,
            scores=scores,
            suggested_types=suggested,
            context_factors=factor_relevance,
        )

    def _calculate_confidence(self, matched: str, command: str, pattern: AmbiguityPattern) -> float:
        completeness = len(matched) / len(command) if command else 0.0
        return clamp((completeness * 0.7 + pattern.specificity * 0.3) * pattern.confidence_threshold)

    def _calculate_context_relevance(
        self,
        pattern: AmbiguityPattern,
        context: TaskContext,
        command: str,
        factor_relevance: dict[ContextFactor, float],
    ) -> float:
        """Weighted share of the pattern's declared factors that hold."""
        if not pattern.context_factors:
            return 0.0

        total_weight = 0.0
        held_weight = 0.0
        for factor in pattern.context_factors:
            weight = FACTOR_WEIGHTS[factor]
            total_weight += weight
            if evaluate_factor(factor, context, command):
                held_weight += weight
                factor_relevance[factor] = weight
            else:
                factor_relevance.setdefault(factor, 0.0)

        return clamp(held_weight / total_weight) if total_weight else 0.0

    def get_historical_success(self, pattern_id: str) -> float:
        return self._historical_success.get(pattern_id, DEFAULT_HISTORICAL_SUCCESS)

    def update_historical_success(self, pattern_id: str, success: bool) -> None:
        """Fold a confirmed outcome into the pattern's smoothed success rate.

        new = old * 0.9 + (0.1 if success else 0)
        """
        old = self.get_historical_success(pattern_id)
        self._historical_success[pattern_id] = clamp(old * 0.9 + (0.1 if success else 0.0))
        logger.debug(
            f"Pattern {pattern_id} success rate {old:.3f} -> {self._historical_success[pattern_id]:.3f}"
        )
