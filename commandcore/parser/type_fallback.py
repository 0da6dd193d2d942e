"""Confidence scoring and fallback-chain resolution for task types."""

import logging
from dataclasses import dataclass, field

from commandcore.parser.ambiguity_detector import clamp
from commandcore.parser.context import ContextFactor, TaskContext, evaluate_factor
from commandcore.parser.hierarchy import TYPE_HIERARCHY, TypeDefinition
from commandcore.parser.task_types import TaskType

logger = logging.getLogger(__name__)

DEFAULT_CONFIDENCE = 0.5
DEFAULT_HISTORICAL_RATE = 0.5
FINAL_TYPE_THRESHOLD = 0.7


@dataclass(frozen=True)
class TypeScoringRule:
    """Confidence formula for one type.

    confidence = base_score + sum(weight for held factors) + historical_weight * rate
    """

    type: TaskType
    base_score: float
    context_factors: dict[ContextFactor, float] = field(default_factory=dict)
    historical_weight: float = 0.1


@dataclass(frozen=True)
class TypeAlternative:
    """A fallback type whose conditions all hold."""

    type: TaskType
    confidence: float
    reasons: tuple[str, ...] = ()


@dataclass
class TypeFallbackResult:
    """Outcome of type resolution.

    Attributes:
        final_type: Chosen type; never None.
        confidence: Confidence of the base type.
        alternatives: Applicable fallbacks, most confident first.
        warnings: Diagnostics collected along the way.
        resolution_path: Types visited along the fallback chain.
    """

    final_type: TaskType
    confidence: float
    alternatives: list[TypeAlternative] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    resolution_path: list[TaskType] = field(default_factory=list)


DEFAULT_SCORING_RULES: tuple[TypeScoringRule, ...] = (
    TypeScoringRule(TaskType.MINING, 0.8, {ContextFactor.HAS_PICKAXE: 0.3, ContextFactor.NEAR_ORE: 0.2}),
    TypeScoringRule(TaskType.CRAFTING, 0.7, {ContextFactor.HAS_MATERIALS: 0.4, ContextFactor.HAS_CRAFTING_TABLE: 0.2}),
    TypeScoringRule(TaskType.NAVIGATION, 0.7, {ContextFactor.PATH_CLEAR: 0.2, ContextFactor.SAFE_ROUTE: 0.1}),
    TypeScoringRule(TaskType.EXPLORATION, 0.6, {ContextFactor.SAFE_ROUTE: 0.2}),
    TypeScoringRule(TaskType.GATHERING, 0.7, {ContextFactor.NEAR_TREE: 0.2, ContextFactor.INVENTORY_SPACE: 0.1}),
    TypeScoringRule(TaskType.FARMING, 0.7, {ContextFactor.NEAR_CROPS: 0.2, ContextFactor.HAS_SEEDS: 0.1}),
    TypeScoringRule(TaskType.INVENTORY, 0.9),
    TypeScoringRule(TaskType.QUERY, 0.9),
    TypeScoringRule(TaskType.CHAT, 0.9),
)


class TypeFallbackSystem:
    """Scores task types and walks their fallback chains.

    Args:
        hierarchy: Type definitions providing the fallback chains.
        scoring_rules: Confidence formulas; types without one score 0.5.
    """

    def __init__(
        self,
        hierarchy: dict[TaskType, TypeDefinition] | None = None,
        scoring_rules: tuple[TypeScoringRule, ...] | list[TypeScoringRule] | None = None,
    ) -> None:
        self.hierarchy = hierarchy if hierarchy is not None else TYPE_HIERARCHY
        self._scoring_rules: dict[TaskType, TypeScoringRule] = {
            rule.type: rule
            for rule in (DEFAULT_SCORING_RULES if scoring_rules is None else scoring_rules)
        }
        self._historical_rates: dict[TaskType, float] = {}

    def register_scoring_rule(self, rule: TypeScoringRule) -> None:
        self._scoring_rules[rule.type] = rule

    def get_historical_rate(self, task_type: TaskType) -> float:
        return self._historical_rates.get(task_type, DEFAULT_HISTORICAL_RATE)

    def calculate_confidence(self, task_type: TaskType, context: TaskContext) -> float:
        """Score a type against the context, clamped to [0, 1]."""
        rule = self._scoring_rules.get(task_type)
        if rule is None:
            return DEFAULT_CONFIDENCE

        score = rule.base_score
        for factor, weight in rule.context_factors.items():
            if evaluate_factor(factor, context):
                score += weight
        score += rule.historical_weight * self.get_historical_rate(task_type)
        return clamp(score)

    def generate_alternatives(
        self, task_type: TaskType, context: TaskContext, command: str = ""
    ) -> list[TypeAlternative]:
        """Fallbacks of a type whose conditions all hold, most confident first."""
        definition = self.hierarchy.get(task_type)
        if definition is None:
            return []

        alternatives = [
            TypeAlternative(
                type=fallback.type,
                confidence=self.calculate_confidence(fallback.type, context),
                reasons=(
                    f"Conditions met for fallback to {fallback.type.value}",
                    f"Priority: {fallback.priority}",
                ),
            )
            for fallback in definition.fallbacks
            if fallback.applies(context, command)
        ]
        alternatives.sort(key=lambda a: a.confidence, reverse=True)
        return alternatives

    def follow_resolution_chain(
        self, task_type: TaskType, context: TaskContext, command: str = ""
    ) -> list[TaskType]:
        """Walk the chain by lowest priority number until no fallback applies.

        A visited set stops the walk the first time a type repeats, so
        cyclic chains terminate; the repeated type closes the path.
        """
        path = [task_type]
        visited: set[TaskType] = set()
        current = task_type

        while current not in visited:
            visited.add(current)
            definition = self.hierarchy.get(current)
            if definition is None:
                break

            next_fallback = next(
                (
                    fallback
                    for fallback in sorted(definition.fallbacks, key=lambda f: f.priority)
                    if fallback.applies(context, command)
                ),
                None,
            )
            if next_fallback is None:
                break

            current = next_fallback.type
            path.append(current)

        if len(path) > 1:
            logger.debug("Resolution chain: " + " -> ".join(t.value for t in path))
        return path

    def determine_final_type(
        self,
        task_type: TaskType,
        confidence: float,
        alternatives: list[TypeAlternative],
    ) -> TaskType:
        """Keep the base type unless it is weak and a stronger alternative exists."""
        if confidence >= FINAL_TYPE_THRESHOLD:
            return task_type
        if alternatives and alternatives[0].confidence > confidence:
            return alternatives[0].type
        return task_type

    def resolve_type(
        self,
        task_type: TaskType,
        context: TaskContext,
        command: str = "",
        warnings: list[str] | None = None,
    ) -> TypeFallbackResult:
        """Score a type, list its alternatives and pick the final type."""
        confidence = self.calculate_confidence(task_type, context)
        alternatives = self.generate_alternatives(task_type, context, command)
        path = self.follow_resolution_chain(task_type, context, command)
        final_type = self.determine_final_type(task_type, confidence, alternatives)

        result_warnings = list(warnings or [])
        if final_type != task_type:
            result_warnings.append(
                f"Low confidence {confidence:.2f} for {task_type.value}; "
                f"fallback to {final_type.value}"
            )

        return TypeFallbackResult(
            final_type=final_type,
            confidence=confidence,
            alternatives=alternatives,
            warnings=result_warnings,
            resolution_path=path,
        )

    def update_historical_success_rate(self, task_type: TaskType, success: bool) -> None:
        """new = old * 0.9 + (0.1 if success else 0)"""
        current = self.get_historical_rate(task_type)
        self._historical_rates[task_type] = current * 0.9 + (0.1 if success else 0.0)
