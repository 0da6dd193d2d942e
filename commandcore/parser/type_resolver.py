"""Type validation and repair for parsed tasks."""

import logging
from dataclasses import replace
from difflib import SequenceMatcher
from typing import Iterable

from commandcore.errors.exceptions import MissingParametersError, UnsupportedActionError
from commandcore.parser.context import TaskContext
from commandcore.parser.hierarchy import (
    TYPE_HIERARCHY,
    TypeDefinition,
    ValidationResult,
    build_keyword_index,
    tokenize,
    validate_sub_type,
    validate_task_type,
)
from commandcore.parser.task_types import Task, TaskType

logger = logging.getLogger(__name__)

SIMILARITY_THRESHOLD = 0.8


class TaskTypeResolver:
    """Validates a task's type against the hierarchy and repairs it.

    Resolution order:
    1. Context overrides (recent-task similarity, hierarchy keywords),
       taken only when the parameters validate for the override type.
    2. Type validation, with keyword fallback or the default type.
    3. Sub-type validation; an invalid sub-type is stripped.
    4. Final parameter validation, which raises on failure.
    5. Disabled types are refused.

    Args:
        hierarchy: Type definitions.
        default_type: Safe generic type when no fallback matches.
        similarity_threshold: Minimum ratio for a recent-task override.
        disabled_types: Types this bot recognizes but will not run.
    """

    def __init__(
        self,
        hierarchy: dict[TaskType, TypeDefinition] | None = None,
        default_type: TaskType = TaskType.INVENTORY,
        similarity_threshold: float = SIMILARITY_THRESHOLD,
        disabled_types: Iterable[TaskType] = (),
    ) -> None:
        self.hierarchy = hierarchy if hierarchy is not None else TYPE_HIERARCHY
        self.default_type = default_type
        self.similarity_threshold = similarity_threshold
        self.disabled_types = frozenset(disabled_types)
        self._keyword_index = build_keyword_index(self.hierarchy)

    def resolve(self, task: Task, context: TaskContext, allow_overrides: bool = True) -> Task:
        """Return a task whose type and sub-type are valid.

        Args:
            task: Task as parsed from the oracle.
            context: Context snapshot.
            allow_overrides: False when the type was chosen explicitly by the
                player and must not be replaced by context overrides.

        Returns:
            A copy of the task with a validated type; resolution steps are
            recorded under ``metadata['resolution']``.

        Raises:
            MissingParametersError: If the final type's parameter rules fail.
            UnsupportedActionError: If the final type is disabled.
        """
        command = str(task.metadata.get("command") or task.description)
        steps: list[str] = []

        override = self.check_type_overrides(command, task.type, context) if allow_overrides else None
        overridden = task.with_type(override) if override is not None and override != task.type else None
        if overridden is not None and not self.check_parameters(overridden).is_valid:
            logger.debug(
                f"Ignoring override {task.type.value} -> {overridden.type.value} for '{command}': "
                f"parameters do not fit"
            )
            overridden = None

        if overridden is not None:
            logger.info(f"Type override for '{command}': {task.type.value} -> {overridden.type.value}")
            steps.append(f"override:{task.type.value}->{overridden.type.value}")
            resolved = overridden
        else:
            resolved = replace(task, parameters=dict(task.parameters), metadata=dict(task.metadata))
            type_result = validate_task_type(resolved.type, resolved.parameters, self.hierarchy)
            if not type_result.is_valid:
                fallback = self.determine_fallback_type(command, exclude=resolved.type)
                logger.warning(
                    f"Type {resolved.type.value} failed validation ({'; '.join(type_result.errors)}); "
                    f"falling back to {fallback.value}"
                )
                steps.append(f"fallback:{resolved.type.value}->{fallback.value}")
                resolved = resolved.with_type(fallback)

        if resolved.sub_type:
            sub_result = validate_sub_type(resolved.type, resolved.sub_type, resolved.parameters, self.hierarchy)
            if not sub_result.is_valid:
                logger.warning(
                    f"Stripping invalid sub-type {resolved.sub_type} from {resolved.type.value}: "
                    f"{'; '.join(sub_result.errors)}"
                )
                steps.append(f"strip_sub_type:{resolved.sub_type}")
                resolved = resolved.without_sub_type()

        final = validate_task_type(resolved.type, resolved.parameters, self.hierarchy)
        if not final.is_valid:
            raise MissingParametersError(
                f"Parameter validation failed for {resolved.type.value} "
                f"(declared {task.type.value}): {', '.join(final.errors)}",
                validation_errors=final.errors,
            )
        if resolved.type in self.disabled_types:
            raise UnsupportedActionError(f"Task type {resolved.type.value} is disabled on this bot")

        if steps:
            resolved.metadata["resolution"] = steps
        return resolved

    def check_type_overrides(
        self,
        command: str,
        declared_type: TaskType,
        context: TaskContext,
    ) -> TaskType | None:
        """Find a context-driven type that should replace the declared one.

        Returns:
            The override type, or None when no override applies.
        """
        lowered = command.lower()
        best_ratio = 0.0
        best_type: TaskType | None = None
        for recent in reversed(context.recent_tasks):
            if not recent.description:
                continue
            ratio = SequenceMatcher(None, lowered, recent.description.lower()).ratio()
            if ratio > best_ratio:
                best_ratio, best_type = ratio, recent.type
        if best_type is not None and best_ratio >= self.similarity_threshold:
            logger.debug(f"'{command}' matches a recent {best_type.value} task ({best_ratio:.2f})")
            return best_type

        matches = self.keyword_matches(command)
        if not matches or declared_type in matches:
            return None
        return max(matches, key=lambda t: matches[t])

    def keyword_matches(self, command: str) -> dict[TaskType, int]:
        """Count discriminating keyword hits per type, in first-hit order."""
        counts: dict[TaskType, int] = {}
        for word in tokenize(command):
            task_type = self._keyword_index.get(word)
            if task_type is not None:
                counts[task_type] = counts.get(task_type, 0) + 1
        return counts

    def determine_fallback_type(self, command: str, exclude: TaskType | None = None) -> TaskType:
        """Best keyword match other than ``exclude``, else the default type."""
        matches = {t: n for t, n in self.keyword_matches(command).items() if t != exclude}
        if matches:
            return max(matches, key=lambda t: matches[t])
        return self.default_type

    def check_parameters(self, task: Task) -> ValidationResult:
        """Non-raising validation of a task's type and sub-type rules."""
        result = validate_task_type(task.type, task.parameters, self.hierarchy)
        if task.sub_type:
            result.merge(validate_sub_type(task.type, task.sub_type, task.parameters, self.hierarchy))
        return result
