"""Oracle output parsing: JSON extraction, schema validation and task building."""

import json
import logging
from typing import Any, Literal, Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from commandcore.errors.exceptions import (
    AmbiguousIntentError,
    InvalidCommandError,
    ResponseParsingError,
    SchemaValidationError,
)
from commandcore.parser.task_types import Task, TaskPriority, TaskType

logger = logging.getLogger(__name__)

AMBIGUOUS_TYPE = "ambiguous"

PRIORITY_BY_NAME = {
    "high": TaskPriority.HIGH,
    "medium": TaskPriority.MEDIUM,
    "low": TaskPriority.LOW,
}

# Item words recognized as filters on inventory and query tasks
ITEM_KEYWORDS = (
    "wood", "stone", "iron", "gold", "diamond", "coal",
    "pickaxe", "axe", "sword", "shovel", "hoe", "armor", "food",
)


class TaskPayload(BaseModel):
    """Task JSON as produced by the oracle."""

    model_config = ConfigDict(extra="ignore")

    type: str = Field(description="Task type name, or 'ambiguous' with candidates")
    parameters: dict[str, Any] = Field(
        default_factory=dict,
        description="Type-specific parameters with snake_case keys",
    )
    confidence: float | None = Field(
        default=None,
        ge=0.0,
        le=1.0,
        description="Oracle's own confidence in the interpretation",
    )
    priority: Literal["high", "medium", "low"] | None = Field(
        default=None,
        description="Scheduling priority",
    )
    candidates: list[str] = Field(
        default_factory=list,
        description="Plausible task types when the command is ambiguous",
    )


@runtime_checkable
class TaskSchemaValidator(Protocol):
    """Validates raw task JSON before it becomes a Task."""

    def validate(self, data: dict[str, Any]) -> TaskPayload:
        """Return the validated payload or raise SchemaValidationError."""
        ...


class PydanticTaskValidator:
    """Default validator backed by the TaskPayload model."""

    def validate(self, data: dict[str, Any]) -> TaskPayload:
        try:
            return TaskPayload.model_validate(data)
        except ValidationError as e:
            violations = {
                ".".join(str(part) for part in err["loc"]) or "root": err["msg"]
                for err in e.errors()
            }
            raise SchemaValidationError(
                f"Task JSON failed schema validation ({len(violations)} violation(s))",
                violations=violations,
            ) from e


def extract_json(raw: str) -> dict[str, Any]:
    """Pull the first JSON object out of oracle output.

    Markdown fences and surrounding prose are tolerated.

    Raises:
        ResponseParsingError: If no JSON object can be decoded.
    """
    content = raw.strip()
    json_start = content.find("{")
    json_end = content.rfind("}") + 1
    if json_start < 0 or json_end <= json_start:
        raise ResponseParsingError("No JSON object found in oracle response", raw_output=raw)

    try:
        data = json.loads(content[json_start:json_end])
    except json.JSONDecodeError as e:
        raise ResponseParsingError(f"Invalid JSON in oracle response: {e.msg}", raw_output=raw) from e

    if not isinstance(data, dict):
        raise ResponseParsingError("Oracle response is not a JSON object", raw_output=raw)
    return data


def payload_to_task(payload: TaskPayload, command: str, preferred_type: str | None = None) -> Task:
    """Build a Task from a validated payload.

    Args:
        payload: Validated oracle payload.
        command: Command the payload was generated for.
        preferred_type: Type to pick among candidates of an ambiguous payload.

    Returns:
        The draft Task; its type is not yet checked against the hierarchy.

    Raises:
        AmbiguousIntentError: If the oracle could not settle on one type.
        InvalidCommandError: If the type is not a known task type.
    """
    type_name = payload.type.strip().lower()
    candidates = [c.strip().lower() for c in payload.candidates if c and c.strip()]

    if type_name == AMBIGUOUS_TYPE:
        if preferred_type and preferred_type in candidates:
            type_name = preferred_type
        elif len(candidates) == 1:
            type_name = candidates[0]
        else:
            raise AmbiguousIntentError(
                f"Command '{command}' is ambiguous between: {', '.join(candidates) or 'no candidates'}"
            )

    task_type = TaskType.parse(type_name)
    if task_type == TaskType.UNKNOWN:
        raise InvalidCommandError(f"Command not recognized as a task (type '{payload.type}')")

    metadata: dict[str, Any] = {"command": command}
    extra_candidates = [c for c in candidates if c != task_type.value and TaskType.parse(c) != TaskType.UNKNOWN]
    if extra_candidates:
        metadata["candidates"] = extra_candidates

    return Task(
        type=task_type,
        parameters=dict(payload.parameters),
        priority=PRIORITY_BY_NAME.get(payload.priority or "", TaskPriority.MEDIUM),
        confidence=payload.confidence or 0.0,
        metadata=metadata,
    )


def enrich_item_filters(task: Task, command: str) -> Task:
    """Add an ``item_filter`` to inventory and query tasks from item words in the command."""
    if task.type not in (TaskType.INVENTORY, TaskType.QUERY) or "item_filter" in task.parameters:
        return task

    words = {word.strip("?!.,") for word in command.lower().split()}
    words |= {word[:-1] for word in words if word.endswith("s")}
    found = [keyword for keyword in ITEM_KEYWORDS if keyword in words]
    if found:
        task.parameters["item_filter"] = found
        logger.debug(f"Item filter for '{command}': {found}")
    return task
