"""Task type definitions for resolved commands.

This module defines the task types the agent can execute and the Task
dataclass that is the pipeline's only externally visible output.
"""

import uuid
from copy import deepcopy
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum, IntEnum
from typing import Any


class TaskType(str, Enum):
    """Executable task kinds."""

    MINING = "mining"
    FARMING = "farming"
    CRAFTING = "crafting"
    NAVIGATION = "navigation"
    EXPLORATION = "exploration"
    QUERY = "query"
    GATHERING = "gathering"
    INVENTORY = "inventory"
    COMBAT = "combat"
    INTERACTION = "interaction"
    HEALING = "healing"
    CHAT = "chat"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, value: "str | TaskType") -> "TaskType":
        """Coerce a string to a TaskType, mapping unknown names to UNKNOWN."""
        if isinstance(value, TaskType):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return cls.UNKNOWN


class TaskPriority(IntEnum):
    """Scheduling priority for executors."""

    HIGH = 80
    MEDIUM = 50
    LOW = 20


class TaskStatus(str, Enum):
    """Lifecycle state of a task."""

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


def _new_task_id() -> str:
    return f"task-{uuid.uuid4().hex[:12]}"


@dataclass
class Task:
    """A typed, parameterized unit of work for the agent.

    Attributes:
        type: Task type.
        parameters: Type-specific parameters (snake_case keys).
        id: Unique identifier.
        priority: Scheduling priority.
        status: Lifecycle state.
        confidence: Resolution confidence in [0, 1].
        created_at: UTC creation time.
        metadata: Free-form diagnostics (command, resolution path, warnings).
    """

    type: TaskType
    parameters: dict[str, Any] = field(default_factory=dict)
    id: str = field(default_factory=_new_task_id)
    priority: TaskPriority = TaskPriority.MEDIUM
    status: TaskStatus = TaskStatus.PENDING
    confidence: float = 0.0
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def sub_type(self) -> str | None:
        """Optional refinement of the type (e.g. 'strip_mining')."""
        value = self.parameters.get("sub_type")
        return str(value) if value else None

    @property
    def description(self) -> str:
        """Human-readable description, falling back to the source command."""
        return str(
            self.parameters.get("description")
            or self.metadata.get("command")
            or self.type.value
        )

    def with_type(self, task_type: TaskType) -> "Task":
        """Copy of this task re-typed; the sub-type is dropped with the old type."""
        parameters = {k: v for k, v in self.parameters.items() if k != "sub_type"}
        return replace(
            self,
            type=task_type,
            parameters=parameters,
            metadata=dict(self.metadata),
        )

    def without_sub_type(self) -> "Task":
        """Copy of this task with only the sub-type removed."""
        parameters = {k: v for k, v in self.parameters.items() if k != "sub_type"}
        return replace(self, parameters=parameters, metadata=dict(self.metadata))

    def clone(self, new_id: bool = False) -> "Task":
        """Copy of this task sharing no mutable state with the original.

        Args:
            new_id: Also issue a fresh id and creation time, for a task
                handed out again as a new unit of work.
        """
        changes: dict[str, Any] = {
            "parameters": deepcopy(self.parameters),
            "metadata": deepcopy(self.metadata),
        }
        if new_id:
            changes["id"] = _new_task_id()
            changes["created_at"] = datetime.now(timezone.utc)
        return replace(self, **changes)

    def to_dict(self) -> dict[str, Any]:
        """Serializable view used in error details and logs."""
        return {
            "id": self.id,
            "type": self.type.value,
            "parameters": dict(self.parameters),
            "priority": int(self.priority),
            "status": self.status.value,
            "confidence": self.confidence,
        }
