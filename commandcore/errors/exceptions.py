"""Parsing error taxonomy.

Every failure in the command pipeline is classified once into a
ParsingErrorCategory and surfaced to callers as a ParsingError.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from commandcore.parser.context import TaskContext


class ParsingErrorCategory(str, Enum):
    """Closed set of parsing failure kinds."""

    SERVICE_ERROR = "service_error"
    INVALID_COMMAND = "invalid_command"
    AMBIGUOUS_INTENT = "ambiguous_intent"
    MISSING_PARAMETERS = "missing_parameters"
    UNSUPPORTED_ACTION = "unsupported_action"
    CONTEXT_MISMATCH = "context_mismatch"
    RESPONSE_PARSING_ERROR = "response_parsing_error"
    SCHEMA_VALIDATION_ERROR = "schema_validation_error"


class ErrorSeverity(str, Enum):
    """How bad a failure is for the caller."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


@dataclass
class RecoveryHints:
    """Adjustments a recovery strategy asks the next parse attempt to apply.

    Attributes:
        strict_json: Re-prompt with stricter output instructions.
        normalized_command: Rephrased command to use instead of the raw one.
        extra_parameters: Parameters inferred from context.
        refresh_context: Fetch a fresh context snapshot before retrying.
        preferred_type: Task type to favor when intent was ambiguous.
    """

    strict_json: bool = False
    normalized_command: str | None = None
    extra_parameters: dict[str, Any] = field(default_factory=dict)
    refresh_context: bool = False
    preferred_type: str | None = None

    def merge(self, other: "RecoveryHints") -> None:
        """Fold another set of hints into this one."""
        self.strict_json = self.strict_json or other.strict_json
        self.normalized_command = other.normalized_command or self.normalized_command
        self.extra_parameters.update(other.extra_parameters)
        self.refresh_context = self.refresh_context or other.refresh_context
        self.preferred_type = other.preferred_type or self.preferred_type


class CommandParsingError(Exception):
    """Base for errors raised inside the pipeline with a known category."""

    category: ParsingErrorCategory = ParsingErrorCategory.INVALID_COMMAND


class InvalidCommandError(CommandParsingError):
    """The command could not be interpreted as any task."""

    category = ParsingErrorCategory.INVALID_COMMAND


class AmbiguousIntentError(CommandParsingError):
    """Multiple interpretations remain and none could be chosen."""

    category = ParsingErrorCategory.AMBIGUOUS_INTENT


class MissingParametersError(CommandParsingError):
    """A task lacks parameters its type requires.

    Attributes:
        validation_errors: Human-readable rule failures.
    """

    category = ParsingErrorCategory.MISSING_PARAMETERS

    def __init__(self, message: str, validation_errors: list[str] | None = None) -> None:
        super().__init__(message)
        self.validation_errors = validation_errors or []


class UnsupportedActionError(CommandParsingError):
    """The task type exists but cannot be executed by this agent."""

    category = ParsingErrorCategory.UNSUPPORTED_ACTION


class ContextMismatchError(CommandParsingError):
    """The task contradicts the current game context."""

    category = ParsingErrorCategory.CONTEXT_MISMATCH


class ResponseParsingError(CommandParsingError):
    """The oracle output was not parseable JSON.

    Attributes:
        raw_output: The text that failed to parse.
    """

    category = ParsingErrorCategory.RESPONSE_PARSING_ERROR

    def __init__(self, message: str, raw_output: str | None = None) -> None:
        super().__init__(message)
        self.raw_output = raw_output


class SchemaValidationError(CommandParsingError):
    """The parsed task failed schema validation.

    Attributes:
        violations: Mapping of field path to violation message.
    """

    category = ParsingErrorCategory.SCHEMA_VALIDATION_ERROR

    def __init__(self, message: str, violations: dict[str, str] | None = None) -> None:
        super().__init__(message)
        self.violations = violations or {}

    @property
    def validation_errors(self) -> list[str]:
        """Violations rendered as 'field: message' strings."""
        return [f"{path}: {msg}" for path, msg in self.violations.items()]


class ParsingError(Exception):
    """Structured, classified pipeline failure returned to callers.

    Attributes:
        category: Taxonomy bucket.
        message: Human-readable description.
        severity: Severity derived from the category.
        context: Context snapshot the failure happened under.
        recovery_strategy: Name of the strategy that last ran, if any.
        cause: The collaborator exception that triggered this error.
        command: The raw command being parsed.
        task_id: Identifier used for retry accounting.
        validation_errors: Structured validation failures.
        parsed_task: Task fields known at failure time.
        recoverable: False for categorical failures that must not be retried.
        hints: Adjustments proposed by a successful recovery strategy.
    """

    def __init__(
        self,
        category: ParsingErrorCategory,
        message: str,
        severity: ErrorSeverity = ErrorSeverity.MEDIUM,
        context: "TaskContext | None" = None,
        recovery_strategy: str | None = None,
        cause: BaseException | None = None,
        command: str | None = None,
        task_id: str | None = None,
        validation_errors: list[str] | None = None,
        parsed_task: dict[str, Any] | None = None,
        recoverable: bool = True,
    ) -> None:
        super().__init__(message)
        self.category = category
        self.message = message
        self.severity = severity
        self.context = context
        self.recovery_strategy = recovery_strategy
        self.cause = cause
        self.command = command
        self.task_id = task_id
        self.validation_errors = validation_errors or []
        self.parsed_task = parsed_task
        self.recoverable = recoverable
        self.hints: RecoveryHints | None = None

    def __repr__(self) -> str:
        return (
            f"ParsingError(category={self.category.value!r}, "
            f"severity={self.severity.value!r}, message={self.message!r})"
        )
