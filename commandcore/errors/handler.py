"""Parsing error classification and handling."""

import json
import logging
from collections import Counter, deque
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

from commandcore.errors.exceptions import (
    CommandParsingError,
    ErrorSeverity,
    ParsingError,
    ParsingErrorCategory,
    SchemaValidationError,
    UnsupportedActionError,
)
from commandcore.errors.recovery import ErrorRecoveryManager
from commandcore.errors.templates import format_explanation, format_message, get_template
from commandcore.llm.exceptions import (
    AuthenticationError,
    LLMError,
    ServiceUnavailableError,
    UnsupportedProviderError,
)

if TYPE_CHECKING:
    from commandcore.parser.context import TaskContext

logger = logging.getLogger(__name__)


SEVERITY_BY_CATEGORY: dict[ParsingErrorCategory, ErrorSeverity] = {
    ParsingErrorCategory.SERVICE_ERROR: ErrorSeverity.CRITICAL,
    ParsingErrorCategory.RESPONSE_PARSING_ERROR: ErrorSeverity.HIGH,
    ParsingErrorCategory.SCHEMA_VALIDATION_ERROR: ErrorSeverity.HIGH,
    ParsingErrorCategory.CONTEXT_MISMATCH: ErrorSeverity.HIGH,
    ParsingErrorCategory.INVALID_COMMAND: ErrorSeverity.MEDIUM,
    ParsingErrorCategory.AMBIGUOUS_INTENT: ErrorSeverity.MEDIUM,
    ParsingErrorCategory.MISSING_PARAMETERS: ErrorSeverity.LOW,
    ParsingErrorCategory.UNSUPPORTED_ACTION: ErrorSeverity.LOW,
}

# Oracle client error codes
CATEGORY_BY_LLM_CODE: dict[str, ParsingErrorCategory] = {
    "SERVICE_UNAVAILABLE": ParsingErrorCategory.SERVICE_ERROR,
    "REQUEST_TIMEOUT": ParsingErrorCategory.SERVICE_ERROR,
    "REQUEST_FAILED": ParsingErrorCategory.SERVICE_ERROR,
    "RATE_LIMITED": ParsingErrorCategory.SERVICE_ERROR,
    "AUTHENTICATION_FAILED": ParsingErrorCategory.SERVICE_ERROR,
    "CONTENT_POLICY": ParsingErrorCategory.SERVICE_ERROR,
    "CONTEXT_LENGTH": ParsingErrorCategory.SERVICE_ERROR,
    "UNSUPPORTED_PROVIDER": ParsingErrorCategory.SERVICE_ERROR,
    "EMPTY_RESPONSE": ParsingErrorCategory.RESPONSE_PARSING_ERROR,
    "INVALID_TASK_FORMAT": ParsingErrorCategory.RESPONSE_PARSING_ERROR,
}

# Best-effort message heuristics, checked in order
MESSAGE_HEURISTICS: list[tuple[tuple[str, ...], ParsingErrorCategory]] = [
    (("invalid", "not recognized"), ParsingErrorCategory.INVALID_COMMAND),
    (("ambiguous", "multiple meanings"), ParsingErrorCategory.AMBIGUOUS_INTENT),
    (("missing", "required"), ParsingErrorCategory.MISSING_PARAMETERS),
    (("unsupported", "not implemented"), ParsingErrorCategory.UNSUPPORTED_ACTION),
    (("context", "mismatch"), ParsingErrorCategory.CONTEXT_MISMATCH),
    (("parse", "json"), ParsingErrorCategory.RESPONSE_PARSING_ERROR),
    (("schema", "validation"), ParsingErrorCategory.SCHEMA_VALIDATION_ERROR),
    (("service", "connection", "timeout", "timed out", "unavailable", "econnrefused"), ParsingErrorCategory.SERVICE_ERROR),
]


@dataclass(frozen=True)
class ErrorRecord:
    """One entry in the recent-error log."""

    category: ParsingErrorCategory
    severity: ErrorSeverity
    message: str
    command: str | None
    timestamp: datetime


class BaseErrorHandler:
    """Terminal handler: logs errors and keeps a bounded record of them."""

    def __init__(self, max_records: int = 100) -> None:
        self._records: deque[ErrorRecord] = deque(maxlen=max_records)

    def handle_error(self, error: ParsingError) -> None:
        """Log an unrecovered error and remember it."""
        level = logging.CRITICAL if error.severity == ErrorSeverity.CRITICAL else logging.ERROR
        logger.log(
            level,
            f"Unrecovered {error.category.value} ({error.severity.value}): {error.message}"
            + (f" [command: {error.command}]" if error.command else ""),
        )
        self._records.append(ErrorRecord(
            category=error.category,
            severity=error.severity,
            message=error.message,
            command=error.command,
            timestamp=datetime.now(timezone.utc),
        ))

    @property
    def recent_errors(self) -> list[ErrorRecord]:
        return list(self._records)

    def error_counts(self) -> dict[ParsingErrorCategory, int]:
        """Count recorded errors per category."""
        return dict(Counter(record.category for record in self._records))


class ParsingErrorHandler(BaseErrorHandler):
    """Classifies pipeline failures and drives recovery.

    Args:
        recovery_manager: Manager used for recoverable categories.
        max_records: Size of the recent-error log.
    """

    def __init__(
        self,
        recovery_manager: ErrorRecoveryManager | None = None,
        max_records: int = 100,
    ) -> None:
        super().__init__(max_records=max_records)
        self.recovery_manager = recovery_manager or ErrorRecoveryManager()

    def categorize_parsing_error(self, error: BaseException) -> ParsingErrorCategory:
        """Map any exception to the closed taxonomy.

        Typed markers win over message heuristics:
        ParsingError, then CommandParsingError.category, then LLMError
        codes, then JSON decode failures, then message substrings.
        """
        if isinstance(error, ParsingError):
            return error.category
        if isinstance(error, CommandParsingError):
            return error.category
        if isinstance(error, LLMError):
            return CATEGORY_BY_LLM_CODE.get(error.code, ParsingErrorCategory.SERVICE_ERROR)
        if isinstance(error, json.JSONDecodeError):
            return ParsingErrorCategory.RESPONSE_PARSING_ERROR

        message = str(error).lower()
        for needles, category in MESSAGE_HEURISTICS:
            if any(needle in message for needle in needles):
                return category
        return ParsingErrorCategory.INVALID_COMMAND

    def determine_parsing_severity(self, category: ParsingErrorCategory) -> ErrorSeverity:
        return SEVERITY_BY_CATEGORY[category]

    def is_recoverable(self, error: BaseException) -> bool:
        """False for categorical failures that retrying cannot fix."""
        if isinstance(error, ParsingError):
            return error.recoverable
        return not isinstance(
            error,
            (ServiceUnavailableError, AuthenticationError, UnsupportedProviderError, UnsupportedActionError),
        )

    def to_parsing_error(
        self,
        error: BaseException,
        command: str | None = None,
        context: "TaskContext | None" = None,
        task_id: str | None = None,
        parsed_task: dict[str, Any] | None = None,
    ) -> ParsingError:
        """Classify an exception once into a ParsingError.

        An existing ParsingError is returned with missing fields filled in.
        """
        if isinstance(error, ParsingError):
            error.command = error.command or command
            error.context = error.context or context
            error.task_id = error.task_id or task_id
            error.parsed_task = error.parsed_task or parsed_task
            return error

        category = self.categorize_parsing_error(error)
        validation_errors: list[str] = list(getattr(error, "validation_errors", []) or [])
        return ParsingError(
            category=category,
            message=str(error) or type(error).__name__,
            severity=self.determine_parsing_severity(category),
            context=context,
            cause=error,
            command=command,
            task_id=task_id,
            validation_errors=validation_errors,
            parsed_task=parsed_task,
            recoverable=self.is_recoverable(error),
        )

    def get_user_friendly_message(self, error: ParsingError) -> str:
        return format_message(
            error.category,
            command=error.command,
            validation_errors=error.validation_errors,
        )

    def get_detailed_explanation(self, error: ParsingError) -> str:
        explanation = format_explanation(
            error.category,
            severity=error.severity.value,
            task=error.parsed_task,
            validation_errors=error.validation_errors,
        )
        if isinstance(error.cause, SchemaValidationError) and error.cause.violations:
            explanation += "\nSchema Violations:\n"
            explanation += "".join(f"- {path}: {msg}\n" for path, msg in error.cause.violations.items())
        return explanation

    def get_recovery_steps(self, category: ParsingErrorCategory) -> list[str]:
        return list(get_template(category).suggestions)

    async def handle_parsing_error(
        self,
        error: BaseException,
        command: str | None = None,
        context: "TaskContext | None" = None,
        task_id: str | None = None,
        parsed_task: dict[str, Any] | None = None,
    ) -> ParsingError:
        """Classify, log and try to recover from a pipeline failure.

        Args:
            error: The raw exception.
            command: Command being parsed.
            context: Context snapshot in effect.
            task_id: Identifier for retry accounting.
            parsed_task: Task fields known at failure time.

        Returns:
            The classified ParsingError. When recovery succeeded its
            ``hints`` are set; otherwise it has been passed to the base
            handler.
        """
        parsing_error = self.to_parsing_error(error, command, context, task_id, parsed_task)
        logger.warning(
            f"Parsing error [{parsing_error.category.value}/{parsing_error.severity.value}]: "
            f"{parsing_error.message}"
        )

        if parsing_error.recoverable:
            if await self.recovery_manager.attempt_recovery(parsing_error):
                return parsing_error
        else:
            logger.info(f"Skipping recovery for non-recoverable {parsing_error.category.value} error")

        self.handle_error(parsing_error)
        return parsing_error
