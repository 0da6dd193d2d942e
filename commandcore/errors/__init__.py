"""Parsing error taxonomy, handling and recovery.

Main Components:
    - ParsingErrorCategory / ErrorSeverity: closed classification
    - ParsingError: structured failure returned to callers
    - ParsingErrorHandler: classification, messages, recovery dispatch
    - ErrorRecoveryManager: per-category strategies with retry caps
"""

from commandcore.errors.exceptions import (
    AmbiguousIntentError,
    CommandParsingError,
    ContextMismatchError,
    ErrorSeverity,
    InvalidCommandError,
    MissingParametersError,
    ParsingError,
    ParsingErrorCategory,
    RecoveryHints,
    ResponseParsingError,
    SchemaValidationError,
    UnsupportedActionError,
)
from commandcore.errors.handler import BaseErrorHandler, ParsingErrorHandler
from commandcore.errors.recovery import (
    ErrorRecoveryManager,
    RecoveryStrategy,
    exponential_backoff,
    normalize_command,
)
from commandcore.errors.templates import ERROR_TEMPLATES, ErrorTemplate

__all__ = [
    # Taxonomy
    "ParsingErrorCategory",
    "ErrorSeverity",
    "ParsingError",
    "RecoveryHints",
    # Typed causes
    "CommandParsingError",
    "InvalidCommandError",
    "AmbiguousIntentError",
    "MissingParametersError",
    "UnsupportedActionError",
    "ContextMismatchError",
    "ResponseParsingError",
    "SchemaValidationError",
    # Handling
    "BaseErrorHandler",
    "ParsingErrorHandler",
    "ErrorRecoveryManager",
    "RecoveryStrategy",
    "exponential_backoff",
    "normalize_command",
    # Templates
    "ERROR_TEMPLATES",
    "ErrorTemplate",
]
