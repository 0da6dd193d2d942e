"""Command interpretation and task resolution.

Converts free-text chat commands into validated, typed Task objects.

Main Components:
    - TaskParser: orchestrates the whole pipeline around the oracle call
    - AmbiguityDetector: pattern matching with multi-factor scoring
    - ContextDisambiguator: context and history driven tie-breaking
    - TaskTypeResolver / TypeFallbackSystem: hierarchy validation and fallbacks
    - UserConfirmationHandler: confirmation handshake with expiry
    - CommandCache: TTL-bounded memoization of resolved commands
"""

from commandcore.parser.ambiguity_detector import AmbiguityDetector, AmbiguityResult, AmbiguityScore
from commandcore.parser.cache import CacheEntry, CacheMetrics, CommandCache
from commandcore.parser.confirmation import (
    ConfirmationOption,
    ConfirmationPrompt,
    UserConfirmationHandler,
)
from commandcore.parser.context import (
    ContextFactor,
    ContextProvider,
    InventoryItem,
    InventorySnapshot,
    NearbyBlock,
    PathfindingState,
    Position,
    RecentTask,
    TaskContext,
)
from commandcore.parser.context_disambiguator import ContextDisambiguator, DisambiguationResult
from commandcore.parser.factory import create_task_parser
from commandcore.parser.hierarchy import TYPE_HIERARCHY, FallbackRule, TypeDefinition, ValidationResult
from commandcore.parser.history import HistoricalPattern, HistoricalPatternStore
from commandcore.parser.patterns import DEFAULT_PATTERNS, AmbiguityPattern
from commandcore.parser.response import PydanticTaskValidator, TaskPayload, TaskSchemaValidator
from commandcore.parser.task_parser import ParseResult, ParseStatus, ParsingMetrics, TaskParser
from commandcore.parser.task_types import Task, TaskPriority, TaskStatus, TaskType
from commandcore.parser.type_fallback import TypeAlternative, TypeFallbackResult, TypeFallbackSystem
from commandcore.parser.type_resolver import TaskTypeResolver

__all__ = [
    # Core types
    "Task",
    "TaskType",
    "TaskPriority",
    "TaskStatus",
    # Context
    "TaskContext",
    "ContextProvider",
    "ContextFactor",
    "InventoryItem",
    "InventorySnapshot",
    "NearbyBlock",
    "PathfindingState",
    "Position",
    "RecentTask",
    # Scoring
    "AmbiguityPattern",
    "DEFAULT_PATTERNS",
    "AmbiguityDetector",
    "AmbiguityResult",
    "AmbiguityScore",
    "ContextDisambiguator",
    "DisambiguationResult",
    "HistoricalPattern",
    "HistoricalPatternStore",
    # Type resolution
    "TYPE_HIERARCHY",
    "TypeDefinition",
    "FallbackRule",
    "ValidationResult",
    "TaskTypeResolver",
    "TypeFallbackSystem",
    "TypeFallbackResult",
    "TypeAlternative",
    # Confirmation and caching
    "UserConfirmationHandler",
    "ConfirmationPrompt",
    "ConfirmationOption",
    "CommandCache",
    "CacheEntry",
    "CacheMetrics",
    # Oracle output
    "TaskPayload",
    "TaskSchemaValidator",
    "PydanticTaskValidator",
    # Orchestration
    "TaskParser",
    "ParseResult",
    "ParseStatus",
    "ParsingMetrics",
    "create_task_parser",
]
