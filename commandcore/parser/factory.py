"""Build a fully wired TaskParser from settings."""

from commandcore.config import Settings, get_settings
from commandcore.errors.handler import ParsingErrorHandler
from commandcore.errors.recovery import ErrorRecoveryManager
from commandcore.llm.base import TextOracle
from commandcore.llm.factory import get_oracle
from commandcore.llm.retry import RetryConfig
from commandcore.parser.ambiguity_detector import AmbiguityDetector
from commandcore.parser.cache import CommandCache
from commandcore.parser.confirmation import UserConfirmationHandler
from commandcore.parser.context import ContextProvider
from commandcore.parser.context_disambiguator import ContextDisambiguator
from commandcore.parser.history import HistoricalPatternStore
from commandcore.parser.task_parser import TaskParser
from commandcore.parser.task_types import TaskType
from commandcore.parser.type_resolver import TaskTypeResolver


def create_task_parser(
    settings: Settings | None = None,
    oracle: TextOracle | None = None,
    context_provider: ContextProvider | None = None,
) -> TaskParser:
    """Create a TaskParser with every stateful service sized from settings.

    Args:
        settings: Settings to read (defaults to cached settings).
        oracle: Oracle to use instead of the one configured by ORACLE.
        context_provider: Source of TaskContext snapshots.

    Returns:
        A TaskParser owning fresh, isolated stores.
    """
    settings = settings or get_settings()
    oracle = oracle or get_oracle(settings)

    history = HistoricalPatternStore(
        max_size=settings.history_max_size,
        decay_rate=settings.history_decay_rate,
        relevance_floor=settings.history_relevance_floor,
        recent_limit=settings.history_recent_limit,
    )
    disambiguator = ContextDisambiguator(history)

    return TaskParser(
        oracle=oracle,
        context_provider=context_provider,
        detector=AmbiguityDetector(margin=settings.ambiguity_margin),
        disambiguator=disambiguator,
        resolver=TaskTypeResolver(disabled_types=[TaskType.parse(name) for name in settings.disabled_task_types]),
        confirmation_handler=UserConfirmationHandler(
            disambiguator,
            threshold=settings.confirmation_threshold,
            timeout_seconds=settings.confirmation_timeout_seconds,
            max_pending=settings.max_pending_confirmations,
            historical_discount=settings.historical_option_discount,
        ),
        cache=CommandCache(max_size=settings.cache_size, ttl_seconds=settings.cache_ttl_seconds),
        error_handler=ParsingErrorHandler(
            ErrorRecoveryManager(oracle=oracle, max_tracked_keys=settings.recovery_max_tracked_keys)
        ),
        retry_config=RetryConfig(
            max_retries=settings.oracle_max_retries,
            empty_response_retries=settings.oracle_empty_response_retries,
        ),
        enable_caching=settings.enable_caching,
        health_check=settings.oracle_health_check,
        max_alternatives=settings.max_alternatives,
    )
