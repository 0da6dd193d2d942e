"""Tests for create_task_parser."""

import pytest

from commandcore.config import Settings
from commandcore.parser.factory import create_task_parser
from commandcore.parser.task_types import TaskType
from tests.factories import FakeOracle


@pytest.fixture
def tuned_settings() -> Settings:
    return Settings(
        _env_file=None,
        ambiguity_margin=0.1,
        confirmation_threshold=0.8,
        confirmation_timeout_seconds=10.0,
        history_max_size=50,
        cache_size=20,
        cache_ttl_seconds=5.0,
        oracle_max_retries=1,
        oracle_empty_response_retries=2,
        recovery_max_tracked_keys=7,
        oracle_health_check=False,
        max_alternatives=2,
        disabled_task_types=["combat"],
    )


class TestCreateTaskParser:
    """Tests for settings-driven wiring."""

    def test_components_sized_from_settings(self, tuned_settings):
        """Every stateful service takes its limits from settings."""
        parser = create_task_parser(tuned_settings, oracle=FakeOracle("{}"))

        assert parser.detector.margin == 0.1
        assert parser.confirmation_handler.threshold == 0.8
        assert parser.confirmation_handler.timeout_seconds == 10.0
        assert parser.disambiguator.history.max_size == 50
        assert parser.cache.max_size == 20
        assert parser.cache.ttl_seconds == 5.0
        assert parser.retry_config.max_retries == 1
        assert parser.retry_config.empty_response_retries == 2
        assert parser.error_handler.recovery_manager.max_tracked_keys == 7
        assert parser.health_check is False
        assert parser.max_alternatives == 2
        assert parser.resolver.disabled_types == {TaskType.COMBAT}

    def test_confirmation_shares_disambiguator(self, tuned_settings):
        """Confirmations record into the same history the disambiguator reads."""
        parser = create_task_parser(tuned_settings, oracle=FakeOracle("{}"))

        assert parser.confirmation_handler.disambiguator is parser.disambiguator

    def test_caching_disabled(self, tuned_settings):
        tuned_settings.enable_caching = False

        parser = create_task_parser(tuned_settings, oracle=FakeOracle("{}"))

        assert parser.cache is None

    def test_parsers_are_isolated(self, tuned_settings):
        """Two parsers never share stores."""
        first = create_task_parser(tuned_settings, oracle=FakeOracle("{}"))
        second = create_task_parser(tuned_settings, oracle=FakeOracle("{}"))

        assert first.cache is not second.cache
        assert first.disambiguator.history is not second.disambiguator.history

    @pytest.mark.asyncio
    async def test_wired_parser_parses(self, tuned_settings, miner_context, fake_oracle):
        """A factory-built parser resolves a command end to end."""
        parser = create_task_parser(tuned_settings, oracle=fake_oracle)

        result = await parser.parse("mine iron ore", context=miner_context)

        assert result.task.type == TaskType.MINING
        assert result.task.parameters["block"] == "iron_ore"
        assert fake_oracle.availability_checks == 0
