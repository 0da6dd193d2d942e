"""Core test fixtures for command-core tests."""

import pytest

from commandcore.parser.context import TaskContext
from tests.factories import FakeClock, FakeOracle, create_context


@pytest.fixture
def clock() -> FakeClock:
    """Manually advanced clock."""
    return FakeClock()


@pytest.fixture
def context() -> TaskContext:
    """Daytime context with an empty inventory and clear, safe paths."""
    return create_context()


@pytest.fixture
def miner_context() -> TaskContext:
    """Context of a bot holding a pickaxe next to iron ore."""
    return create_context(
        items=("iron_pickaxe", ("cobblestone", 32)),
        nearby_blocks=("iron_ore", "stone"),
    )


@pytest.fixture
def fake_oracle() -> FakeOracle:
    """Oracle that answers every prompt with a valid mining task."""
    return FakeOracle(
        '{"type": "mining", "parameters": {"block": "iron_ore", "quantity": 5}, "confidence": 0.9}'
    )
