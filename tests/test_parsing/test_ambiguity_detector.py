"""Tests for AmbiguityDetector."""

import pytest

from commandcore.parser.ambiguity_detector import AmbiguityDetector, clamp
from commandcore.parser.context import ContextFactor
from commandcore.parser.patterns import DEFAULT_PATTERNS, AmbiguityPattern
from commandcore.parser.task_types import TaskType
from tests.factories import create_context


COMMANDS = [
    "go to 100 64 -200",
    "go to village",
    "find the stronghold",
    "mine iron ore",
    "mine cobblestone",
    "craft a stone pickaxe",
    "craft 4 planks",
    "chop some wood",
    "harvest wheat",
    "please go to the village right now and bring back some things",
]


class TestScoreBounds:
    """Tests that every score component stays in [0, 1]."""

    @pytest.mark.parametrize("command", COMMANDS)
    def test_scores_within_unit_interval(self, command, miner_context):
        """All score fields lie in [0, 1] for every matched pattern."""
        detector = AmbiguityDetector()

        for context in (create_context(), miner_context):
            result = detector.detect_ambiguity(command, context)
            for score in result.scores:
                for value in (
                    score.confidence,
                    score.context_relevance,
                    score.historical_success,
                    score.total_score,
                ):
                    assert 0.0 <= value <= 1.0

    def test_clamp(self):
        """clamp bounds values to the unit interval."""
        assert clamp(1.7) == 1.0
        assert clamp(-0.2) == 0.0
        assert clamp(0.4) == 0.4


class TestDetectAmbiguity:
    """Tests for detect_ambiguity."""

    def test_coordinates_are_unambiguous(self, context):
        """A coordinate command matches only the coordinate pattern."""
        detector = AmbiguityDetector()

        result = detector.detect_ambiguity("go to 100 64 -200", context)

        assert result.is_ambiguous is False
        assert result.matched_pattern_ids == ["navigation_coordinates"]
        assert result.top.task_type == TaskType.NAVIGATION
        assert result.suggested_types == [TaskType.NAVIGATION]

    def test_landmark_travel_is_ambiguous(self, context):
        """'go to village' fires travel and exploration patterns within the margin."""
        detector = AmbiguityDetector()

        result = detector.detect_ambiguity("go to village", context)

        assert result.is_ambiguous is True
        assert {s.task_type for s in result.scores} == {TaskType.NAVIGATION, TaskType.EXPLORATION}
        # Only safe_route backs exploration, and it holds
        assert result.top.task_type == TaskType.EXPLORATION
        assert result.scores[0].total_score - result.scores[1].total_score < 0.2

    def test_no_match_is_empty_and_unambiguous(self, context):
        """A command no pattern matches yields an empty result."""
        detector = AmbiguityDetector()

        result = detector.detect_ambiguity("hello there", context)

        assert result.has_matches is False
        assert result.is_ambiguous is False
        assert result.suggested_types == []
        assert result.top is None

    def test_margin_is_configurable(self, context):
        """A tighter margin turns the landmark case unambiguous."""
        detector = AmbiguityDetector(margin=0.05)

        result = detector.detect_ambiguity("go to village", context)

        assert len(result.scores) == 2
        assert result.is_ambiguous is False

    def test_deterministic_for_identical_inputs(self, context):
        """Identical inputs produce identical results."""
        detector = AmbiguityDetector()

        first = detector.detect_ambiguity("go to village", context)
        second = detector.detect_ambiguity("go to village", context)

        assert first == second

    def test_context_factor_relevance_reported(self, context):
        """Held factors report their weight; missing factors report zero."""
        detector = AmbiguityDetector()

        result = detector.detect_ambiguity("go to village", context)

        assert result.context_factors[ContextFactor.PATH_CLEAR] == pytest.approx(0.3)
        assert result.context_factors[ContextFactor.SAFE_ROUTE] == pytest.approx(0.3)
        assert result.context_factors[ContextFactor.LANDMARK_KNOWN] == 0.0

    def test_known_landmark_raises_travel_relevance(self):
        """Knowing the landmark makes every travel factor hold."""
        detector = AmbiguityDetector()
        context = create_context(known_landmarks=("village",))

        result = detector.detect_ambiguity("go to village", context)

        navigation = result.best_score_for(TaskType.NAVIGATION)
        assert navigation.context_relevance == pytest.approx(1.0)
        assert result.top.task_type == TaskType.NAVIGATION

    def test_context_relevance_uses_inventory(self, miner_context):
        """Holding a pickaxe near ore makes the mining pattern fully relevant."""
        detector = AmbiguityDetector()

        with_tools = detector.detect_ambiguity("mine iron ore", miner_context).top
        without_tools = detector.detect_ambiguity("mine iron ore", create_context()).top

        assert with_tools.context_relevance == pytest.approx(1.0)
        assert without_tools.context_relevance < with_tools.context_relevance
        assert without_tools.total_score < with_tools.total_score

    def test_partial_match_lowers_confidence(self, context):
        """Extra words around the match reduce match completeness."""
        detector = AmbiguityDetector()

        exact = detector.detect_ambiguity("chop wood", context).top
        padded = detector.detect_ambiguity("could you please chop wood for the house", context).top

        assert padded.confidence < exact.confidence


class TestHistoricalSuccess:
    """Tests for the smoothed per-pattern success rate."""

    def test_unseen_pattern_defaults_to_half(self):
        """Unseen patterns score 0.5."""
        assert AmbiguityDetector().get_historical_success("mining_ore") == 0.5

    def test_success_update(self):
        """A success applies old * 0.9 + 0.1."""
        detector = AmbiguityDetector()

        detector.update_historical_success("mining_ore", True)

        assert detector.get_historical_success("mining_ore") == pytest.approx(0.55)

    def test_failure_update(self):
        """A failure applies old * 0.9."""
        detector = AmbiguityDetector()

        detector.update_historical_success("mining_ore", False)

        assert detector.get_historical_success("mining_ore") == pytest.approx(0.45)

    def test_history_shifts_ranking(self, context):
        """Repeated failures of one interpretation let the other win."""
        detector = AmbiguityDetector()
        for _ in range(10):
            detector.update_historical_success("exploration_landmark", False)
            detector.update_historical_success("navigation_landmark", True)

        result = detector.detect_ambiguity("go to village", context)

        assert result.top.task_type == TaskType.NAVIGATION


class TestPatternRegistry:
    """Tests for pattern registration."""

    def test_defaults_loaded(self):
        """The default registry is used when no patterns are given."""
        detector = AmbiguityDetector()
        assert {p.id for p in detector.patterns} == {p.id for p in DEFAULT_PATTERNS}

    def test_register_pattern(self, context):
        """A registered pattern participates in detection."""
        detector = AmbiguityDetector(patterns=[])
        detector.register_pattern(AmbiguityPattern(
            id="combat_zombie",
            pattern=r"(?:kill|attack)\s+(?:the\s+)?zombies?",
            task_type=TaskType.COMBAT,
            confidence_threshold=0.9,
        ))

        result = detector.detect_ambiguity("attack the zombie", context)

        assert result.matched_pattern_ids == ["combat_zombie"]
        assert result.top.context_relevance == 0.0

    def test_register_replaces_by_id(self):
        """Registering an existing id replaces the pattern."""
        detector = AmbiguityDetector()
        replacement = AmbiguityPattern("mining_ore", r"dig\s+ore", TaskType.MINING, 0.5)

        detector.register_pattern(replacement)

        assert [p for p in detector.patterns if p.id == "mining_ore"] == [replacement]
