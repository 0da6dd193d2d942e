"""Tests for oracle output parsing and prompt construction."""

import pytest

from commandcore.errors.exceptions import (
    AmbiguousIntentError,
    InvalidCommandError,
    RecoveryHints,
    ResponseParsingError,
    SchemaValidationError,
)
from commandcore.parser.prompts import STRICT_JSON_REMINDER, SYSTEM_PROMPT, build_task_prompt
from commandcore.parser.response import (
    PydanticTaskValidator,
    TaskPayload,
    TaskSchemaValidator,
    enrich_item_filters,
    extract_json,
    payload_to_task,
)
from commandcore.parser.task_types import TaskPriority, TaskType
from tests.factories import create_context, create_recent_task, create_task


class TestExtractJson:
    """Tests for extract_json."""

    def test_plain_object(self):
        """A bare JSON object is decoded."""
        assert extract_json('{"type": "mining"}') == {"type": "mining"}

    def test_fenced_with_prose(self):
        """Markdown fences and surrounding prose are ignored."""
        raw = 'Sure! Here is the task:\n```json\n{"type": "crafting", "parameters": {"item": "stick"}}\n```'

        assert extract_json(raw)["parameters"] == {"item": "stick"}

    def test_no_object(self):
        """Output without braces raises with the raw text attached."""
        with pytest.raises(ResponseParsingError) as exc_info:
            extract_json("I think you want to mine.")

        assert exc_info.value.raw_output == "I think you want to mine."

    def test_malformed_object(self):
        """Broken JSON raises ResponseParsingError."""
        with pytest.raises(ResponseParsingError):
            extract_json('{"type": "mining", "parameters": {')


class TestPydanticTaskValidator:
    """Tests for the default schema validator."""

    def test_satisfies_protocol(self):
        """The default validator is a TaskSchemaValidator."""
        assert isinstance(PydanticTaskValidator(), TaskSchemaValidator)

    def test_valid_payload(self):
        """Valid data becomes a TaskPayload; unknown keys are ignored."""
        payload = PydanticTaskValidator().validate(
            {"type": "mining", "parameters": {"block": "stone"}, "confidence": 0.8, "reasoning": "x"}
        )

        assert payload.type == "mining"
        assert payload.confidence == 0.8
        assert payload.priority is None

    def test_violations_by_field(self):
        """Each violation is reported under its field path."""
        with pytest.raises(SchemaValidationError) as exc_info:
            PydanticTaskValidator().validate({"type": "mining", "confidence": 1.7, "priority": "urgent"})

        violations = exc_info.value.violations
        assert set(violations) == {"confidence", "priority"}
        assert len(exc_info.value.validation_errors) == 2

    def test_missing_type(self):
        """type is required."""
        with pytest.raises(SchemaValidationError) as exc_info:
            PydanticTaskValidator().validate({"parameters": {}})

        assert "type" in exc_info.value.violations


class TestPayloadToTask:
    """Tests for payload_to_task."""

    def test_builds_task(self):
        """Type, parameters, priority and confidence carry over."""
        payload = TaskPayload(
            type="Mining", parameters={"block": "coal_ore"}, confidence=0.7, priority="high"
        )

        task = payload_to_task(payload, "mine coal")

        assert task.type == TaskType.MINING
        assert task.parameters == {"block": "coal_ore"}
        assert task.priority == TaskPriority.HIGH
        assert task.confidence == 0.7
        assert task.metadata == {"command": "mine coal"}

    def test_unknown_type(self):
        """A type outside the enum is an invalid command."""
        with pytest.raises(InvalidCommandError):
            payload_to_task(TaskPayload(type="dance"), "dance for me")

    def test_ambiguous_with_preferred_candidate(self):
        """A preferred type among the candidates settles an ambiguous payload."""
        payload = TaskPayload(type="ambiguous", candidates=["exploration", "navigation"])

        task = payload_to_task(payload, "go to village", preferred_type="navigation")

        assert task.type == TaskType.NAVIGATION
        assert task.metadata["candidates"] == ["exploration"]

    def test_ambiguous_single_candidate(self):
        """A single candidate is taken as the type."""
        task = payload_to_task(TaskPayload(type="ambiguous", candidates=["gathering"]), "get wood")

        assert task.type == TaskType.GATHERING

    def test_ambiguous_unresolved(self):
        """Several candidates and no preference raise AmbiguousIntentError."""
        payload = TaskPayload(type="ambiguous", candidates=["exploration", "navigation"])

        with pytest.raises(AmbiguousIntentError):
            payload_to_task(payload, "go to village", preferred_type="mining")


class TestEnrichItemFilters:
    """Tests for enrich_item_filters."""

    def test_inventory_filter(self):
        """Item words, singular or plural, become an item_filter."""
        task = create_task(TaskType.INVENTORY, {"query_type": "items"})

        enrich_item_filters(task, "how many pickaxes and diamonds do I have?")

        assert task.parameters["item_filter"] == ["diamond", "pickaxe"]

    def test_whole_words_only(self):
        """Substrings of other words do not match."""
        task = create_task(TaskType.QUERY, {"query_type": "inventory"})

        enrich_item_filters(task, "show my stonework")

        assert "item_filter" not in task.parameters

    def test_other_types_untouched(self):
        """Only inventory and query tasks are enriched."""
        task = create_task(TaskType.MINING)

        enrich_item_filters(task, "mine stone")

        assert "item_filter" not in task.parameters


class TestBuildTaskPrompt:
    """Tests for prompt construction."""

    def test_includes_command_and_context(self, miner_context):
        """The prompt carries the command and a context summary."""
        prompt = build_task_prompt("mine iron ore", miner_context)

        assert 'Player command: "mine iron ore"' in prompt
        assert "iron_pickaxe x1" in prompt
        assert "Nearby blocks: iron_ore, stone" in prompt
        assert "- mining: Mine or dig blocks" in prompt
        assert STRICT_JSON_REMINDER not in prompt

    def test_empty_inventory_and_recent_tasks(self):
        """Empty inventories and recent tasks are summarized."""
        context = create_context(
            recent_tasks=(create_recent_task(TaskType.NAVIGATION, description="go home"),),
            known_landmarks=("village",),
        )

        prompt = build_task_prompt("go back", context)

        assert "- Inventory: empty" in prompt
        assert "Recent tasks: navigation (go home)" in prompt
        assert "Known landmarks: village" in prompt

    def test_hints_shape_prompt(self, context):
        """Recovery hints add guidance and the strict reminder."""
        hints = RecoveryHints(
            strict_json=True,
            extra_parameters={"block": "iron_ore"},
            preferred_type="mining",
        )

        prompt = build_task_prompt("mine it", context, hints=hints)

        assert "most likely means a mining task" in prompt
        assert "block=iron_ore" in prompt
        assert prompt.endswith(STRICT_JSON_REMINDER)

    def test_system_prompt_describes_ambiguity(self):
        """The system prompt documents the ambiguous response shape."""
        assert '"ambiguous"' in SYSTEM_PROMPT
        assert "candidates" in SYSTEM_PROMPT
