"""Tests for TaskTypeResolver."""

import pytest

from commandcore.errors.exceptions import MissingParametersError, UnsupportedActionError
from commandcore.parser.task_types import TaskType
from commandcore.parser.type_resolver import TaskTypeResolver
from tests.factories import create_context, create_recent_task, create_task


class TestResolve:
    """Tests for resolve."""

    def test_valid_task_unchanged(self, context):
        """A valid task keeps its type and gets no resolution steps."""
        task = create_task(TaskType.MINING, command="mine iron ore")

        resolved = TaskTypeResolver().resolve(task, context)

        assert resolved.type == TaskType.MINING
        assert "resolution" not in resolved.metadata
        assert resolved is not task

    def test_keyword_override(self, context):
        """Hierarchy keywords replace a declared type they contradict."""
        task = create_task(TaskType.CRAFTING, {"block": "iron_ore"}, command="mine iron ore")

        resolved = TaskTypeResolver().resolve(task, context)

        assert resolved.type == TaskType.MINING
        assert resolved.metadata["resolution"] == ["override:crafting->mining"]
        assert task.type == TaskType.CRAFTING

    def test_recent_task_override(self):
        """A near-identical recent command lends its type."""
        context = create_context(
            recent_tasks=(create_recent_task(TaskType.NAVIGATION, description="go to village"),)
        )
        task = create_task(TaskType.EXPLORATION, {"landmark": "village"}, command="go to village")

        resolved = TaskTypeResolver().resolve(task, context)

        assert resolved.type == TaskType.NAVIGATION

    def test_overrides_can_be_disabled(self):
        """An explicitly chosen type is not overridden."""
        context = create_context(
            recent_tasks=(create_recent_task(TaskType.NAVIGATION, description="go to village"),)
        )
        task = create_task(TaskType.EXPLORATION, {"landmark": "village"}, command="go to village")

        resolved = TaskTypeResolver().resolve(task, context, allow_overrides=False)

        assert resolved.type == TaskType.EXPLORATION

    def test_keyword_override_needs_valid_parameters(self, context):
        """A valid task is not retyped into a type its parameters fail."""
        task = create_task(
            TaskType.INVENTORY,
            {"query_type": "items", "item_type": "wood"},
            command="how much wood do I have",
        )

        resolved = TaskTypeResolver().resolve(task, context)

        assert resolved.type == TaskType.INVENTORY
        assert resolved.parameters["item_type"] == "wood"
        assert "resolution" not in resolved.metadata

    def test_recent_task_override_needs_valid_parameters(self):
        """A similar recent command cannot force parameters onto the wrong type."""
        context = create_context(
            recent_tasks=(create_recent_task(TaskType.GATHERING, description="get some oak"),)
        )
        task = create_task(TaskType.CRAFTING, {"item": "oak_planks"}, command="get some oak")

        resolved = TaskTypeResolver().resolve(task, context)

        assert resolved.type == TaskType.CRAFTING

    def test_invalid_type_falls_back_by_keyword(self, context):
        """A type failing its rules falls back to the best other keyword match."""
        task = create_task(TaskType.QUERY, {"query_type": "items"}, command="show inventory")

        resolved = TaskTypeResolver().resolve(task, context)

        assert resolved.type == TaskType.INVENTORY
        assert resolved.metadata["resolution"] == ["fallback:query->inventory"]

    def test_invalid_type_falls_back_to_default(self, context):
        """Without keyword matches the default type is used."""
        task = create_task(TaskType.QUERY, {"query_type": "items"}, command="hmm")

        resolved = TaskTypeResolver().resolve(task, context)

        assert resolved.type == TaskType.INVENTORY

    def test_invalid_sub_type_stripped(self, context):
        """A sub-type failing its rules is removed; the type stays."""
        task = create_task(
            TaskType.MINING,
            {"block": "stone", "sub_type": "strip_mining"},
            command="mine stone",
        )

        resolved = TaskTypeResolver().resolve(task, context)

        assert resolved.type == TaskType.MINING
        assert resolved.sub_type is None
        assert resolved.metadata["resolution"] == ["strip_sub_type:strip_mining"]

    def test_valid_sub_type_kept(self, context):
        """A sub-type passing its rules survives resolution."""
        task = create_task(
            TaskType.MINING,
            {"block": "stone", "sub_type": "strip_mining", "direction": "north", "length": 20},
            command="mine stone",
        )

        resolved = TaskTypeResolver().resolve(task, context)

        assert resolved.sub_type == "strip_mining"

    def test_missing_parameters_raise(self, context):
        """A final type failing its rules raises with the failed rules."""
        task = create_task(TaskType.MINING, {}, command="mine")

        with pytest.raises(MissingParametersError) as exc_info:
            TaskTypeResolver().resolve(task, context)

        assert exc_info.value.validation_errors

    def test_disabled_type_refused(self, context):
        """A valid task of a disabled type is unsupported."""
        task = create_task(TaskType.COMBAT, {"target": "zombie"}, command="attack the zombie")

        with pytest.raises(UnsupportedActionError):
            TaskTypeResolver(disabled_types=[TaskType.COMBAT]).resolve(task, context)

    def test_other_types_unaffected_by_disabled(self, context):
        task = create_task(TaskType.MINING, command="mine iron ore")

        resolved = TaskTypeResolver(disabled_types=[TaskType.COMBAT]).resolve(task, context)

        assert resolved.type == TaskType.MINING


class TestKeywords:
    """Tests for keyword matching."""

    def test_counts_discriminating_keywords(self):
        """Each unique keyword counts once toward its type."""
        assert TaskTypeResolver().keyword_matches("mine iron ore") == {TaskType.MINING: 2}

    def test_shared_keywords_ignored(self):
        """Keywords owned by several types never match."""
        assert TaskTypeResolver().keyword_matches("quantity") == {}

    def test_fallback_excludes_declared_type(self):
        """determine_fallback_type never returns the excluded type."""
        resolver = TaskTypeResolver()

        assert resolver.determine_fallback_type("mine", exclude=TaskType.MINING) == TaskType.INVENTORY
        assert resolver.determine_fallback_type("mine") == TaskType.MINING


class TestCheckParameters:
    """Tests for the non-raising check."""

    def test_merges_sub_type_errors(self):
        """Sub-type rule failures are reported alongside type failures."""
        task = create_task(TaskType.MINING, {"sub_type": "branch_mining"})

        result = TaskTypeResolver().check_parameters(task)

        assert result.is_valid is False
        assert "Failed validation rule: has_valid_block" in result.errors
        assert "Failed validation rule: has_valid_pattern" in result.errors
