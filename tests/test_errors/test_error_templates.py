"""Tests for error message templates."""

from commandcore.errors.exceptions import ParsingErrorCategory
from commandcore.errors.templates import (
    ERROR_TEMPLATES,
    format_explanation,
    format_message,
    get_template,
)


class TestTemplates:
    """Tests for the template table."""

    def test_every_category_has_template(self):
        """All categories render."""
        assert set(ERROR_TEMPLATES) == set(ParsingErrorCategory)

    def test_templates_have_suggestions(self):
        """Every template offers at least one remediation step."""
        for template in ERROR_TEMPLATES.values():
            assert template.suggestions


class TestFormatMessage:
    """Tests for format_message."""

    def test_title_description_and_numbered_suggestions(self):
        """The message leads with the title and numbers the suggestions."""
        message = format_message(ParsingErrorCategory.SERVICE_ERROR)

        assert message.startswith("[Service Error] The language service is unavailable.")
        assert "\nSuggestions:\n1. Wait a moment and retry\n2. " in message
        assert "Command:" not in message

    def test_validation_errors_and_command(self):
        """Validation errors are listed and the command is echoed last."""
        message = format_message(
            ParsingErrorCategory.MISSING_PARAMETERS,
            command="mine",
            validation_errors=["Failed validation rule: has_valid_block"],
        )

        assert "Validation Errors:\n1. Failed validation rule: has_valid_block\n" in message
        assert message.endswith("Command: mine\n")


class TestFormatExplanation:
    """Tests for format_explanation."""

    def test_includes_task_details(self):
        """Task type and parameters appear in the explanation."""
        explanation = format_explanation(
            ParsingErrorCategory.SCHEMA_VALIDATION_ERROR,
            severity="high",
            task={"type": "mining", "parameters": {"block": "stone"}},
        )

        assert explanation.startswith("Error Type: schema_validation_error\nSeverity: high\n")
        assert f"Title: {get_template(ParsingErrorCategory.SCHEMA_VALIDATION_ERROR).title}" in explanation
        assert "Type: mining" in explanation
        assert '"block": "stone"' in explanation

    def test_without_task(self):
        """No task section is rendered without a task."""
        explanation = format_explanation(ParsingErrorCategory.INVALID_COMMAND, severity="medium")

        assert "Task Details" not in explanation
