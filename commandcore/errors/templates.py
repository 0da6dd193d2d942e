"""User-facing message templates for parsing errors."""

import json
from dataclasses import dataclass, field
from typing import Any

from commandcore.errors.exceptions import ParsingErrorCategory


@dataclass(frozen=True)
class ErrorTemplate:
    """Rendering template for one error category.

    Attributes:
        title: Short heading shown in brackets.
        description: One-sentence explanation for the player.
        suggestions: Ordered remediation steps.
    """

    title: str
    description: str
    suggestions: tuple[str, ...] = field(default_factory=tuple)


ERROR_TEMPLATES: dict[ParsingErrorCategory, ErrorTemplate] = {
    ParsingErrorCategory.INVALID_COMMAND: ErrorTemplate(
        title="Command Not Recognized",
        description="I couldn't understand that command. Try rephrasing it.",
        suggestions=(
            "Check for typos or missing words",
            "Start with an action such as mine, craft, go to or farm",
            "Keep the command short and literal",
        ),
    ),
    ParsingErrorCategory.AMBIGUOUS_INTENT: ErrorTemplate(
        title="Unclear Command",
        description="That command could mean more than one thing.",
        suggestions=(
            "Say which action you want, for example 'explore' or 'travel'",
            "Name the exact block, item or place",
            "Reply with one of the offered options",
        ),
    ),
    ParsingErrorCategory.MISSING_PARAMETERS: ErrorTemplate(
        title="Missing Information",
        description="The command is missing details the task needs.",
        suggestions=(
            "Give a target block, item or destination",
            "Add a quantity where it matters",
            "Use coordinates as three numbers: x y z",
        ),
    ),
    ParsingErrorCategory.UNSUPPORTED_ACTION: ErrorTemplate(
        title="Action Not Supported",
        description="I can't perform that action.",
        suggestions=(
            "Ask for a supported task such as mining, crafting or navigation",
            "Split the request into simpler steps",
        ),
    ),
    ParsingErrorCategory.CONTEXT_MISMATCH: ErrorTemplate(
        title="Context Error",
        description="The command doesn't fit the bot's current situation.",
        suggestions=(
            "Check the bot's inventory and tools",
            "Move the bot closer to the target",
            "Try again once conditions have changed",
        ),
    ),
    ParsingErrorCategory.SERVICE_ERROR: ErrorTemplate(
        title="Service Error",
        description="The language service is unavailable. Please try again later.",
        suggestions=(
            "Wait a moment and retry",
            "Make sure the language model server is running",
        ),
    ),
    ParsingErrorCategory.RESPONSE_PARSING_ERROR: ErrorTemplate(
        title="Processing Error",
        description="I had trouble reading the interpreted command.",
        suggestions=(
            "Try the command again",
            "Rephrase it in simpler words",
        ),
    ),
    ParsingErrorCategory.SCHEMA_VALIDATION_ERROR: ErrorTemplate(
        title="Validation Error",
        description="The interpreted task did not pass validation.",
        suggestions=(
            "Check the values you gave, such as counts and coordinates",
            "Use the standard form of the command",
        ),
    ),
}


def _numbered(lines: list[str] | tuple[str, ...]) -> str:
    return "".join(f"{i}. {line}\n" for i, line in enumerate(lines, start=1))


def get_template(category: ParsingErrorCategory) -> ErrorTemplate:
    """Get the template for a category."""
    return ERROR_TEMPLATES[category]


def format_message(
    category: ParsingErrorCategory,
    command: str | None = None,
    validation_errors: list[str] | None = None,
) -> str:
    """Render the player-facing message for an error.

    Args:
        category: Error category to render.
        command: The command that failed, echoed at the end.
        validation_errors: Structured validation failures to list.

    Returns:
        Multi-line message: title, description, suggestions, then details.
    """
    template = get_template(category)
    message = f"[{template.title}] {template.description}\n"

    if template.suggestions:
        message += "\nSuggestions:\n" + _numbered(template.suggestions)

    if validation_errors:
        message += "\nValidation Errors:\n" + _numbered(validation_errors)

    if command:
        message += f"\nCommand: {command}\n"

    return message


def format_explanation(
    category: ParsingErrorCategory,
    severity: str,
    task: dict[str, Any] | None = None,
    validation_errors: list[str] | None = None,
) -> str:
    """Render a detailed explanation for logs and operators."""
    template = get_template(category)
    explanation = f"Error Type: {category.value}\n"
    explanation += f"Severity: {severity}\n"
    explanation += f"Title: {template.title}\n"
    explanation += f"Message: {template.description}\n"

    if task:
        explanation += "\nTask Details:\n"
        explanation += f"Type: {task.get('type', 'unknown')}\n"
        if task.get("parameters"):
            explanation += f"Parameters: {json.dumps(task['parameters'], indent=2, default=str)}\n"

    if validation_errors:
        explanation += "\nValidation Errors:\n" + _numbered(validation_errors)

    return explanation
