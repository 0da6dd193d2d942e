"""Oracle prompts for turning player commands into task JSON."""

from commandcore.errors.exceptions import RecoveryHints
from commandcore.parser.context import TaskContext
from commandcore.parser.hierarchy import TYPE_HIERARCHY

MAX_LISTED_BLOCKS = 8

SYSTEM_PROMPT = """You are the command interpreter for a Minecraft bot.
Your job is to turn a player's chat command into exactly one task the bot can run.

Respond with a single JSON object and nothing else:
{
  "type": "<task type>",
  "parameters": { ... },
  "confidence": <number between 0 and 1>,
  "priority": "high" | "medium" | "low"
}

Guidelines:
1. Pick the task type that best matches what the player wants done
2. Use snake_case parameter names and Minecraft ids (iron_ore, oak_log, stone_pickaxe)
3. Use the bot context to fill in details the player left implicit
4. Coordinates go in "destination" as {"x": ..., "y": ..., "z": ...}; named places go in "landmark"
5. Put a short human-readable summary in parameters.description

If the command could reasonably mean more than one task, set "type" to "ambiguous"
and list the plausible task types in "candidates", most likely first.

Parameters by task type:
- mining: block, quantity, tool, sub_type (strip_mining: direction, length | branch_mining: pattern, spacing)
- crafting: item, quantity, materials, sub_type (tool_crafting: tool_type, material | block_crafting: block_type)
- navigation: destination or landmark, path, sub_type (return_home: home_location)
- exploration: area ({"radius": n}) or landmark, strategy
- gathering: resource, quantity
- farming: crop, action (plant, harvest, till, replant), quantity
- inventory: query_type (items, equipment, materials), sub_type (item_query: item_type | equipment_query: equipment_type)
- query: query_type (inventory, position, status, health, time, surroundings)
- combat: target
- interaction: target
- healing: (no parameters)
- chat: message
"""

STRICT_JSON_REMINDER = (
    "Your previous answer could not be used. Return ONLY the JSON object: "
    "no prose, no markdown fences, no comments."
)


def _task_type_lines() -> list[str]:
    return [
        f"- {task_type.value}: {definition.description}"
        for task_type, definition in TYPE_HIERARCHY.items()
    ]


def _context_lines(context: TaskContext) -> list[str]:
    parts = ["Bot Context:"]

    position = context.position
    parts.append(f"- Position: {position.x:.0f}, {position.y:.0f}, {position.z:.0f}")
    parts.append(f"- Health: {context.health:.0f}/20, Food: {context.food:.0f}/20")
    parts.append(f"- Time: {'night' if context.is_night else 'day'} ({context.time_of_day} ticks)")

    if context.inventory.items:
        items = ", ".join(f"{item.name} x{item.count}" for item in context.inventory.items)
        parts.append(f"- Inventory ({context.inventory.used_slots}/{context.inventory.capacity}): {items}")
    else:
        parts.append("- Inventory: empty")

    if context.nearby_blocks:
        nearest = sorted(context.nearby_blocks, key=lambda b: b.distance)[:MAX_LISTED_BLOCKS]
        parts.append(f"- Nearby blocks: {', '.join(block.name for block in nearest)}")

    if context.nearby_entities:
        parts.append(f"- Nearby entities: {', '.join(context.nearby_entities)}")

    if context.pathfinding.known_landmarks:
        parts.append(f"- Known landmarks: {', '.join(sorted(context.pathfinding.known_landmarks))}")

    if context.recent_tasks:
        recent = ", ".join(
            f"{task.type.value} ({task.description})" if task.description else task.type.value
            for task in context.recent_tasks[-3:]
        )
        parts.append(f"- Recent tasks: {recent}")

    return parts


def build_task_prompt(
    command: str,
    context: TaskContext,
    strict: bool = False,
    hints: RecoveryHints | None = None,
) -> str:
    """Build the user prompt for one command.

    Args:
        command: Player command, already rephrased if a hint asked for it.
        context: Context snapshot.
        strict: Append the strict JSON reminder.
        hints: Recovery hints from a previous failed attempt.

    Returns:
        Prompt text.
    """
    parts = [f'Player command: "{command}"', ""]
    parts.extend(_context_lines(context))
    parts.append("")
    parts.append("Task types:")
    parts.extend(_task_type_lines())

    if hints is not None:
        if hints.preferred_type:
            parts.append("")
            parts.append(f"The player most likely means a {hints.preferred_type} task.")
        if hints.extra_parameters:
            known = ", ".join(f"{key}={value}" for key, value in hints.extra_parameters.items())
            parts.append("")
            parts.append(f"Use these parameters unless the command says otherwise: {known}")

    parts.append("")
    parts.append("Return the task JSON.")
    if strict or (hints is not None and hints.strict_json):
        parts.append(STRICT_JSON_REMINDER)

    return "\n".join(parts)
