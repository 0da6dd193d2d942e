"""Task type hierarchy, parameter rules and fallback chains.

Each TypeDefinition names the parameter rules a task of that type must pass,
its optional sub-types, and an ordered fallback chain of alternative types
gated by context factors.
"""

import re
from dataclasses import dataclass, field
from typing import Any, Callable, Literal

from commandcore.parser.context import ContextFactor, TaskContext, evaluate_factor
from commandcore.parser.task_types import TaskType


@dataclass
class ValidationResult:
    """Result of validation check(s)."""

    is_valid: bool = True
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def add_error(self, error: str) -> None:
        """Add an error and mark invalid."""
        self.errors.append(error)
        self.is_valid = False

    def add_warning(self, warning: str) -> None:
        """Add a warning (does not invalidate)."""
        self.warnings.append(warning)

    def merge(self, other: "ValidationResult") -> None:
        """Merge another result into this one."""
        if not other.is_valid:
            self.is_valid = False
        self.errors.extend(other.errors)
        self.warnings.extend(other.warnings)


# =============================================================================
# Parameter rules
# =============================================================================

ParameterRule = Callable[[dict[str, Any]], bool]

DIRECTIONS = {"north", "south", "east", "west"}
MINING_PATTERNS = {"straight", "zigzag", "spiral"}
TOOL_TYPES = {"pickaxe", "axe", "shovel", "hoe", "sword"}
TOOL_MATERIALS = {"wood", "wooden", "stone", "iron", "gold", "golden", "diamond", "netherite"}
EXPLORATION_STRATEGIES = {"random", "spiral", "grid"}
INVENTORY_QUERY_TYPES = {"items", "equipment", "materials"}
EQUIPMENT_TYPES = {"armor", "tools", "weapons"}
QUERY_SUBJECTS = {"inventory", "position", "status", "health", "time", "surroundings"}
FARMING_ACTIONS = {"plant", "harvest", "till", "replant"}


def _non_empty_str(value: Any) -> bool:
    return isinstance(value, str) and len(value.strip()) > 0


def _positive_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and value > 0


def _is_coordinates(value: Any) -> bool:
    return isinstance(value, dict) and all(
        isinstance(value.get(axis), (int, float)) and not isinstance(value.get(axis), bool)
        for axis in ("x", "y", "z")
    )


def _optional(key: str, check: Callable[[Any], bool]) -> ParameterRule:
    """Rule that passes when the key is absent and checks it otherwise."""
    return lambda params: key not in params or params[key] is None or check(params[key])


PARAMETER_RULES: dict[str, ParameterRule] = {
    "has_valid_block": lambda p: _non_empty_str(p.get("block")),
    "has_valid_quantity": _optional("quantity", lambda v: _positive_number(v) and float(v).is_integer()),
    "has_valid_tool": _optional("tool", _non_empty_str),
    "has_valid_direction": lambda p: p.get("direction") in DIRECTIONS,
    "has_valid_length": lambda p: _positive_number(p.get("length")),
    "has_valid_pattern": lambda p: p.get("pattern") in MINING_PATTERNS,
    "has_valid_spacing": lambda p: _positive_number(p.get("spacing")) and p["spacing"] >= 2,
    "has_valid_item": lambda p: _non_empty_str(p.get("item")),
    "has_valid_materials": _optional(
        "materials", lambda v: isinstance(v, list) and len(v) > 0 and all(_non_empty_str(m) for m in v)
    ),
    "has_valid_tool_type": lambda p: p.get("tool_type") in TOOL_TYPES,
    "has_valid_material": lambda p: p.get("material") in TOOL_MATERIALS,
    "has_valid_block_type": lambda p: _non_empty_str(p.get("block_type")),
    "has_valid_destination": lambda p: _is_coordinates(p.get("destination")) or _non_empty_str(p.get("landmark")),
    "has_valid_path": _optional("path", lambda v: isinstance(v, list) and len(v) > 0),
    "has_valid_home_location": lambda p: _is_coordinates(p.get("home_location")),
    "has_valid_area": lambda p: (
        (isinstance(p.get("area"), dict) and _positive_number(p["area"].get("radius")))
        or _non_empty_str(p.get("landmark"))
    ),
    "has_valid_strategy": _optional("strategy", lambda v: v in EXPLORATION_STRATEGIES),
    "has_valid_resource": lambda p: _non_empty_str(p.get("resource")),
    "has_valid_crop": lambda p: _non_empty_str(p.get("crop")),
    "has_valid_farming_action": _optional("action", lambda v: v in FARMING_ACTIONS),
    "has_valid_query_type": lambda p: p.get("query_type") in INVENTORY_QUERY_TYPES,
    "has_valid_item_type": lambda p: _non_empty_str(p.get("item_type")),
    "has_valid_equipment_type": lambda p: p.get("equipment_type") in EQUIPMENT_TYPES,
    "has_valid_query_subject": lambda p: p.get("query_type") in QUERY_SUBJECTS,
    "has_valid_target": lambda p: _non_empty_str(p.get("target")),
    "has_valid_message": lambda p: _non_empty_str(p.get("message")),
}


# =============================================================================
# Definitions
# =============================================================================


@dataclass(frozen=True)
class SubTypeDefinition:
    """Refinement of a task type with extra rules."""

    name: str
    description: str
    priority: int
    validation_rules: tuple[str, ...] = ()


@dataclass(frozen=True)
class FallbackRule:
    """Candidate alternative type for a fallback chain.

    Attributes:
        type: Alternative task type.
        conditions: Ordered (factor, expected value) checks; all must hold.
        priority: Lower numbers are tried first.
    """

    type: TaskType
    conditions: tuple[tuple[ContextFactor, bool], ...]
    priority: int = 1

    def applies(self, context: TaskContext, command: str = "") -> bool:
        """True if every condition holds, evaluated in order."""
        return all(
            evaluate_factor(factor, context, command) == expected
            for factor, expected in self.conditions
        )


@dataclass(frozen=True)
class TypeDefinition:
    """A node of the task type hierarchy."""

    name: TaskType
    description: str
    category: Literal["action", "query", "management", "social"]
    priority: int
    validation_rules: tuple[str, ...] = ()
    sub_types: dict[str, SubTypeDefinition] = field(default_factory=dict)
    fallbacks: tuple[FallbackRule, ...] = ()
    keywords: tuple[str, ...] = ()


TYPE_HIERARCHY: dict[TaskType, TypeDefinition] = {
    TaskType.MINING: TypeDefinition(
        name=TaskType.MINING,
        description="Mine or dig blocks",
        category="action",
        priority=80,
        validation_rules=("has_valid_block", "has_valid_quantity", "has_valid_tool"),
        sub_types={
            "strip_mining": SubTypeDefinition(
                "strip_mining", "Mine in a straight line", 85,
                ("has_valid_direction", "has_valid_length"),
            ),
            "branch_mining": SubTypeDefinition(
                "branch_mining", "Mine in a branching pattern", 85,
                ("has_valid_pattern", "has_valid_spacing"),
            ),
        },
        fallbacks=(
            FallbackRule(TaskType.CRAFTING, ((ContextFactor.HAS_PICKAXE, False), (ContextFactor.HAS_WOOD, True)), 1),
            FallbackRule(TaskType.GATHERING, ((ContextFactor.NEAR_ORE, False), (ContextFactor.NEAR_TREE, True)), 2),
        ),
        keywords=("mine", "dig", "ore", "excavate", "tunnel"),
    ),
    TaskType.CRAFTING: TypeDefinition(
        name=TaskType.CRAFTING,
        description="Craft items",
        category="action",
        priority=70,
        validation_rules=("has_valid_item", "has_valid_quantity", "has_valid_materials"),
        sub_types={
            "tool_crafting": SubTypeDefinition(
                "tool_crafting", "Craft tools", 75,
                ("has_valid_tool_type", "has_valid_material"),
            ),
            "block_crafting": SubTypeDefinition(
                "block_crafting", "Craft blocks", 70,
                ("has_valid_block_type", "has_valid_quantity"),
            ),
        },
        fallbacks=(
            FallbackRule(TaskType.GATHERING, ((ContextFactor.HAS_MATERIALS, False), (ContextFactor.NEAR_TREE, True)), 1),
        ),
        keywords=("craft", "make", "build", "recipe"),
    ),
    TaskType.NAVIGATION: TypeDefinition(
        name=TaskType.NAVIGATION,
        description="Move to locations",
        category="action",
        priority=60,
        validation_rules=("has_valid_destination", "has_valid_path"),
        sub_types={
            "return_home": SubTypeDefinition(
                "return_home", "Return to home location", 70,
                ("has_valid_home_location",),
            ),
        },
        fallbacks=(
            FallbackRule(TaskType.EXPLORATION, ((ContextFactor.LANDMARK_KNOWN, False), (ContextFactor.SAFE_ROUTE, True)), 1),
        ),
        keywords=("go", "goto", "travel", "walk", "move", "come", "navigate", "coordinates"),
    ),
    TaskType.EXPLORATION: TypeDefinition(
        name=TaskType.EXPLORATION,
        description="Explore and search unknown areas",
        category="action",
        priority=65,
        validation_rules=("has_valid_area", "has_valid_strategy"),
        fallbacks=(
            FallbackRule(TaskType.NAVIGATION, ((ContextFactor.LANDMARK_KNOWN, True), (ContextFactor.PATH_CLEAR, True)), 1),
        ),
        keywords=("explore", "scout", "search", "find", "discover", "locate"),
    ),
    TaskType.GATHERING: TypeDefinition(
        name=TaskType.GATHERING,
        description="Gather wood and loose resources",
        category="action",
        priority=60,
        validation_rules=("has_valid_resource", "has_valid_quantity"),
        fallbacks=(
            FallbackRule(TaskType.MINING, ((ContextFactor.HAS_PICKAXE, True), (ContextFactor.NEAR_ORE, True)), 1),
        ),
        keywords=("gather", "chop", "collect", "harvest", "wood", "logs"),
    ),
    TaskType.FARMING: TypeDefinition(
        name=TaskType.FARMING,
        description="Plant and harvest crops",
        category="action",
        priority=55,
        validation_rules=("has_valid_crop", "has_valid_farming_action"),
        fallbacks=(
            FallbackRule(TaskType.GATHERING, ((ContextFactor.NEAR_CROPS, False), (ContextFactor.NEAR_TREE, True)), 1),
        ),
        keywords=("farm", "plant", "sow", "till", "crops", "wheat", "seeds"),
    ),
    TaskType.INVENTORY: TypeDefinition(
        name=TaskType.INVENTORY,
        description="Query inventory state",
        category="query",
        priority=50,
        validation_rules=("has_valid_query_type",),
        sub_types={
            "item_query": SubTypeDefinition("item_query", "Query specific items", 55, ("has_valid_item_type",)),
            "equipment_query": SubTypeDefinition(
                "equipment_query", "Query equipment state", 55, ("has_valid_equipment_type",),
            ),
        },
        keywords=("inventory", "carrying", "holding", "equipment"),
    ),
    TaskType.QUERY: TypeDefinition(
        name=TaskType.QUERY,
        description="Answer questions about the bot",
        category="query",
        priority=45,
        validation_rules=("has_valid_query_subject",),
        keywords=("what", "where", "how", "status", "tell", "show"),
    ),
    TaskType.COMBAT: TypeDefinition(
        name=TaskType.COMBAT,
        description="Fight hostile mobs",
        category="action",
        priority=90,
        validation_rules=("has_valid_target",),
        keywords=("attack", "fight", "kill", "defend", "hunt"),
    ),
    TaskType.INTERACTION: TypeDefinition(
        name=TaskType.INTERACTION,
        description="Use or interact with blocks and entities",
        category="action",
        priority=50,
        validation_rules=("has_valid_target",),
        keywords=("use", "open", "interact", "trade", "press"),
    ),
    TaskType.HEALING: TypeDefinition(
        name=TaskType.HEALING,
        description="Eat or heal",
        category="management",
        priority=85,
        keywords=("heal", "eat", "food", "hungry", "regenerate"),
    ),
    TaskType.CHAT: TypeDefinition(
        name=TaskType.CHAT,
        description="Say something in chat",
        category="social",
        priority=20,
        validation_rules=("has_valid_message",),
        keywords=("say", "chat", "greet", "reply"),
    ),
}

# Words that never discriminate between task types
STOPWORDS = {
    "a", "an", "the", "to", "of", "and", "or", "in", "on", "at", "for", "with",
    "some", "me", "my", "you", "your", "it", "is", "are", "be", "please", "bot",
}


def get_type_definition(
    task_type: TaskType,
    hierarchy: dict[TaskType, TypeDefinition] | None = None,
) -> TypeDefinition | None:
    return (hierarchy or TYPE_HIERARCHY).get(task_type)


def tokenize(text: str) -> list[str]:
    """Lower-cased word tokens with stopwords removed."""
    return [w for w in re.findall(r"[a-z]+", text.lower()) if w not in STOPWORDS]


def definition_keywords(definition: TypeDefinition) -> set[str]:
    """All keywords derived from a definition.

    Includes the type name, description words, rule names without the
    ``has_valid_`` prefix, sub-type names and explicit keywords.
    """
    words: set[str] = set(tokenize(definition.name.value))
    words.update(tokenize(definition.description))
    for rule in definition.validation_rules:
        words.update(tokenize(rule.removeprefix("has_valid_")))
    for sub_name in definition.sub_types:
        words.update(tokenize(sub_name))
    words.update(definition.keywords)
    return words


def build_keyword_index(hierarchy: dict[TaskType, TypeDefinition] | None = None) -> dict[str, TaskType]:
    """Map each keyword unique to a single type onto that type.

    Keywords shared by several definitions cannot discriminate and are
    dropped.
    """
    owners: dict[str, set[TaskType]] = {}
    for definition in (hierarchy or TYPE_HIERARCHY).values():
        for word in definition_keywords(definition):
            owners.setdefault(word, set()).add(definition.name)
    return {word: next(iter(types)) for word, types in owners.items() if len(types) == 1}


def validate_task_type(
    task_type: TaskType,
    parameters: dict[str, Any],
    hierarchy: dict[TaskType, TypeDefinition] | None = None,
) -> ValidationResult:
    """Check parameters against a type's rules.

    Args:
        task_type: Type to validate.
        parameters: Task parameters.
        hierarchy: Definitions to use (defaults to TYPE_HIERARCHY).

    Returns:
        ValidationResult listing each failed rule.
    """
    result = ValidationResult()
    definition = get_type_definition(task_type, hierarchy)
    if definition is None:
        result.add_error(f"Invalid task type: {task_type.value}")
        return result

    for rule in definition.validation_rules:
        if not PARAMETER_RULES[rule](parameters):
            result.add_error(f"Failed validation rule: {rule}")
    return result


def validate_sub_type(
    task_type: TaskType,
    sub_type: str,
    parameters: dict[str, Any],
    hierarchy: dict[TaskType, TypeDefinition] | None = None,
) -> ValidationResult:
    """Check parameters against a sub-type's rules."""
    result = ValidationResult()
    definition = get_type_definition(task_type, hierarchy)
    sub_definition = definition.sub_types.get(sub_type) if definition else None
    if sub_definition is None:
        result.add_error(f"Invalid sub-type: {sub_type} for type: {task_type.value}")
        return result

    for rule in sub_definition.validation_rules:
        validator = PARAMETER_RULES.get(rule)
        if validator is None or not validator(parameters):
            result.add_error(f"Failed validation rule: {rule}")
    return result
