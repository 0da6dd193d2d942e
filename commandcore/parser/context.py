"""Game context snapshot consumed by the resolution pipeline.

A TaskContext is built once per parse by an external ContextProvider and is
never mutated by this package. Context factors are a closed enum; every
member has a typed evaluator and a weight.
"""

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, ClassVar, Mapping, Protocol, runtime_checkable

from commandcore.parser.task_types import TaskType


# Minecraft time of day in ticks (0-24000); night starts at dusk
NIGHT_START_TICKS = 13000

CROP_BLOCKS = frozenset({"wheat", "carrots", "potatoes", "beetroots", "farmland", "melon", "pumpkin"})


@dataclass(frozen=True)
class Position:
    """Block coordinates."""

    x: float = 0.0
    y: float = 0.0
    z: float = 0.0

    @property
    def magnitude(self) -> float:
        return math.sqrt(self.x ** 2 + self.y ** 2 + self.z ** 2)


@dataclass(frozen=True)
class InventoryItem:
    """A stack of items in the bot inventory."""

    name: str
    count: int = 1


@dataclass(frozen=True)
class InventorySnapshot:
    """Inventory state with the predicates the scorers rely on.

    Attributes:
        items: Occupied stacks.
        capacity: Number of slots.
    """

    items: tuple[InventoryItem, ...] = ()
    capacity: int = 36

    def __post_init__(self) -> None:
        if not isinstance(self.items, tuple):
            object.__setattr__(self, "items", tuple(self.items))

    @property
    def used_slots(self) -> int:
        return len(self.items)

    def has_item(self, fragment: str) -> bool:
        """True if any stack name contains the fragment."""
        return any(fragment in item.name for item in self.items)

    def count(self, fragment: str) -> int:
        return sum(item.count for item in self.items if fragment in item.name)

    def has_tool(self, tool: str) -> bool:
        """True for any tier of the tool (wooden_pickaxe, iron_pickaxe, ...)."""
        return any(item.name == tool or item.name.endswith(f"_{tool}") for item in self.items)

    def has_materials(self, materials: tuple[str, ...] = ("planks", "stick")) -> bool:
        """True if every material is present."""
        return all(self.has_item(material) for material in materials)

    def has_space(self) -> bool:
        return self.used_slots < self.capacity

    def is_nearly_full(self, threshold: float = 0.9) -> bool:
        return self.used_slots >= self.capacity * threshold


@dataclass(frozen=True)
class NearbyBlock:
    """A block in view of the bot."""

    name: str
    position: Position | None = None
    distance: float = 0.0


@dataclass(frozen=True)
class PathfindingState:
    """Pathfinding feasibility flags."""

    path_clear: bool = True
    safe_route: bool = True
    known_landmarks: frozenset[str] = frozenset()


@dataclass(frozen=True)
class RecentTask:
    """A task the bot ran recently."""

    type: TaskType
    description: str = ""
    success: bool | None = None
    timestamp: float = 0.0


@dataclass(frozen=True)
class TaskContext:
    """Read-only snapshot of the bot's situation for one parse.

    Attributes:
        inventory: Inventory snapshot.
        position: Current position.
        nearby_blocks: Blocks in range.
        nearby_entities: Entity names in range.
        time_of_day: World time in ticks.
        health: Health points (0-20).
        food: Hunger points (0-20).
        pathfinding: Pathfinding flags.
        recent_tasks: Recent tasks, oldest first, bounded.
        plugin_context: Opaque values supplied by plugins.
    """

    MAX_RECENT_TASKS: ClassVar[int] = 10

    inventory: InventorySnapshot = field(default_factory=InventorySnapshot)
    position: Position = field(default_factory=Position)
    nearby_blocks: tuple[NearbyBlock, ...] = ()
    nearby_entities: tuple[str, ...] = ()
    time_of_day: int = 0
    health: float = 20.0
    food: float = 20.0
    pathfinding: PathfindingState = field(default_factory=PathfindingState)
    recent_tasks: tuple[RecentTask, ...] = ()
    plugin_context: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "nearby_blocks", tuple(self.nearby_blocks))
        object.__setattr__(self, "nearby_entities", tuple(self.nearby_entities))
        object.__setattr__(self, "recent_tasks", tuple(self.recent_tasks)[-self.MAX_RECENT_TASKS:])

    @property
    def is_night(self) -> bool:
        return self.time_of_day > NIGHT_START_TICKS

    def is_near(self, predicate: Callable[[str], bool]) -> bool:
        """True if any nearby block name satisfies the predicate."""
        return any(predicate(block.name) for block in self.nearby_blocks)

    def snapshot(self) -> dict[str, float]:
        """Numeric factors recorded alongside historical patterns."""
        return {
            "time_of_day": float(self.time_of_day),
            "position": self.position.magnitude,
            "inventory_size": float(self.inventory.used_slots),
            "health": float(self.health),
            "food": float(self.food),
        }


@runtime_checkable
class ContextProvider(Protocol):
    """Supplies a fresh TaskContext for a player."""

    def get_context(self, player_id: str | None = None) -> TaskContext:
        ...


# =============================================================================
# Context factors
# =============================================================================


class ContextFactor(str, Enum):
    """Named, evaluable facts about a TaskContext."""

    HAS_PICKAXE = "has_pickaxe"
    NEAR_ORE = "near_ore"
    INVENTORY_SPACE = "inventory_space"
    HAS_MATERIALS = "has_materials"
    HAS_CRAFTING_TABLE = "has_crafting_table"
    HAS_WOOD = "has_wood"
    PATH_CLEAR = "path_clear"
    SAFE_ROUTE = "safe_route"
    LANDMARK_KNOWN = "landmark_known"
    NEAR_TREE = "near_tree"
    NEAR_CROPS = "near_crops"
    HAS_SEEDS = "has_seeds"


# Evaluators receive the context and the lower-cased command text
FactorEvaluator = Callable[[TaskContext, str], bool]


def _is_ore(name: str) -> bool:
    return name.endswith("_ore") or name == "ancient_debris"


def _is_tree(name: str) -> bool:
    return name.endswith("_log") or name.endswith("_leaves")


def _landmark_known(context: TaskContext, command: str) -> bool:
    landmarks = context.pathfinding.known_landmarks
    if not landmarks:
        return False
    return any(landmark.lower() in command for landmark in landmarks)


FACTOR_EVALUATORS: dict[ContextFactor, FactorEvaluator] = {
    ContextFactor.HAS_PICKAXE: lambda ctx, _: ctx.inventory.has_tool("pickaxe"),
    ContextFactor.NEAR_ORE: lambda ctx, _: ctx.is_near(_is_ore),
    ContextFactor.INVENTORY_SPACE: lambda ctx, _: ctx.inventory.has_space(),
    ContextFactor.HAS_MATERIALS: lambda ctx, _: ctx.inventory.has_materials(),
    ContextFactor.HAS_CRAFTING_TABLE: lambda ctx, _: (
        ctx.inventory.has_item("crafting_table") or ctx.is_near(lambda n: n == "crafting_table")
    ),
    ContextFactor.HAS_WOOD: lambda ctx, _: ctx.inventory.has_item("_log") or ctx.inventory.has_item("planks"),
    ContextFactor.PATH_CLEAR: lambda ctx, _: ctx.pathfinding.path_clear,
    ContextFactor.SAFE_ROUTE: lambda ctx, _: ctx.pathfinding.safe_route,
    ContextFactor.LANDMARK_KNOWN: _landmark_known,
    ContextFactor.NEAR_TREE: lambda ctx, _: ctx.is_near(_is_tree),
    ContextFactor.NEAR_CROPS: lambda ctx, _: ctx.is_near(lambda n: n in CROP_BLOCKS),
    ContextFactor.HAS_SEEDS: lambda ctx, _: ctx.inventory.has_item("seeds"),
}

FACTOR_WEIGHTS: dict[ContextFactor, float] = {
    ContextFactor.HAS_PICKAXE: 0.3,
    ContextFactor.NEAR_ORE: 0.2,
    ContextFactor.INVENTORY_SPACE: 0.1,
    ContextFactor.HAS_MATERIALS: 0.3,
    ContextFactor.HAS_CRAFTING_TABLE: 0.2,
    ContextFactor.HAS_WOOD: 0.2,
    ContextFactor.PATH_CLEAR: 0.3,
    ContextFactor.SAFE_ROUTE: 0.3,
    ContextFactor.LANDMARK_KNOWN: 0.2,
    ContextFactor.NEAR_TREE: 0.2,
    ContextFactor.NEAR_CROPS: 0.2,
    ContextFactor.HAS_SEEDS: 0.2,
}


def evaluate_factor(factor: ContextFactor, context: TaskContext, command: str = "") -> bool:
    """Evaluate one context factor.

    Args:
        factor: Factor to evaluate.
        context: Context snapshot.
        command: Command text, used by command-dependent factors.

    Returns:
        Whether the factor holds.
    """
    return FACTOR_EVALUATORS[factor](context, command.lower())
