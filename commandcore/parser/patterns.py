"""Ambiguity patterns for command interpretation.

Each pattern is a regex over the lower-cased command that, when it fires,
proposes a task type. Overlapping patterns (e.g. "go to village" as travel
or as exploration) are what make a command ambiguous.
"""

import re
from dataclasses import dataclass, field

from commandcore.parser.context import ContextFactor
from commandcore.parser.task_types import TaskType


@dataclass(frozen=True)
class AmbiguityPattern:
    """A command pattern with its scoring metadata.

    Attributes:
        id: Stable identifier, used as the key for learned success rates.
        pattern: Regex source (matched case-insensitively).
        task_type: Type this interpretation proposes.
        confidence_threshold: Scales the raw match confidence.
        context_factors: Factors whose truth supports this interpretation.
    """

    id: str
    pattern: str
    task_type: TaskType
    confidence_threshold: float
    context_factors: tuple[ContextFactor, ...] = ()
    _compiled: re.Pattern[str] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "_compiled", re.compile(self.pattern, re.IGNORECASE))

    def search(self, command: str) -> re.Match[str] | None:
        return self._compiled.search(command)

    @property
    def specificity(self) -> float:
        """Longer patterns are more specific; capped at 1."""
        return min(1.0, len(self.pattern) / 100)


LANDMARKS = r"(village|temple|mineshaft|stronghold|nether|end|outpost|monument|fortress)"

DEFAULT_PATTERNS: tuple[AmbiguityPattern, ...] = (
    AmbiguityPattern(
        id="mining_ore",
        pattern=r"mine\s+(diamond|iron|gold|coal|redstone|lapis|emerald|copper)\s+(ore|block)",
        task_type=TaskType.MINING,
        confidence_threshold=0.8,
        context_factors=(ContextFactor.HAS_PICKAXE, ContextFactor.NEAR_ORE, ContextFactor.INVENTORY_SPACE),
    ),
    AmbiguityPattern(
        id="mining_stone",
        pattern=r"mine\s+(stone|cobblestone|granite|diorite|andesite|deepslate)",
        task_type=TaskType.MINING,
        confidence_threshold=0.7,
        context_factors=(ContextFactor.HAS_PICKAXE, ContextFactor.INVENTORY_SPACE),
    ),
    AmbiguityPattern(
        id="crafting_tool",
        pattern=r"craft\s+(?:an?\s+)?(wooden|stone|iron|golden|gold|diamond|netherite)\s+(pickaxe|axe|shovel|hoe|sword)",
        task_type=TaskType.CRAFTING,
        confidence_threshold=0.9,
        context_factors=(ContextFactor.HAS_MATERIALS, ContextFactor.HAS_CRAFTING_TABLE),
    ),
    AmbiguityPattern(
        id="crafting_block",
        pattern=r"craft\s+(?:\d+\s+)?(planks|sticks|torches|chest|furnace|crafting table)",
        task_type=TaskType.CRAFTING,
        confidence_threshold=0.8,
        context_factors=(ContextFactor.HAS_WOOD,),
    ),
    AmbiguityPattern(
        id="navigation_coordinates",
        pattern=r"go\s+to\s+(-?\d+)\s+(-?\d+)\s+(-?\d+)",
        task_type=TaskType.NAVIGATION,
        confidence_threshold=0.95,
        context_factors=(ContextFactor.PATH_CLEAR, ContextFactor.SAFE_ROUTE),
    ),
    AmbiguityPattern(
        id="navigation_landmark",
        pattern=rf"go\s+to\s+(?:the\s+|a\s+)?{LANDMARKS}",
        task_type=TaskType.NAVIGATION,
        confidence_threshold=0.85,
        context_factors=(ContextFactor.PATH_CLEAR, ContextFactor.SAFE_ROUTE, ContextFactor.LANDMARK_KNOWN),
    ),
    AmbiguityPattern(
        id="exploration_landmark",
        pattern=rf"(?:go\s+to|find|look\s+for|search\s+for)\s+(?:the\s+|a\s+)?{LANDMARKS}",
        task_type=TaskType.EXPLORATION,
        confidence_threshold=0.8,
        context_factors=(ContextFactor.SAFE_ROUTE,),
    ),
    AmbiguityPattern(
        id="gathering_wood",
        pattern=r"(?:chop|cut|gather|collect|get)\s+(?:\d+\s+)?(?:some\s+)?(wood|logs?|trees?)",
        task_type=TaskType.GATHERING,
        confidence_threshold=0.85,
        context_factors=(ContextFactor.NEAR_TREE, ContextFactor.INVENTORY_SPACE),
    ),
    AmbiguityPattern(
        id="farming_crops",
        pattern=r"(?:plant|harvest|farm)\s+(?:some\s+)?(wheat|carrots?|potato(?:es)?|beetroots?|crops)",
        task_type=TaskType.FARMING,
        confidence_threshold=0.85,
        context_factors=(ContextFactor.NEAR_CROPS, ContextFactor.HAS_SEEDS),
    ),
)
