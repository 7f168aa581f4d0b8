"""Level data models and structures."""
from dataclasses import dataclass, field
from typing import Dict, List, Any, Optional
from enum import Enum


# Same-color group size used by generation and validation
DEFAULT_GROUP_SIZE = 4
# Capacity for shelves created without a reference shelf
DEFAULT_SHELF_CAPACITY = 12
# Minimum run length that is cleared automatically
MIN_ELIMINATION_RUN = 3
# Points per eliminated box
POINTS_PER_BOX = 10


class BoxColor(str, Enum):
    """Box color enumeration (declaration order is the palette order)."""
    RED = "red"
    BLUE = "blue"
    GREEN = "green"
    YELLOW = "yellow"
    PURPLE = "purple"
    ORANGE = "orange"

    @classmethod
    def all_colors(cls) -> List["BoxColor"]:
        """Return all colors in declaration order."""
        return list(cls)

    @classmethod
    def parse(cls, value: str) -> "BoxColor":
        """Parse a color from its name (case-insensitive)."""
        text = value.strip().lower()
        for color in cls:
            if color.value == text:
                return color
        raise ValueError(f"Unknown color: {value!r}")


class ToolType(str, Enum):
    """Player tool enumeration."""
    REVEAL_SHELF = "reveal_shelf"
    UNDO_MOVE = "undo_move"
    CAT_HINT = "cat_hint"


class GameState(str, Enum):
    """Play session state."""
    IDLE = "idle"
    PLAYING = "playing"
    WIN = "win"
    LOSE = "lose"

    @property
    def is_terminal(self) -> bool:
        return self in (GameState.WIN, GameState.LOSE)


class GoalFindMode(str, Enum):
    """How an elimination decides that the cat has been found."""
    GOAL_BOX = "goal_box"                                      # run contains the goal box
    PROBABILITY_ON_ELIMINATION = "probability_on_elimination"  # chance grows as boxes run out
    ON_ALL_BOXES_CLEARED = "on_all_boxes_cleared"              # board emptied


@dataclass(frozen=True)
class BoxSlot:
    """A single authored box in a shelf layout."""
    color: BoxColor
    start_visible: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {"color": self.color.value, "start_visible": self.start_visible}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BoxSlot":
        return cls(
            color=BoxColor.parse(data["color"]),
            start_visible=bool(data.get("start_visible", False)),
        )


@dataclass
class ShelfLayout:
    """An authored shelf: capacity plus boxes ordered bottom to top."""
    capacity: int = DEFAULT_SHELF_CAPACITY
    boxes: List[BoxSlot] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "capacity": self.capacity,
            "boxes": [b.to_dict() for b in self.boxes],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ShelfLayout":
        return cls(
            capacity=int(data.get("capacity", DEFAULT_SHELF_CAPACITY)),
            boxes=[BoxSlot.from_dict(b) for b in data.get("boxes", [])],
        )


@dataclass
class LevelDefinition:
    """
    Design-time level definition.

    Produced by the level factory (layout generator + occlusion allocator)
    or authored by hand. The runtime never mutates it.
    """
    level_name: str = "Level"
    difficulty_rating: int = 1
    reward_score: int = 100
    only_top_visible: bool = True
    extra_empty_shelves: int = 1
    ad_reward_shelves: int = 1
    shelves: List[ShelfLayout] = field(default_factory=list)

    @property
    def total_boxes(self) -> int:
        return sum(len(s.boxes) for s in self.shelves)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "level_name": self.level_name,
            "difficulty_rating": self.difficulty_rating,
            "reward_score": self.reward_score,
            "only_top_visible": self.only_top_visible,
            "extra_empty_shelves": self.extra_empty_shelves,
            "ad_reward_shelves": self.ad_reward_shelves,
            "shelves": [s.to_dict() for s in self.shelves],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LevelDefinition":
        """Build a definition from its dictionary form."""
        return cls(
            level_name=str(data.get("level_name", "Level")),
            difficulty_rating=int(data.get("difficulty_rating", 1)),
            reward_score=int(data.get("reward_score", 100)),
            only_top_visible=bool(data.get("only_top_visible", True)),
            extra_empty_shelves=int(data.get("extra_empty_shelves", 1)),
            ad_reward_shelves=int(data.get("ad_reward_shelves", 1)),
            shelves=[ShelfLayout.from_dict(s) for s in data.get("shelves", [])],
        )


@dataclass
class BoxData:
    """A box inside a running level."""
    id: int
    color: BoxColor
    color_visible: bool = False
    has_goal: bool = False


@dataclass
class ShelfData:
    """A bounded stack of boxes; the last element is the top."""
    capacity: int
    boxes: List[BoxData] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.boxes

    @property
    def is_full(self) -> bool:
        return len(self.boxes) >= self.capacity

    @property
    def top(self) -> Optional[BoxData]:
        return self.boxes[-1] if self.boxes else None


@dataclass
class RuntimeLevel:
    """Mutable state of one play attempt or one simulated playout."""
    difficulty: int = 1
    reward_score: int = 0
    ad_bonus_remaining: int = 0
    goal_found: bool = False
    score: int = 0
    shelves: List[ShelfData] = field(default_factory=list)

    @property
    def total_boxes(self) -> int:
        return sum(len(s.boxes) for s in self.shelves)


@dataclass(frozen=True)
class MoveRecord:
    """Undo history entry for a player move."""
    from_shelf: int
    to_shelf: int
    box_id: int


@dataclass
class LevelEvaluation:
    """Solvability estimate produced by the evaluator."""
    likely_solvable: bool
    solvable_rate: float
    estimated_difficulty: int
    runs: int = 0
    avg_moves: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "likely_solvable": self.likely_solvable,
            "solvable_rate": round(self.solvable_rate, 4),
            "estimated_difficulty": self.estimated_difficulty,
            "runs": self.runs,
            "avg_moves": round(self.avg_moves, 2),
        }


@dataclass
class GenerationParams:
    """Parameters for generated level composition."""
    total_shelf_count: int = 8
    empty_shelf_count: int = 0
    total_box_count: int = 32
    max_boxes_per_shelf: int = 4
    shelf_capacity: int = 8
    gray_percentage: Optional[float] = None  # None -> settings default
    difficulty_rating: int = 1
    reward_score: int = 100
    extra_empty_shelves: int = 1
    ad_reward_shelves: int = 1
    level_name: str = "Generated"
    seed: Optional[int] = None
    evaluate: bool = False
