"""Shelf color layout generator with same-color group constraints."""
import logging
import random
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Any, Optional, Tuple

from ..config import get_settings
from ..models.level import BoxColor, DEFAULT_GROUP_SIZE
from ..models.palette import ColorPalette

logger = logging.getLogger(__name__)


class GenerationErrorKind(str, Enum):
    """Failure categories reported by the layout generator."""
    NO_COLORS = "no_colors"
    INVALID_SHELF_COUNT = "invalid_shelf_count"
    INVALID_BOX_COUNT = "invalid_box_count"
    INFEASIBLE_CAPACITY = "infeasible_capacity"
    INSUFFICIENT_COLORS = "insufficient_colors"
    ATTEMPTS_EXHAUSTED = "attempts_exhausted"


@dataclass
class LayoutResult:
    """Outcome of a layout generation call."""
    shelf_box_counts: List[int] = field(default_factory=list)
    shelf_colors: List[List[BoxColor]] = field(default_factory=list)
    error: str = ""
    error_kind: Optional[GenerationErrorKind] = None
    attempts: int = 0

    @property
    def ok(self) -> bool:
        return self.error_kind is None

    @property
    def total_boxes(self) -> int:
        return sum(self.shelf_box_counts)

    @classmethod
    def failure(cls, kind: GenerationErrorKind, message: str, attempts: int = 0) -> "LayoutResult":
        return cls(error=message, error_kind=kind, attempts=attempts)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "ok": self.ok,
            "shelf_box_counts": list(self.shelf_box_counts),
            "shelf_colors": [[c.value for c in colors] for colors in self.shelf_colors],
            "error": self.error,
            "error_kind": self.error_kind.value if self.error_kind else None,
            "attempts": self.attempts,
        }


Layout = Tuple[List[int], List[List[BoxColor]]]


class LayoutGenerator:
    """
    Assigns colors to boxes across shelves.

    Rules:
    1. Exactly total - empty shelves receive boxes; each gets at least one.
    2. Box counts are balanced (each extra box goes to a least-filled shelf).
    3. Colors are placed in groups of `group_size` boxes on distinct shelves.
    4. A shelf never holds the same color twice.
    """

    def __init__(
        self,
        palette: Optional[ColorPalette] = None,
        group_size: Optional[int] = None,
        max_attempts: Optional[int] = None,
    ):
        settings = get_settings()
        self.palette = palette or ColorPalette.from_names(settings.get_enabled_colors())
        self.group_size = max(DEFAULT_GROUP_SIZE, group_size or settings.same_color_group_size)
        self.max_attempts = max(1, max_attempts or settings.max_generate_attempts)

    def generate_uniform(
        self,
        shelf_count: int,
        boxes_per_shelf: int,
        rng: Optional[random.Random] = None,
    ) -> LayoutResult:
        """Generate a layout where every shelf holds `boxes_per_shelf` boxes."""
        return self.generate(
            total_shelf_count=shelf_count,
            empty_shelf_count=0,
            total_box_count=shelf_count * boxes_per_shelf,
            max_boxes_per_shelf=boxes_per_shelf,
            rng=rng,
        )

    def generate(
        self,
        total_shelf_count: int,
        empty_shelf_count: int,
        total_box_count: int,
        max_boxes_per_shelf: int,
        rng: Optional[random.Random] = None,
    ) -> LayoutResult:
        """
        Generate per-shelf box counts and colors.

        Args:
            total_shelf_count: Number of shelves in the layout.
            empty_shelf_count: Shelves that stay empty (clamped to the total).
            total_box_count: Requested boxes, rounded down to a group multiple.
            max_boxes_per_shelf: Upper bound of boxes on one shelf.
            rng: Random source; each attempt derives its own seed from it.

        Returns:
            LayoutResult; on failure the layout fields are empty.
        """
        colors = self.palette.active_colors()
        group_size = self.group_size

        if not colors:
            return LayoutResult.failure(
                GenerationErrorKind.NO_COLORS,
                "No colors are enabled; enable at least one color in the palette.",
            )

        if total_shelf_count <= 0:
            return LayoutResult.failure(
                GenerationErrorKind.INVALID_SHELF_COUNT,
                "Total shelf count must be greater than 0.",
            )

        safe_empty = min(max(empty_shelf_count, 0), total_shelf_count)
        non_empty = total_shelf_count - safe_empty
        if non_empty <= 0:
            return LayoutResult.failure(
                GenerationErrorKind.INVALID_SHELF_COUNT,
                "Too many empty shelves; at least one shelf must hold boxes.",
            )

        if max_boxes_per_shelf <= 0:
            return LayoutResult.failure(
                GenerationErrorKind.INVALID_BOX_COUNT,
                "Max boxes per shelf must be greater than 0.",
            )

        if non_empty < group_size:
            return LayoutResult.failure(
                GenerationErrorKind.INFEASIBLE_CAPACITY,
                f"Not enough non-empty shelves: {non_empty} is less than "
                f"the same-color group size {group_size}.",
            )

        normalized_total = max(0, total_box_count - total_box_count % group_size)
        if normalized_total <= 0:
            return LayoutResult.failure(
                GenerationErrorKind.INVALID_BOX_COUNT,
                f"Total box count must be at least {group_size} and a multiple of {group_size}.",
            )

        max_capacity = non_empty * max_boxes_per_shelf
        if normalized_total > max_capacity:
            return LayoutResult.failure(
                GenerationErrorKind.INFEASIBLE_CAPACITY,
                f"Total box count {normalized_total} exceeds capacity {max_capacity}. "
                "Reduce the box count or raise the per-shelf maximum.",
            )

        if normalized_total < non_empty:
            return LayoutResult.failure(
                GenerationErrorKind.INFEASIBLE_CAPACITY,
                f"Total box count {normalized_total} cannot give each of "
                f"{non_empty} non-empty shelves at least one box.",
            )

        if max_boxes_per_shelf > len(colors):
            return LayoutResult.failure(
                GenerationErrorKind.INSUFFICIENT_COLORS,
                f"Max boxes per shelf is {max_boxes_per_shelf} but only {len(colors)} "
                "colors are enabled; same colors could not be kept apart.",
            )

        rng = rng or random.Random()
        for attempt in range(self.max_attempts):
            seed = rng.getrandbits(32)
            layout = self.attempt(
                seed,
                total_shelf_count,
                non_empty,
                normalized_total,
                max_boxes_per_shelf,
                colors,
            )
            if layout is None:
                logger.debug("Layout attempt %d (seed=%d) failed", attempt + 1, seed)
                continue

            counts, shelf_colors = layout
            return LayoutResult(
                shelf_box_counts=counts,
                shelf_colors=shelf_colors,
                attempts=attempt + 1,
            )

        logger.warning(
            "Layout generation exhausted %d attempts (shelves=%d, empty=%d, boxes=%d, max=%d)",
            self.max_attempts, total_shelf_count, safe_empty, normalized_total, max_boxes_per_shelf,
        )
        return LayoutResult.failure(
            GenerationErrorKind.ATTEMPTS_EXHAUSTED,
            "No layout satisfied the constraints after repeated attempts; adjust "
            "shelves, empty shelves, total boxes or enabled colors.",
            attempts=self.max_attempts,
        )

    def attempt(
        self,
        seed: int,
        total_shelf_count: int,
        non_empty_count: int,
        total_boxes: int,
        max_boxes_per_shelf: int,
        colors: List[BoxColor],
    ) -> Optional[Layout]:
        """
        Run one generation attempt with its own random stream.

        Inputs must already be validated. Returns (counts, colors) or None
        when the attempt hits a dead end.
        """
        rng = random.Random(seed)
        group_size = self.group_size

        shelf_indexes = list(range(total_shelf_count))
        rng.shuffle(shelf_indexes)
        active = shelf_indexes[:non_empty_count]

        target_counts = self._distribute_counts(
            rng, total_shelf_count, active, total_boxes, max_boxes_per_shelf
        )
        if target_counts is None:
            return None

        shelf_colors: List[List[BoxColor]] = [[] for _ in range(total_shelf_count)]
        remaining = list(target_counts)

        for _ in range(total_boxes // group_size):
            candidates = [idx for idx in active if remaining[idx] > 0]
            if len(candidates) < group_size:
                return None

            # Pick shelves with the most room left so later groups stay feasible
            selected: List[int] = []
            for _ in range(group_size):
                selectable = [idx for idx in candidates if idx not in selected]
                if not selectable:
                    return None
                max_remain = max(remaining[idx] for idx in selectable)
                top = [idx for idx in selectable if remaining[idx] == max_remain]
                selected.append(rng.choice(top))

            usable = [
                color for color in colors
                if all(color not in shelf_colors[idx] for idx in selected)
            ]
            if not usable:
                return None

            color = rng.choice(usable)
            for idx in selected:
                shelf_colors[idx].append(color)
                remaining[idx] -= 1

        for idx in range(total_shelf_count):
            if len(shelf_colors[idx]) != target_counts[idx]:
                return None
            rng.shuffle(shelf_colors[idx])

        return target_counts, shelf_colors

    def _distribute_counts(
        self,
        rng: random.Random,
        total_shelf_count: int,
        active: List[int],
        total_boxes: int,
        max_boxes_per_shelf: int,
    ) -> Optional[List[int]]:
        """Balance box counts over active shelves, one box at a time."""
        counts = [0] * total_shelf_count
        for idx in active:
            counts[idx] = 1

        remaining = total_boxes - len(active)
        while remaining > 0:
            candidates = [idx for idx in active if counts[idx] < max_boxes_per_shelf]
            if not candidates:
                return None
            min_count = min(counts[idx] for idx in candidates)
            lowest = [idx for idx in candidates if counts[idx] == min_count]
            counts[rng.choice(lowest)] += 1
            remaining -= 1

        return counts


# Singleton instance
_layout_generator: Optional[LayoutGenerator] = None


def get_layout_generator() -> LayoutGenerator:
    """Get or create layout generator singleton instance."""
    global _layout_generator
    if _layout_generator is None:
        _layout_generator = LayoutGenerator()
    return _layout_generator
