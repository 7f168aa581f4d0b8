"""Level factory: turns generated layouts into level definitions."""
import logging
import random
import time
from dataclasses import dataclass, field
from typing import Dict, List, Any, Optional, Tuple

from ..models.level import (
    BoxColor,
    BoxSlot,
    GenerationParams,
    LevelDefinition,
    LevelEvaluation,
    ShelfLayout,
)
from .layout_generator import LayoutGenerator, LayoutResult, get_layout_generator
from .occlusion import OcclusionAllocator, OcclusionResult, get_occlusion_allocator
from .evaluator import SolvabilityEvaluator, get_evaluator

logger = logging.getLogger(__name__)


@dataclass
class LevelBuildResult:
    """Result of level composition."""
    level: Optional[LevelDefinition] = None
    error: str = ""
    notes: List[str] = field(default_factory=list)
    layout: Optional[LayoutResult] = None
    occlusion: Optional[OcclusionResult] = None
    evaluation: Optional[LevelEvaluation] = None
    generation_time_ms: int = 0

    @property
    def ok(self) -> bool:
        return self.level is not None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "ok": self.ok,
            "level": self.level.to_dict() if self.level else None,
            "error": self.error,
            "notes": list(self.notes),
            "hidden_counts": self.occlusion.hidden_counts if self.occlusion else [],
            "evaluation": self.evaluation.to_dict() if self.evaluation else None,
            "generation_time_ms": self.generation_time_ms,
        }


class LevelFactory:
    """Builds level definitions from the layout generator and occlusion allocator."""

    def __init__(
        self,
        generator: Optional[LayoutGenerator] = None,
        allocator: Optional[OcclusionAllocator] = None,
        evaluator: Optional[SolvabilityEvaluator] = None,
    ):
        self.generator = generator or get_layout_generator()
        self.allocator = allocator or get_occlusion_allocator()
        self.evaluator = evaluator or get_evaluator()

    def generate_level(self, params: GenerationParams) -> LevelBuildResult:
        """
        Generate a complete level definition.

        The bottom `hidden` boxes of each shelf start hidden, everything
        above them starts visible, so the top box is always visible.

        Args:
            params: Shelf/box counts, occlusion fraction and level metadata.

        Returns:
            LevelBuildResult with the level or the generator's error.
        """
        start_time = time.time()
        rng = random.Random(params.seed)

        layout = self.generator.generate(
            total_shelf_count=params.total_shelf_count,
            empty_shelf_count=params.empty_shelf_count,
            total_box_count=params.total_box_count,
            max_boxes_per_shelf=params.max_boxes_per_shelf,
            rng=rng,
        )
        if not layout.ok:
            return LevelBuildResult(error=layout.error, layout=layout)

        capacity = max(params.shelf_capacity, params.max_boxes_per_shelf)
        occlusion = self.allocator.allocate(layout.shelf_box_counts, params.gray_percentage, rng)

        result = LevelBuildResult(layout=layout, occlusion=occlusion)
        if occlusion.message:
            result.notes.append(occlusion.message)

        shelves: List[ShelfLayout] = []
        for colors, hidden in zip(layout.shelf_colors, occlusion.hidden_counts):
            shelves.append(ShelfLayout(
                capacity=capacity,
                boxes=[BoxSlot(color=c, start_visible=i >= hidden) for i, c in enumerate(colors)],
            ))

        result.level = LevelDefinition(
            level_name=params.level_name,
            difficulty_rating=params.difficulty_rating,
            reward_score=params.reward_score,
            only_top_visible=True,
            extra_empty_shelves=params.extra_empty_shelves,
            ad_reward_shelves=params.ad_reward_shelves,
            shelves=shelves,
        )

        if params.evaluate:
            result.evaluation = self.evaluator.evaluate(result.level)

        result.generation_time_ms = int((time.time() - start_time) * 1000)
        logger.info(
            "Generated level %s: %d shelves, %d boxes, hidden=%s",
            params.level_name, len(shelves), layout.total_boxes, occlusion.hidden_counts,
        )
        return result

    def create_controlled_level(self, seed: int, difficulty: int) -> LevelBuildResult:
        """
        Create a level whose size and visibility scale with difficulty (1-10).

        Shelves = 4 + d, capacity = 8 + d, four boxes per shelf, reward
        50 + 20d, and each box starts visible with chance 0.15 + 0.25 / d.
        When the generator finds no layout, whole groups are placed by a
        greedy fallback and the result carries a note.
        """
        rng = random.Random(seed)
        d = min(10, max(1, difficulty))
        shelf_count = 4 + d
        capacity = 8 + d
        boxes_per_shelf = min(4, capacity)

        notes: List[str] = []
        layout = self.generator.generate_uniform(shelf_count, boxes_per_shelf, rng)
        if layout.ok:
            shelf_colors = layout.shelf_colors
        else:
            shelf_colors, placed, wanted = self._place_groups_fallback(shelf_count, boxes_per_shelf, rng)
            if placed == 0:
                return LevelBuildResult(error=layout.error, layout=layout)
            notes.append(
                f"Layout generation failed ({layout.error_kind.value}); fallback placement "
                f"kept {placed} of {wanted} color groups."
            )
            logger.warning("Controlled level seed=%d d=%d used fallback placement: %s", seed, d, notes[-1])

        visible_chance = 0.15 + 0.25 / d
        shelves = [
            ShelfLayout(
                capacity=capacity,
                boxes=[BoxSlot(color=c, start_visible=rng.random() < visible_chance) for c in colors],
            )
            for colors in shelf_colors
        ]

        level = LevelDefinition(
            level_name=f"Generated_{seed}",
            difficulty_rating=d,
            reward_score=50 + d * 20,
            only_top_visible=True,
            extra_empty_shelves=1,
            ad_reward_shelves=1,
            shelves=shelves,
        )
        ensure_visible_tops(level)
        return LevelBuildResult(level=level, notes=notes, layout=layout)

    def _place_groups_fallback(
        self,
        shelf_count: int,
        boxes_per_shelf: int,
        rng: random.Random,
    ) -> Tuple[List[List[BoxColor]], int, int]:
        """
        Place whole color groups greedily when no full layout exists.

        Group colors cycle through the palette. A group goes to the shelves
        with the most room that do not hold its color yet; a group that
        cannot find enough shelves is dropped, so the box count stays a
        multiple of the group size.

        Returns:
            (shelf colors, groups placed, groups wanted)
        """
        colors = self.generator.palette.active_colors()
        group_size = self.generator.group_size
        shelf_colors: List[List[BoxColor]] = [[] for _ in range(shelf_count)]
        if not colors:
            return shelf_colors, 0, 0

        wanted = shelf_count * boxes_per_shelf // group_size
        groups = [colors[i % len(colors)] for i in range(wanted)]
        rng.shuffle(groups)

        placed = 0
        for color in groups:
            candidates = [
                idx for idx in range(shelf_count)
                if len(shelf_colors[idx]) < boxes_per_shelf and color not in shelf_colors[idx]
            ]
            if len(candidates) < group_size:
                continue

            rng.shuffle(candidates)
            candidates.sort(key=lambda idx: len(shelf_colors[idx]))
            for idx in candidates[:group_size]:
                shelf_colors[idx].append(color)
            placed += 1

        for colors_on_shelf in shelf_colors:
            rng.shuffle(colors_on_shelf)
        return shelf_colors, placed, wanted


def ensure_visible_tops(level: LevelDefinition) -> None:
    """Force the authored top box of every shelf to start visible."""
    for shelf in level.shelves:
        if shelf.boxes:
            top = shelf.boxes[-1]
            shelf.boxes[-1] = BoxSlot(color=top.color, start_visible=True)


# Singleton instance
_factory: Optional[LevelFactory] = None


def get_level_factory() -> LevelFactory:
    """Get or create level factory singleton instance."""
    global _factory
    if _factory is None:
        _factory = LevelFactory()
    return _factory
