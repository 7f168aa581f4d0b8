"""Runtime level construction and shelf rules shared by the engine and the evaluator."""
import random
from typing import Callable, List, Optional, Tuple

from ..models.level import (
    BoxData,
    LevelDefinition,
    RuntimeLevel,
    ShelfData,
    DEFAULT_SHELF_CAPACITY,
    MIN_ELIMINATION_RUN,
    POINTS_PER_BOX,
)


Move = Tuple[int, int]  # (from_shelf, to_shelf)

# (level, removed run, box count before removal) -> goal found?
GoalFinder = Callable[[RuntimeLevel, List[BoxData], int], bool]


def build_runtime_level(
    definition: LevelDefinition,
    default_capacity: int = DEFAULT_SHELF_CAPACITY,
) -> RuntimeLevel:
    """
    Build a fresh runtime level from a definition.

    Box ids are assigned from 1 in shelf/slot order. Every shelf top starts
    visible whatever the authored flag says. Extra empty shelves copy the
    capacity of shelf 0.
    """
    runtime = RuntimeLevel(
        difficulty=definition.difficulty_rating,
        reward_score=definition.reward_score,
        ad_bonus_remaining=max(0, definition.ad_reward_shelves),
    )

    next_id = 1
    for layout in definition.shelves:
        shelf = ShelfData(capacity=max(1, layout.capacity))
        for slot in layout.boxes:
            shelf.boxes.append(BoxData(
                id=next_id,
                color=slot.color,
                color_visible=not definition.only_top_visible or slot.start_visible,
            ))
            next_id += 1
        ensure_top_visible(shelf)
        runtime.shelves.append(shelf)

    extra_capacity = runtime.shelves[0].capacity if runtime.shelves else max(1, default_capacity)
    for _ in range(max(0, definition.extra_empty_shelves)):
        runtime.shelves.append(ShelfData(capacity=extra_capacity))

    return runtime


def overfilled_shelves(definition: LevelDefinition) -> List[int]:
    """Indexes of authored shelves holding more boxes than their capacity."""
    return [
        idx for idx, layout in enumerate(definition.shelves)
        if len(layout.boxes) > max(1, layout.capacity)
    ]


def ensure_top_visible(shelf: ShelfData) -> None:
    if shelf.top is not None:
        shelf.top.color_visible = True


def is_valid_move(level: RuntimeLevel, from_idx: int, to_idx: int) -> bool:
    """Check every rule of a top-box move without touching the level."""
    count = len(level.shelves)
    if not (0 <= from_idx < count and 0 <= to_idx < count) or from_idx == to_idx:
        return False

    source = level.shelves[from_idx]
    target = level.shelves[to_idx]
    if source.is_empty or target.is_full:
        return False

    moving = source.top
    if not moving.color_visible:
        return False

    return target.is_empty or target.top.color == moving.color


def collect_valid_moves(level: RuntimeLevel) -> List[Move]:
    """Enumerate valid moves over every ordered pair of distinct shelves."""
    moves: List[Move] = []
    for i, source in enumerate(level.shelves):
        if source.is_empty or not source.top.color_visible:
            continue

        source_color = source.top.color
        for j, target in enumerate(level.shelves):
            if i == j or target.is_full:
                continue
            if target.is_empty or target.top.color == source_color:
                moves.append((i, j))

    return moves


def has_any_valid_move(level: RuntimeLevel) -> bool:
    return bool(collect_valid_moves(level))


def would_create_elimination(level: RuntimeLevel, from_idx: int, to_idx: int) -> bool:
    """Predict whether moving onto the target completes a run of 3 or more."""
    moving = level.shelves[from_idx].top
    target = level.shelves[to_idx]

    same = 1
    for box in reversed(target.boxes):
        if box.color != moving.color:
            break
        same += 1

    return same >= MIN_ELIMINATION_RUN


def apply_move(level: RuntimeLevel, from_idx: int, to_idx: int) -> BoxData:
    """Move the top box; callers validate first. Returns the moved box."""
    source = level.shelves[from_idx]
    target = level.shelves[to_idx]
    moving = source.boxes.pop()
    target.boxes.append(moving)
    ensure_top_visible(source)
    ensure_top_visible(target)
    return moving


def goal_box_finder(level: RuntimeLevel, run: List[BoxData], boxes_before: int) -> bool:
    return any(box.has_goal for box in run)


def find_first_run(shelf: ShelfData) -> Optional[Tuple[int, int]]:
    """Return (start, length) of the first run of 3+ scanning bottom to top."""
    boxes = shelf.boxes
    if len(boxes) < MIN_ELIMINATION_RUN:
        return None

    start = 0
    while start < len(boxes):
        end = start + 1
        while end < len(boxes) and boxes[end].color == boxes[start].color:
            end += 1
        if end - start >= MIN_ELIMINATION_RUN:
            return start, end - start
        start = end

    return None


def resolve_eliminations(
    level: RuntimeLevel,
    goal_finder: Optional[GoalFinder] = None,
) -> int:
    """
    Remove runs of 3+ same-colored boxes until none remain.

    After every removal the scan restarts from the first shelf. Each
    removal awards 10 points per box and reveals the new top.

    Returns:
        Number of boxes removed.
    """
    finder = goal_finder or goal_box_finder
    removed_total = 0

    changed = True
    while changed:
        changed = False
        for shelf in level.shelves:
            found = find_first_run(shelf)
            if found is None:
                continue

            start, length = found
            run = shelf.boxes[start:start + length]
            if finder(level, run, level.total_boxes):
                level.goal_found = True

            del shelf.boxes[start:start + length]
            level.score += length * POINTS_PER_BOX
            removed_total += length
            ensure_top_visible(shelf)
            changed = True
            break

    return removed_total


def locate_goal(level: RuntimeLevel) -> Optional[int]:
    """Index of the shelf holding the goal box, or None."""
    for idx, shelf in enumerate(level.shelves):
        if any(box.has_goal for box in shelf.boxes):
            return idx
    return None


def place_goal(
    level: RuntimeLevel,
    rng: random.Random,
    shelf_index: Optional[int] = None,
    depth: Optional[int] = None,
) -> bool:
    """
    Mark exactly one box as the goal.

    With `shelf_index` set the goal goes to that shelf at `depth` boxes
    below the top (0 = top box). Otherwise a box is chosen uniformly from
    every box in the level.
    """
    for shelf in level.shelves:
        for box in shelf.boxes:
            box.has_goal = False

    if shelf_index is not None:
        if not 0 <= shelf_index < len(level.shelves):
            return False
        boxes = level.shelves[shelf_index].boxes
        depth = depth or 0
        if not 0 <= depth < len(boxes):
            return False
        boxes[len(boxes) - 1 - depth].has_goal = True
        return True

    all_boxes = [box for shelf in level.shelves for box in shelf.boxes]
    if not all_boxes:
        return False

    rng.choice(all_boxes).has_goal = True
    return True
