"""Utility helper functions."""
from typing import Dict, Any, List, Optional, Union

from ..models.level import (
    BoxColor,
    LevelDefinition,
    RuntimeLevel,
    DEFAULT_GROUP_SIZE,
)


def validate_level_definition(
    level_data: Dict[str, Any],
    group_size: int = DEFAULT_GROUP_SIZE,
) -> tuple[bool, Optional[str]]:
    """
    Validate level definition structure.

    Args:
        level_data: Level definition in dictionary form.
        group_size: Total box count must be a multiple of this.

    Returns:
        Tuple of (is_valid, error_message).
    """
    shelves = level_data.get("shelves")
    if not isinstance(shelves, list):
        return False, "'shelves' must be an array"

    for key in ("extra_empty_shelves", "ad_reward_shelves", "reward_score", "difficulty_rating"):
        if key in level_data:
            value = level_data[key]
            if not isinstance(value, int) or isinstance(value, bool) or value < 0:
                return False, f"'{key}' must be a non-negative integer"

    valid_colors = {c.value for c in BoxColor}
    total_boxes = 0

    for i, shelf in enumerate(shelves):
        if not isinstance(shelf, dict):
            return False, f"Shelf {i} must be an object"

        capacity = shelf.get("capacity", 12)
        if not isinstance(capacity, int) or isinstance(capacity, bool) or capacity < 1:
            return False, f"Shelf {i} 'capacity' must be a positive integer"

        boxes = shelf.get("boxes", [])
        if not isinstance(boxes, list):
            return False, f"Shelf {i} 'boxes' must be an array"

        if len(boxes) > capacity:
            return False, f"Shelf {i} holds {len(boxes)} boxes but its capacity is {capacity}"

        for j, box in enumerate(boxes):
            if not isinstance(box, dict) or "color" not in box:
                return False, f"Box {j} on shelf {i} must be an object with a 'color'"

            color = box["color"]
            if not isinstance(color, str) or color.lower() not in valid_colors:
                return False, f"Unknown color {color!r} on shelf {i}, box {j}"

        total_boxes += len(boxes)

    if total_boxes % group_size != 0:
        return False, f"Total box count {total_boxes} is not a multiple of {group_size}"

    return True, None


def load_level_definition(
    level_data: Dict[str, Any],
    group_size: int = DEFAULT_GROUP_SIZE,
) -> LevelDefinition:
    """
    Validate and parse an external level payload.

    Raises:
        ValueError: If the payload is not a valid level definition.
    """
    is_valid, error = validate_level_definition(level_data, group_size)
    if not is_valid:
        raise ValueError(error)
    return LevelDefinition.from_dict(level_data)


def format_level_for_display(level: Union[LevelDefinition, RuntimeLevel]) -> str:
    """
    Format a level for human-readable display.

    Shelves are listed bottom to top; hidden boxes show as '??'.

    Args:
        level: Definition or running level.

    Returns:
        Formatted string representation.
    """
    lines: List[str] = []

    if isinstance(level, LevelDefinition):
        lines.append(
            f"{level.level_name} (difficulty {level.difficulty_rating}, "
            f"{len(level.shelves)} shelves, {level.total_boxes} boxes):"
        )
        lines.append("-" * 40)
        for i, shelf in enumerate(level.shelves):
            cells = [
                _cell(box.color, not level.only_top_visible or box.start_visible)
                for box in shelf.boxes
            ]
            lines.append(f"  [{i:2d}] {len(shelf.boxes)}/{shelf.capacity} | " + " ".join(cells))
    else:
        lines.append(f"Runtime level ({len(level.shelves)} shelves, score {level.score}):")
        lines.append("-" * 40)
        for i, shelf in enumerate(level.shelves):
            cells = [
                _cell(box.color, box.color_visible) + ("*" if box.has_goal else "")
                for box in shelf.boxes
            ]
            lines.append(f"  [{i:2d}] {len(shelf.boxes)}/{shelf.capacity} | " + " ".join(cells))

    return "\n".join(lines)


def _cell(color: BoxColor, visible: bool) -> str:
    return color.value[:2].upper() if visible else "??"
