"""Data models package.

This package contains level data models, the color palette and API schemas.
"""
from .level import (
    BoxColor,
    ToolType,
    GameState,
    GoalFindMode,
    BoxSlot,
    ShelfLayout,
    LevelDefinition,
    BoxData,
    ShelfData,
    RuntimeLevel,
    MoveRecord,
    LevelEvaluation,
    GenerationParams,
    DEFAULT_GROUP_SIZE,
    DEFAULT_SHELF_CAPACITY,
)
from .palette import ColorPalette, ColorConfig

__all__ = [
    # Level models
    "BoxColor",
    "ToolType",
    "GameState",
    "GoalFindMode",
    "BoxSlot",
    "ShelfLayout",
    "LevelDefinition",
    "BoxData",
    "ShelfData",
    "RuntimeLevel",
    "MoveRecord",
    "LevelEvaluation",
    "GenerationParams",
    "DEFAULT_GROUP_SIZE",
    "DEFAULT_SHELF_CAPACITY",
    # Palette
    "ColorPalette",
    "ColorConfig",
]
