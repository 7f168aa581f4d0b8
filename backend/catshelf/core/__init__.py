"""Core puzzle logic package.

This package contains the layout generator, occlusion allocator, runtime
shelf rules, puzzle engine and solvability evaluator.
"""
from .layout_generator import (
    LayoutGenerator,
    LayoutResult,
    GenerationErrorKind,
    get_layout_generator,
)
from .occlusion import OcclusionAllocator, OcclusionResult, get_occlusion_allocator
from .engine import PuzzleEngine, EngineSnapshot, ShelfView, BoxView
from .evaluator import SolvabilityEvaluator, PlayoutResult, get_evaluator
from .level_factory import LevelFactory, LevelBuildResult, get_level_factory

__all__ = [
    "LayoutGenerator",
    "LayoutResult",
    "GenerationErrorKind",
    "get_layout_generator",
    "OcclusionAllocator",
    "OcclusionResult",
    "get_occlusion_allocator",
    "PuzzleEngine",
    "EngineSnapshot",
    "ShelfView",
    "BoxView",
    "SolvabilityEvaluator",
    "PlayoutResult",
    "get_evaluator",
    "LevelFactory",
    "LevelBuildResult",
    "get_level_factory",
]
