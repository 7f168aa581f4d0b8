"""Level generation API routes."""
import random
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException

from ...models.schemas import (
    ControlledLevelRequest,
    GenerateLevelRequest,
    LayoutRequest,
    LayoutResponse,
    LevelResponse,
    OcclusionRequest,
    OcclusionResponse,
)
from ...models.level import GenerationParams
from ...models.palette import ColorPalette
from ...core.layout_generator import LayoutGenerator
from ...core.level_factory import LevelFactory, LevelBuildResult
from ...core.occlusion import OcclusionAllocator
from ..deps import get_allocator, get_factory, get_generator

router = APIRouter(prefix="/api/generate", tags=["generate"])


def _with_colors(generator: LayoutGenerator, colors: Optional[List[str]]) -> LayoutGenerator:
    """Return a generator restricted to `colors`, or the injected one."""
    if not colors:
        return generator
    return LayoutGenerator(
        palette=ColorPalette.from_names(colors),
        group_size=generator.group_size,
        max_attempts=generator.max_attempts,
    )


def _level_response(result: LevelBuildResult) -> LevelResponse:
    if not result.ok:
        raise HTTPException(status_code=400, detail=f"Generation failed: {result.error}")

    data = result.to_dict()
    return LevelResponse(
        level_json=data["level"],
        notes=data["notes"],
        hidden_counts=data["hidden_counts"],
        evaluation=data["evaluation"],
        generation_time_ms=data["generation_time_ms"],
    )


@router.post("/layout", response_model=LayoutResponse)
async def generate_layout(
    request: LayoutRequest,
    generator: LayoutGenerator = Depends(get_generator),
) -> LayoutResponse:
    """
    Generate per-shelf box counts and colors.

    Args:
        request: LayoutRequest with shelf and box counts.
        generator: LayoutGenerator dependency.

    Returns:
        LayoutResponse with the color layout.
    """
    try:
        generator = _with_colors(generator, request.enabled_colors)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    result = generator.generate(
        total_shelf_count=request.total_shelf_count,
        empty_shelf_count=request.empty_shelf_count,
        total_box_count=request.total_box_count,
        max_boxes_per_shelf=request.max_boxes_per_shelf,
        rng=random.Random(request.seed),
    )
    if not result.ok:
        raise HTTPException(
            status_code=400,
            detail={"error_kind": result.error_kind.value, "message": result.error},
        )

    data = result.to_dict()
    return LayoutResponse(
        shelf_box_counts=data["shelf_box_counts"],
        shelf_colors=data["shelf_colors"],
        attempts=data["attempts"],
    )


@router.post("/occlusion", response_model=OcclusionResponse)
async def allocate_occlusion(
    request: OcclusionRequest,
    allocator: OcclusionAllocator = Depends(get_allocator),
) -> OcclusionResponse:
    """
    Spread hidden boxes over shelves without hiding any top box.

    Args:
        request: OcclusionRequest with the box distribution.
        allocator: OcclusionAllocator dependency.

    Returns:
        OcclusionResponse with hidden counts per shelf.
    """
    result = allocator.allocate(
        request.shelf_box_counts,
        request.gray_percentage,
        random.Random(request.seed),
    )
    if not result.ok:
        raise HTTPException(status_code=400, detail=result.message)

    return OcclusionResponse(**{k: v for k, v in result.to_dict().items() if k != "ok"})


@router.post("/level", response_model=LevelResponse)
async def generate_level(
    request: GenerateLevelRequest,
    factory: LevelFactory = Depends(get_factory),
) -> LevelResponse:
    """
    Generate a complete level definition.

    Args:
        request: GenerateLevelRequest with generation parameters.
        factory: LevelFactory dependency.

    Returns:
        LevelResponse with the level definition and generation notes.
    """
    try:
        generator = _with_colors(factory.generator, request.enabled_colors)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    if generator is not factory.generator:
        factory = LevelFactory(generator, factory.allocator, factory.evaluator)

    params = GenerationParams(
        total_shelf_count=request.total_shelf_count,
        empty_shelf_count=request.empty_shelf_count,
        total_box_count=request.total_box_count,
        max_boxes_per_shelf=request.max_boxes_per_shelf,
        shelf_capacity=request.shelf_capacity,
        gray_percentage=request.gray_percentage,
        difficulty_rating=request.difficulty_rating,
        reward_score=request.reward_score,
        extra_empty_shelves=request.extra_empty_shelves,
        ad_reward_shelves=request.ad_reward_shelves,
        level_name=request.level_name,
        seed=request.seed,
        evaluate=request.evaluate,
    )
    return _level_response(factory.generate_level(params))


@router.post("/controlled", response_model=LevelResponse)
async def generate_controlled_level(
    request: ControlledLevelRequest,
    factory: LevelFactory = Depends(get_factory),
) -> LevelResponse:
    """
    Create a level whose size and visibility scale with difficulty.

    Args:
        request: ControlledLevelRequest with seed and difficulty.
        factory: LevelFactory dependency.

    Returns:
        LevelResponse with the level definition.
    """
    return _level_response(factory.create_controlled_level(request.seed, request.difficulty))
