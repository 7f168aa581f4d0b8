"""Solvability evaluation API routes."""
from fastapi import APIRouter, Depends, HTTPException

from ...models.schemas import EvaluateRequest, EvaluateResponse
from ...core.evaluator import SolvabilityEvaluator
from ...config import get_settings
from ...utils.helpers import load_level_definition
from ..deps import get_level_evaluator

router = APIRouter(prefix="/api", tags=["evaluate"])


@router.post("/evaluate", response_model=EvaluateResponse)
async def evaluate_level(
    request: EvaluateRequest,
    evaluator: SolvabilityEvaluator = Depends(get_level_evaluator),
) -> EvaluateResponse:
    """
    Estimate how often greedy playouts clear a level.

    Args:
        request: EvaluateRequest with the level and simulation parameters.
        evaluator: SolvabilityEvaluator dependency.

    Returns:
        EvaluateResponse with the solvable rate and difficulty estimate.
    """
    try:
        level = load_level_definition(request.level_json, get_settings().same_color_group_size)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=f"Invalid level: {str(e)}")

    result = evaluator.evaluate(
        level,
        runs=request.runs,
        max_steps=request.max_steps,
        base_seed=request.base_seed,
        parallel=request.parallel,
    )
    if result is None:
        raise HTTPException(status_code=400, detail="Evaluation was cancelled")

    return EvaluateResponse(**result.to_dict())
