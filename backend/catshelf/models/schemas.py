"""Pydantic schemas for API request/response validation."""
from pydantic import BaseModel, Field
from typing import Dict, List, Any, Optional


class LayoutRequest(BaseModel):
    """Request schema for color layout generation."""
    total_shelf_count: int = Field(default=8, le=64, description="Number of shelves")
    empty_shelf_count: int = Field(default=0, description="Shelves that stay empty")
    total_box_count: int = Field(default=32, le=1024, description="Requested box count (rounded down to a group multiple)")
    max_boxes_per_shelf: int = Field(default=4, le=64, description="Maximum boxes on one shelf")
    enabled_colors: Optional[List[str]] = Field(default=None, description="Colors to use (default: configured palette)")
    seed: Optional[int] = Field(default=None, description="Random seed for reproducible output")


class LayoutResponse(BaseModel):
    """Response schema for color layout generation."""
    shelf_box_counts: List[int] = Field(..., description="Box count per shelf")
    shelf_colors: List[List[str]] = Field(..., description="Colors per shelf, bottom to top")
    attempts: int = Field(..., description="Attempts used")


class OcclusionRequest(BaseModel):
    """Request schema for hidden box allocation."""
    shelf_box_counts: List[int] = Field(..., description="Box count per shelf")
    gray_percentage: Optional[float] = Field(default=None, ge=0.0, le=1.0, description="Target hidden fraction")
    seed: Optional[int] = Field(default=None, description="Random seed for tie breaking")


class OcclusionResponse(BaseModel):
    """Response schema for hidden box allocation."""
    hidden_counts: List[int] = Field(..., description="Hidden boxes per shelf")
    requested_hidden: int = Field(..., description="round(total boxes * fraction)")
    target_hidden: int = Field(..., description="Hidden boxes actually allocated")
    adjusted: bool = Field(default=False, description="Whether the target was lowered")
    message: str = Field(default="", description="Adjustment note")


class GenerateLevelRequest(BaseModel):
    """Request schema for full level generation."""
    total_shelf_count: int = Field(default=8, le=64, description="Number of shelves")
    empty_shelf_count: int = Field(default=0, description="Shelves that stay empty")
    total_box_count: int = Field(default=32, le=1024, description="Requested box count")
    max_boxes_per_shelf: int = Field(default=4, le=64, description="Maximum boxes on one shelf")
    shelf_capacity: int = Field(default=8, ge=1, le=64, description="Capacity of every shelf")
    gray_percentage: Optional[float] = Field(default=None, ge=0.0, le=1.0, description="Target hidden fraction")
    difficulty_rating: int = Field(default=1, ge=1, le=10, description="Authored difficulty")
    reward_score: int = Field(default=100, ge=0, description="Reward granted on win")
    extra_empty_shelves: int = Field(default=1, ge=0, le=8, description="Empty shelves appended at runtime")
    ad_reward_shelves: int = Field(default=1, ge=0, le=8, description="Shelves grantable by rewarded ads")
    level_name: str = Field(default="Generated", description="Level name")
    enabled_colors: Optional[List[str]] = Field(default=None, description="Colors to use")
    seed: Optional[int] = Field(default=None, description="Random seed")
    evaluate: bool = Field(default=False, description="Run the solvability evaluator")


class ControlledLevelRequest(BaseModel):
    """Request schema for difficulty-scaled level creation."""
    seed: int = Field(..., description="Random seed")
    difficulty: int = Field(default=1, ge=1, le=10, description="Difficulty (1-10)")


class LevelResponse(BaseModel):
    """Response schema for generated levels."""
    level_json: Dict[str, Any] = Field(..., description="Generated level definition")
    notes: List[str] = Field(default=[], description="Generation notes")
    hidden_counts: List[int] = Field(default=[], description="Hidden boxes per shelf")
    evaluation: Optional[Dict[str, Any]] = Field(default=None, description="Solvability estimate")
    generation_time_ms: int = Field(default=0, description="Generation time in milliseconds")


class EvaluateRequest(BaseModel):
    """Request schema for solvability evaluation."""
    level_json: Dict[str, Any] = Field(..., description="Level definition to evaluate")
    runs: Optional[int] = Field(default=None, ge=1, le=1000, description="Number of playouts")
    max_steps: Optional[int] = Field(default=None, ge=1, le=5000, description="Move budget per playout")
    base_seed: Optional[int] = Field(default=None, description="Seed of the first playout")
    parallel: bool = Field(default=False, description="Run playouts on a thread pool")


class EvaluateResponse(BaseModel):
    """Response schema for solvability evaluation."""
    likely_solvable: bool = Field(..., description="Solvable rate reached the threshold")
    solvable_rate: float = Field(..., ge=0, le=1, description="Fraction of cleared playouts")
    estimated_difficulty: int = Field(..., ge=1, le=10, description="Difficulty estimate (1-10)")
    runs: int = Field(..., description="Playouts executed")
    avg_moves: float = Field(default=0.0, description="Average moves of cleared playouts")


class PaletteResponse(BaseModel):
    """Response schema for the configured palette."""
    colors: List[Dict[str, Any]] = Field(..., description="Per-color display configuration")
    active_colors: List[str] = Field(..., description="Enabled colors in palette order")
    gray_display_color: List[float] = Field(..., description="RGBA used for hidden boxes")


class SessionCreateRequest(BaseModel):
    """Request schema for starting a play session."""
    level_json: Dict[str, Any] = Field(..., description="Level definition to play")
    goal_shelf: Optional[int] = Field(default=None, description="Shelf holding the goal box")
    goal_depth: Optional[int] = Field(default=None, ge=0, description="Boxes below the top (0 = top)")
    seed: Optional[int] = Field(default=None, description="Random seed for goal placement and hints")


class MoveRequest(BaseModel):
    """Request schema for a top-box move."""
    from_shelf: int = Field(..., description="Source shelf index")
    to_shelf: int = Field(..., description="Target shelf index")


class ToolRequest(BaseModel):
    """Request schema for tool use."""
    tool: str = Field(..., description="Tool type (reveal_shelf/undo_move/cat_hint)")
    shelf_index: int = Field(default=-1, description="Target shelf for reveal_shelf")


class SessionResponse(BaseModel):
    """Response schema for play session operations."""
    session_id: str = Field(..., description="Session ID")
    snapshot: Dict[str, Any] = Field(..., description="Observable session state")
    last_reward: int = Field(default=0, description="Reward granted by the last win")
    board: str = Field(default="", description="Text rendering of the shelves")
