"""Play session API routes."""
import random
import uuid

from fastapi import APIRouter, Depends, HTTPException

from ...models.schemas import (
    MoveRequest,
    SessionCreateRequest,
    SessionResponse,
    ToolRequest,
)
from ...models.level import ToolType
from ...core.engine import PuzzleEngine
from ...clients.storage import StorageService
from ...config import get_settings
from ...utils.helpers import format_level_for_display, load_level_definition
from ..deps import SessionRegistry, get_session_storage, get_sessions

router = APIRouter(prefix="/api/sessions", tags=["sessions"])


def _session_response(session_id: str, engine: PuzzleEngine) -> SessionResponse:
    return SessionResponse(
        session_id=session_id,
        snapshot=engine.snapshot().to_dict(),
        last_reward=engine.last_reward,
        board=format_level_for_display(engine.level) if engine.level else "",
    )


def _get_engine(session_id: str, sessions: SessionRegistry) -> PuzzleEngine:
    engine = sessions.get(session_id)
    if engine is None:
        raise HTTPException(status_code=404, detail=f"Session not found: {session_id}")
    return engine


@router.post("", response_model=SessionResponse)
async def create_session(
    request: SessionCreateRequest,
    storage: StorageService = Depends(get_session_storage),
    sessions: SessionRegistry = Depends(get_sessions),
) -> SessionResponse:
    """
    Start a play session on a level definition.

    Args:
        request: SessionCreateRequest with the level and optional goal placement.
        storage: Storage holding daily attempts and total points.
        sessions: Session registry dependency.

    Returns:
        SessionResponse with the new session id and its first snapshot.
    """
    try:
        level = load_level_definition(request.level_json, get_settings().same_color_group_size)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=f"Invalid level: {str(e)}")

    engine = PuzzleEngine(storage=storage, rng=random.Random(request.seed))
    if engine.remaining_daily_attempts() <= 0:
        raise HTTPException(status_code=400, detail="No daily attempts left")

    if not engine.try_start_level(level, request.goal_shelf, request.goal_depth):
        raise HTTPException(status_code=400, detail="Level could not be started (goal placement failed)")

    session_id = uuid.uuid4().hex
    sessions.add(session_id, engine)
    return _session_response(session_id, engine)


@router.get("/{session_id}", response_model=SessionResponse)
async def get_session(
    session_id: str,
    sessions: SessionRegistry = Depends(get_sessions),
) -> SessionResponse:
    """Return the current snapshot of a session."""
    return _session_response(session_id, _get_engine(session_id, sessions))


@router.post("/{session_id}/move", response_model=SessionResponse)
async def move_box(
    session_id: str,
    request: MoveRequest,
    sessions: SessionRegistry = Depends(get_sessions),
) -> SessionResponse:
    """
    Move the top box between two shelves.

    Eliminations resolve automatically; the snapshot reports win or lose.
    """
    engine = _get_engine(session_id, sessions)
    if not engine.try_move_top_box(request.from_shelf, request.to_shelf):
        raise HTTPException(
            status_code=400,
            detail=f"Invalid move from shelf {request.from_shelf} to shelf {request.to_shelf}",
        )
    return _session_response(session_id, engine)


@router.post("/{session_id}/tool", response_model=SessionResponse)
async def use_tool(
    session_id: str,
    request: ToolRequest,
    sessions: SessionRegistry = Depends(get_sessions),
) -> SessionResponse:
    """Apply a player tool (reveal_shelf, undo_move or cat_hint)."""
    engine = _get_engine(session_id, sessions)

    try:
        tool = ToolType(request.tool)
    except ValueError:
        raise HTTPException(
            status_code=400,
            detail=f"Invalid tool. Must be one of: {[t.value for t in ToolType]}",
        )

    if not engine.use_tool(tool, request.shelf_index):
        raise HTTPException(status_code=400, detail=f"Tool {tool.value} could not be used")
    return _session_response(session_id, engine)


@router.post("/{session_id}/ad-shelf", response_model=SessionResponse)
async def grant_ad_shelf(
    session_id: str,
    sessions: SessionRegistry = Depends(get_sessions),
) -> SessionResponse:
    """Append an empty shelf after a rewarded ad was watched."""
    engine = _get_engine(session_id, sessions)
    if not engine.use_ad_reward_shelf():
        raise HTTPException(status_code=400, detail="No ad reward shelves left")
    return _session_response(session_id, engine)


@router.delete("/{session_id}")
async def delete_session(
    session_id: str,
    sessions: SessionRegistry = Depends(get_sessions),
):
    """
    Drop a session from the registry.

    Args:
        session_id: Session identifier.
        sessions: Session registry dependency.

    Returns:
        Success status.
    """
    if not sessions.remove(session_id):
        raise HTTPException(status_code=404, detail=f"Session not found: {session_id}")

    return {
        "success": True,
        "session_id": session_id,
        "message": f"Session {session_id} deleted",
    }
