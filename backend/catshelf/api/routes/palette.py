"""Color palette API routes."""
from fastapi import APIRouter, HTTPException

from ...models.schemas import PaletteResponse
from ...models.palette import ColorPalette
from ...config import get_settings

router = APIRouter(prefix="/api", tags=["palette"])


@router.get("/palette", response_model=PaletteResponse)
async def get_palette() -> PaletteResponse:
    """Return the configured colors with their display metadata."""
    try:
        palette = ColorPalette.from_names(get_settings().get_enabled_colors())
    except ValueError as e:
        raise HTTPException(status_code=400, detail=f"Invalid palette configuration: {str(e)}")

    return PaletteResponse(**palette.to_dict())
