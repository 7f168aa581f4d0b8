"""FastAPI application entry point."""
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import get_settings
from .api.routes import generate, evaluate, palette, sessions

# Get settings
settings = get_settings()

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

# Create FastAPI app
app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="Level design service for the cat shelf sorting puzzle: layout generation, occlusion, solvability checks and play sessions",
    docs_url="/docs",
    redoc_url="/redoc",
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get_cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(generate.router)
app.include_router(evaluate.router)
app.include_router(palette.router)
app.include_router(sessions.router)


@app.get("/")
async def root():
    """Root endpoint with API information."""
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "description": "Cat Shelf Puzzle Level Service API",
        "endpoints": {
            "generate_layout": "/api/generate/layout",
            "generate_occlusion": "/api/generate/occlusion",
            "generate_level": "/api/generate/level",
            "generate_controlled": "/api/generate/controlled",
            "evaluate": "/api/evaluate",
            "palette": "/api/palette",
            "sessions": "/api/sessions",
            "docs": "/docs",
        },
    }


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "version": settings.app_version,
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "catshelf.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )
