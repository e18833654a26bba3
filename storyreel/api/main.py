"""Main FastAPI application for Storyreel."""

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

# Load environment variables using centralized loader
from storyreel.core.env_loader import ensure_env_loaded
ensure_env_loaded()

from storyreel.api.routers import history, pipelines, projects
from storyreel.core.constants import PROJECT_NAME, VERSION
from storyreel.core.exceptions import (
    ConfigurationError,
    LLMRequestError,
    PipelineStageError,
    PrerequisiteError,
    ProjectNotFoundError,
    SnapshotFormatError,
    StoryreelError,
)
from storyreel.core.logging_config import get_logger
from storyreel.core.settings import get_settings
from storyreel.pipelines.base_stage import error_text

logger = get_logger("api.main")

# Shared with the pipelines router, whose endpoints carry the limits
limiter = pipelines.limiter

app = FastAPI(
    title="Storyreel API",
    description="API for turning stories into shot lists and image/video prompts",
    version=VERSION,
)

# Add rate limiter to app state
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# CORS middleware for web UI
app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def status_for(exc: StoryreelError) -> int:
    """HTTP status for a domain error."""
    if isinstance(exc, ProjectNotFoundError):
        return 404
    if isinstance(exc, PrerequisiteError):
        return 409
    if isinstance(exc, (SnapshotFormatError, ConfigurationError)):
        return 400
    if isinstance(exc, LLMRequestError):
        return exc.status_code or 502
    if isinstance(exc, PipelineStageError):
        return 502
    return 500


@app.exception_handler(StoryreelError)
async def storyreel_error_handler(request: Request, exc: StoryreelError):
    status_code = status_for(exc)
    if status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc}")
    return JSONResponse(status_code=status_code, content={"detail": error_text(exc)})


# Include routers
app.include_router(projects.router, prefix="/api/projects", tags=["projects"])
app.include_router(pipelines.router, prefix="/api/pipelines", tags=["pipelines"])
app.include_router(history.router, prefix="/api/history", tags=["history"])


@app.get("/")
async def root():
    """Root endpoint."""
    return {"message": f"{PROJECT_NAME} API", "version": VERSION}


@app.get("/api/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}


def start_server(host: str = "0.0.0.0", port: int = 8000, reload: bool = False):
    """Start the FastAPI server."""
    uvicorn.run(
        "storyreel.api.main:app",
        host=host,
        port=port,
        reload=reload,
        log_level="warning",  # Suppress INFO logs for each request
    )


if __name__ == "__main__":
    start_server()
