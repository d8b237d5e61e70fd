"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from src.api import cron, deadlines, escalations, notifications, timers, work_items
from src.config import get_settings
from src.exceptions import (
    EngineError,
    InvalidStateError,
    NotFoundError,
    TransientError,
    ValidationError,
)

logger = logging.getLogger(__name__)
settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Handle application startup and shutdown events."""
    yield


app = FastAPI(
    title="SLA Engine API",
    description="Deadlines, timers, reminders and escalations for tracked work",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS middleware for development
if settings.is_development:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["http://localhost:3000"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )


def _status_for(exc: EngineError) -> int:
    if isinstance(exc, NotFoundError):
        return status.HTTP_404_NOT_FOUND
    if isinstance(exc, ValidationError):
        return status.HTTP_422_UNPROCESSABLE_ENTITY
    if isinstance(exc, InvalidStateError):
        return status.HTTP_409_CONFLICT
    if isinstance(exc, TransientError):
        return status.HTTP_503_SERVICE_UNAVAILABLE
    return status.HTTP_500_INTERNAL_SERVER_ERROR


async def engine_error_handler(request: Request, exc: EngineError) -> JSONResponse:
    """Map engine errors to JSON responses the caller can display."""
    status_code = _status_for(exc)
    if status_code >= 500:
        logger.error(f"{type(exc).__name__} on {request.url.path}: {exc.message}")
    return JSONResponse(
        status_code=status_code,
        content={"detail": exc.message, "error": type(exc).__name__, "details": exc.details},
    )


app.add_exception_handler(EngineError, engine_error_handler)

# Register routers
app.include_router(cron.router)
app.include_router(timers.router)
app.include_router(work_items.router)
app.include_router(deadlines.router)
app.include_router(notifications.router)
app.include_router(escalations.router)


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "environment": settings.environment}
